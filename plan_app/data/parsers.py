"""
Payload parsers for backend results and channel messages.

Converts raw JSON frames and backend response dictionaries into the
immutable models in :mod:`plan_app.data.models`. Every parser raises a
PayloadError subclass on bad input so callers can drop the payload or fail
the owning operation.
"""

from typing import Any, Optional, Union

import orjson

from ..errors import MalformedPayloadError, MissingFieldError
from ..utils.time import to_date_string
from .models import (
    ApplyResult,
    ApplyType,
    Backfill,
    BackfillProgress,
    BackfillTask,
    ChangeSet,
    PlanReport,
    RunResult,
    TestsReport,
)

RawPayload = Union[str, bytes, bytearray, dict]


def parse_json_payload(raw_data: RawPayload) -> dict[str, Any]:
    """
    Parse a raw channel frame into a dictionary.

    Args:
        raw_data: JSON text or bytes; dictionaries pass through unchanged

    Returns:
        Parsed dictionary

    Raises:
        MalformedPayloadError: If the frame is not a JSON object
    """
    if isinstance(raw_data, dict):
        return raw_data

    try:
        payload = orjson.loads(raw_data)
    except (orjson.JSONDecodeError, TypeError) as e:
        raise MalformedPayloadError(
            f"Invalid JSON: {e}",
            raw_data=_preview(raw_data),
            expected_format="json object"
        )

    if not isinstance(payload, dict):
        raise MalformedPayloadError(
            f"Expected JSON object, got {type(payload).__name__}",
            raw_data=_preview(raw_data),
            expected_format="json object"
        )

    return payload


def parse_run_result(data: Optional[dict[str, Any]]) -> RunResult:
    """Parse the response of a plan run."""
    data = _require_mapping(data, "run result")

    try:
        start = to_date_string(data.get("start"))
        end = to_date_string(data.get("end"))
    except ValueError as e:
        raise MalformedPayloadError(f"Invalid plan dates: {e}", expected_format="iso date")

    return RunResult(
        backfills=parse_backfills(data.get("backfills")),
        changes=parse_changes(data.get("changes")),
        start=start,
        end=end,
    )


def parse_changes(data: Optional[dict[str, Any]]) -> ChangeSet:
    """
    Parse a change summary.

    Modified models may be nested under ``modified`` or given at the top
    level as ``direct``/``indirect``/``metadata``.
    """
    if data is None:
        return ChangeSet()
    data = _require_mapping(data, "changes")

    modified = data.get("modified") or {}
    if not isinstance(modified, dict):
        raise MalformedPayloadError("changes.modified must be an object", expected_format="object")

    def names(key: str, source: dict) -> tuple[str, ...]:
        return _parse_names(source.get(key), f"changes.{key}")

    return ChangeSet(
        added=names("added", data),
        removed=names("removed", data),
        direct=names("direct", modified) or names("direct", data),
        indirect=names("indirect", modified) or names("indirect", data),
        metadata=names("metadata", modified) or names("metadata", data),
    )


def parse_backfills(data: Optional[list]) -> tuple[Backfill, ...]:
    """Parse the list of backfills required by a plan."""
    if not data:
        return ()
    if not isinstance(data, list):
        raise MalformedPayloadError("backfills must be a list", expected_format="list")

    backfills = []
    for i, item in enumerate(data):
        if not isinstance(item, dict):
            raise MalformedPayloadError(f"Invalid backfill at index {i}", expected_format="object")

        name = item.get("model_name") or item.get("name")
        if not name:
            raise MissingFieldError(
                f"Backfill at index {i} has no model name",
                field="model_name",
                payload_type="backfill"
            )

        interval = item.get("interval") or (None, None)
        if not isinstance(interval, (list, tuple)) or len(interval) != 2:
            raise MalformedPayloadError(
                f"Invalid interval for backfill {name}",
                expected_format="[start, end]"
            )

        backfills.append(Backfill(
            model_name=str(name),
            interval=(_optional_str(interval[0]), _optional_str(interval[1])),
            batches=int(item.get("batches", 1)),
        ))

    return tuple(backfills)


def parse_apply_result(data: Optional[dict[str, Any]]) -> ApplyResult:
    """Parse the response of a plan apply."""
    data = _require_mapping(data, "apply result")

    raw_type = data.get("type")
    if raw_type is None:
        raise MissingFieldError("Apply result has no type", field="type", payload_type="apply")

    try:
        apply_type = ApplyType(str(raw_type).lower())
    except ValueError:
        raise MalformedPayloadError(
            f"Unknown apply type: {raw_type}",
            raw_data=str(raw_type),
            expected_format="virtual|physical"
        )

    extra = {key: value for key, value in data.items() if key != "type"}
    return ApplyResult(type=apply_type, extra=extra)


def parse_tests_report(data: RawPayload) -> TestsReport:
    """Parse a message from the tests topic."""
    payload = parse_json_payload(data)

    ok = payload.get("ok")
    if not isinstance(ok, bool):
        raise MissingFieldError("Tests report has no boolean 'ok'", field="ok", payload_type="tests")

    return TestsReport(ok=ok, data=payload)


def parse_plan_report(data: RawPayload) -> PlanReport:
    """Parse a message from the plan report topic."""
    payload = parse_json_payload(data)

    status = payload.get("status")
    if not status:
        raise MissingFieldError("Plan report has no status", field="status", payload_type="report")

    timestamp = payload.get("timestamp")
    if timestamp is not None and not isinstance(timestamp, (int, float)):
        raise MalformedPayloadError(
            f"Invalid report timestamp: {timestamp}",
            expected_format="epoch ms"
        )

    return PlanReport(
        ok=bool(payload.get("ok", True)),
        status=str(status),
        timestamp=int(timestamp) if timestamp is not None else None,
        type=payload.get("type"),
    )


def parse_backfill_progress(data: RawPayload) -> BackfillProgress:
    """
    Parse a message from the backfill progress feed.

    Tasks may be a mapping of model name to counters or a list of task
    objects carrying their own ``name``.
    """
    payload = parse_json_payload(data)

    raw_tasks = payload.get("tasks") or {}
    if isinstance(raw_tasks, dict):
        items = [dict(task, name=name) for name, task in raw_tasks.items() if isinstance(task, dict)]
    elif isinstance(raw_tasks, list):
        items = raw_tasks
    else:
        raise MalformedPayloadError("tasks must be an object or list", expected_format="object|list")

    tasks = []
    for item in items:
        if not isinstance(item, dict) or not item.get("name"):
            raise MissingFieldError("Backfill task has no name", field="name", payload_type="tasks")
        try:
            tasks.append(BackfillTask(
                name=str(item["name"]),
                completed=int(item.get("completed", 0)),
                total=int(item.get("total", 0)),
                start=_optional_int(item.get("start")),
                end=_optional_int(item.get("end")),
            ))
        except (TypeError, ValueError) as e:
            raise MalformedPayloadError(f"Invalid task counters for {item['name']}: {e}")

    return BackfillProgress(
        ok=bool(payload.get("ok", True)),
        tasks=tuple(tasks),
        queue=_parse_names(payload.get("queue"), "queue"),
        updated_at=_optional_int(payload.get("updated_at")),
    )


def _require_mapping(data: Any, payload_type: str) -> dict[str, Any]:
    if data is None:
        raise MissingFieldError(f"Empty {payload_type}", payload_type=payload_type)
    if not isinstance(data, dict):
        raise MalformedPayloadError(
            f"Expected object for {payload_type}, got {type(data).__name__}",
            expected_format="object"
        )
    return data


def _parse_names(value: Any, field_name: str) -> tuple[str, ...]:
    if not value:
        return ()
    if not isinstance(value, (list, tuple)):
        raise MalformedPayloadError(f"{field_name} must be a list", expected_format="list")

    names = []
    for item in value:
        if isinstance(item, dict):
            item = item.get("name")
        if not item:
            raise MissingFieldError(f"Entry in {field_name} has no name", field="name")
        names.append(str(item))
    return tuple(names)


def _optional_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def _optional_int(value: Any) -> Optional[int]:
    return None if value is None else int(value)


def _preview(raw_data: Any, limit: int = 200) -> str:
    if isinstance(raw_data, (bytes, bytearray)):
        raw_data = raw_data.decode("utf-8", errors="replace")
    return str(raw_data)[:limit]
