"""Request body builders for plan run and apply calls."""

from typing import Any

from .models import DateRange, Environment, PlanOptions


def build_plan_payload(
    environment: Environment,
    options: PlanOptions,
    date_range: DateRange,
    is_initial_plan_run: bool = False
) -> dict[str, Any]:
    """
    Build the body of a plan run request.

    The first plan of an environment always covers its full history, so
    date bounds are omitted for initial plan runs.
    """
    payload: dict[str, Any] = {
        "environment": environment.name,
        "plan_options": _plan_options(options),
    }

    if not is_initial_plan_run:
        payload["plan_dates"] = {
            "start": date_range.start,
            "end": date_range.end,
        }

    return payload


def build_apply_payload(
    environment: Environment,
    options: PlanOptions,
    date_range: DateRange,
    is_initial_plan_run: bool = False
) -> dict[str, Any]:
    """Build the body of a plan apply request."""
    payload = build_plan_payload(environment, options, date_range, is_initial_plan_run)
    payload["is_initial_plan_run"] = is_initial_plan_run
    return payload


def _plan_options(options: PlanOptions) -> dict[str, Any]:
    # auto_apply is handled client side
    result = options.to_dict()
    result.pop("auto_apply")
    return {key: value for key, value in result.items() if value is not None}
