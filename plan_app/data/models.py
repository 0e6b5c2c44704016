"""
Canonical data models for plan payloads.

This module defines immutable data structures for the results of backend
plan calls and for the progress and report payloads streamed over the
event channel.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Optional


@dataclass(frozen=True)
class DateRange:
    """Plan date bounds as normalized ISO strings."""
    start: Optional[str] = None
    end: Optional[str] = None


@dataclass(frozen=True)
class Environment:
    """Environment the plan targets."""
    name: str
    is_initial: bool = False     # Environment has never been applied
    is_default: bool = False     # Default (production) environment


@dataclass(frozen=True)
class PlanOptions:
    """User-selectable plan options sent with run and apply requests."""
    skip_tests: bool = False
    skip_backfill: bool = False
    no_gaps: bool = False
    forward_only: bool = False
    auto_apply: bool = False
    no_auto_categorization: bool = False
    include_unmodified: bool = False
    restate_models: Optional[str] = None
    create_from: Optional[str] = None

    def with_changes(self, **changes: Any) -> "PlanOptions":
        """Create new options with the given fields replaced."""
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "skip_tests": self.skip_tests,
            "skip_backfill": self.skip_backfill,
            "no_gaps": self.no_gaps,
            "forward_only": self.forward_only,
            "auto_apply": self.auto_apply,
            "no_auto_categorization": self.no_auto_categorization,
            "include_unmodified": self.include_unmodified,
            "restate_models": self.restate_models,
            "create_from": self.create_from,
        }


# Options forced for the first plan of an environment
INITIAL_PLAN_RUN_OPTIONS = {
    "skip_backfill": False,
    "forward_only": False,
    "no_auto_categorization": False,
    "no_gaps": False,
    "include_unmodified": True,
}


@dataclass(frozen=True)
class ChangeSet:
    """Model changes computed by a plan run."""
    added: tuple[str, ...] = ()
    removed: tuple[str, ...] = ()
    direct: tuple[str, ...] = ()       # Directly modified models
    indirect: tuple[str, ...] = ()     # Downstream of a direct modification
    metadata: tuple[str, ...] = ()     # Metadata-only modifications

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.removed or self.direct or self.indirect)

    @property
    def has_virtual_update(self) -> bool:
        """Metadata-only changes can be applied without a backfill."""
        return bool(self.metadata)

    @property
    def is_empty(self) -> bool:
        return not (self.has_changes or self.has_virtual_update)

    def merge(self, other: "ChangeSet") -> "ChangeSet":
        """Overlay the non-empty categories of other onto this change set."""
        return ChangeSet(
            added=other.added or self.added,
            removed=other.removed or self.removed,
            direct=other.direct or self.direct,
            indirect=other.indirect or self.indirect,
            metadata=other.metadata or self.metadata,
        )


@dataclass(frozen=True)
class Backfill:
    """A unit of historical recomputation required by the plan."""
    model_name: str
    interval: tuple[Optional[str], Optional[str]] = (None, None)
    batches: int = 1


@dataclass(frozen=True)
class BackfillTask:
    """Progress of one model backfill during apply."""
    name: str
    completed: int = 0
    total: int = 0
    start: Optional[int] = None    # Epoch ms
    end: Optional[int] = None      # Epoch ms

    @property
    def is_completed(self) -> bool:
        return self.total > 0 and self.completed >= self.total


@dataclass(frozen=True)
class BackfillProgress:
    """Snapshot of the backfill progress feed."""
    ok: bool = True
    tasks: tuple[BackfillTask, ...] = ()
    queue: tuple[str, ...] = ()
    updated_at: Optional[int] = None   # Epoch ms

    @property
    def is_completed(self) -> bool:
        return bool(self.tasks) and all(task.is_completed for task in self.tasks)

    @property
    def completed(self) -> int:
        return sum(task.completed for task in self.tasks)

    @property
    def total(self) -> int:
        return sum(task.total for task in self.tasks)


@dataclass(frozen=True)
class RunResult:
    """Result of a plan run."""
    backfills: tuple[Backfill, ...] = ()
    changes: ChangeSet = field(default_factory=ChangeSet)
    start: Optional[str] = None
    end: Optional[str] = None


class ApplyType(str, Enum):
    """Kind of apply performed by the backend."""
    VIRTUAL = "virtual"      # Metadata/pointer update only
    PHYSICAL = "physical"    # Requires backfill


@dataclass(frozen=True)
class ApplyResult:
    """Result of a plan apply."""
    type: ApplyType
    extra: dict = field(default_factory=dict)

    @property
    def is_virtual(self) -> bool:
        return self.type == ApplyType.VIRTUAL


@dataclass(frozen=True)
class TestsReport:
    """One message from the tests topic."""
    ok: bool
    data: dict = field(default_factory=dict)

    __test__ = False  # not a pytest class


@dataclass(frozen=True)
class PlanReport:
    """Latest message from the plan report topic."""
    ok: bool
    status: str
    timestamp: Optional[int] = None
    type: Optional[str] = None

    @property
    def is_finished(self) -> bool:
        return self.status == "finished"
