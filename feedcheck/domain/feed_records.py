"""
feedcheck/domain/feed_records.py

Domain models used by the feed validation flow.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class IssueSeverity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class RunState(str, Enum):
    INITIALIZING = "initializing"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ValidationIssue:
    """
    One field-level issue found on a feed row.
    """

    row: int
    field: str
    message: str
    severity: IssueSeverity = IssueSeverity.ERROR
    value: Any = None


@dataclass(frozen=True)
class RecordValidationResult:
    """
    Outcome of validating one reconciled record.

    ``data`` holds the typed canonical record and is only set when the record
    is valid. ``normalized`` is the reconciled record before validation.
    """

    row: int
    is_valid: bool
    issues: list[ValidationIssue] = field(default_factory=list)
    data: dict[str, Any] | None = None
    normalized: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ProgressSnapshot:
    """
    Point-in-time progress of one validation run.
    """

    total_rows: int
    processed_rows: int
    valid_rows: int
    invalid_rows: int
    error_count: int = 0
    warning_count: int = 0
    is_complete: bool = False
    is_cancelled: bool = False


@dataclass(frozen=True)
class RawFeedIssue:
    """
    Aggregated advisory finding about a raw feed value.
    """

    field: str
    original_value: Any
    problem: str
    severity: IssueSeverity
    fixed_value: Any = None
    count: int = 1


@dataclass(frozen=True)
class RunSummary:
    """
    End-of-run validation summary.
    """

    total_rows: int
    processed_rows: int
    valid_rows: int
    invalid_rows: int
    error_count: int
    warning_count: int
    issues: list[ValidationIssue] = field(default_factory=list)
    valid_records: list[dict[str, Any]] | None = None


@dataclass(frozen=True)
class ValidatorInfo:
    id: str
    name: str
    version: str


@dataclass(frozen=True)
class FeedFileInfo:
    name: str
    format: str
    size: int


@dataclass(frozen=True)
class FeedValidationResult:
    """
    Full result of validating one feed file.

    ``success`` is False when the run was cancelled; cancellation is reported
    through ``cancelled`` and never raised.
    """

    success: bool
    cancelled: bool
    validator: ValidatorInfo
    file: FeedFileInfo
    summary: RunSummary
    raw_issues: list[RawFeedIssue] = field(default_factory=list)
    truncated: bool = False
    valid_records_truncated: bool = False


@dataclass(frozen=True)
class PreValidationResult:
    """
    Result of an as-is feed check without value normalization.
    """

    total_rows: int
    analyzed_rows: int
    valid_rows: int
    invalid_rows: int
    raw_issues: list[RawFeedIssue] = field(default_factory=list)
    cancelled: bool = False


class CappedList(Generic[T]):
    """
    Insertion-ordered list that keeps at most ``capacity`` items.

    Items offered after the list is full are counted in ``overflow`` and
    dropped.
    """

    def __init__(self, capacity: int) -> None:
        self._capacity = max(0, capacity)
        self._items: list[T] = []
        self.overflow = 0

    def append(self, item: T) -> bool:
        if len(self._items) >= self._capacity:
            self.overflow += 1
            return False
        self._items.append(item)
        return True

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def is_truncated(self) -> bool:
        return self.overflow > 0

    def to_list(self) -> list[T]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)
