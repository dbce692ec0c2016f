"""
feedcheck/domain package marker.
"""

from feedcheck.domain.feed_records import (
    CappedList,
    FeedFileInfo,
    FeedValidationResult,
    IssueSeverity,
    PreValidationResult,
    ProgressSnapshot,
    RawFeedIssue,
    RecordValidationResult,
    RunState,
    RunSummary,
    ValidationIssue,
    ValidatorInfo,
)

__all__ = [
    "CappedList",
    "FeedFileInfo",
    "FeedValidationResult",
    "IssueSeverity",
    "PreValidationResult",
    "ProgressSnapshot",
    "RawFeedIssue",
    "RecordValidationResult",
    "RunState",
    "RunSummary",
    "ValidationIssue",
    "ValidatorInfo",
]
