"""
feedcheck/services package marker.
"""

from feedcheck.services.export_service import export_jsonl, to_jsonl, write_jsonl
from feedcheck.services.validation_service import (
    FeedValidationService,
    RunOutcome,
    ValidatorFormatError,
    get_feed_validation_service,
)

__all__ = [
    "FeedValidationService",
    "RunOutcome",
    "ValidatorFormatError",
    "export_jsonl",
    "get_feed_validation_service",
    "to_jsonl",
    "write_jsonl",
]
