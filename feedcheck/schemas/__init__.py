"""
feedcheck/schemas package marker.
"""

from feedcheck.schemas.feed_validation import (
    FeedFileResponse,
    FeedSummaryResponse,
    FeedValidationResponse,
    MappingSuggestionRequest,
    MappingSuggestionResponse,
    PreValidationResponse,
    RawFeedIssueResponse,
    ValidationIssueResponse,
    ValidatorDescriptionResponse,
    ValidatorInfoResponse,
    ValidatorListResponse,
)

__all__ = [
    "FeedFileResponse",
    "FeedSummaryResponse",
    "FeedValidationResponse",
    "MappingSuggestionRequest",
    "MappingSuggestionResponse",
    "PreValidationResponse",
    "RawFeedIssueResponse",
    "ValidationIssueResponse",
    "ValidatorDescriptionResponse",
    "ValidatorInfoResponse",
    "ValidatorListResponse",
]
