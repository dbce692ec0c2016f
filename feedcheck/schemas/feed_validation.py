"""
feedcheck/schemas/feed_validation.py

Response schemas for feed validation endpoints.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

Severity = Literal["error", "warning", "info"]


class ValidationIssueResponse(BaseModel):
    """
    API response model for one field-level validation issue.
    """

    row: int = Field(..., ge=1)
    field: str
    message: str
    severity: Severity
    value: Any = None


class RawFeedIssueResponse(BaseModel):
    """
    API response model for one aggregated raw-feed finding.
    """

    field: str
    problem: str
    severity: Literal["warning", "info"]
    count: int = Field(..., ge=1)
    original_value: Any = None
    fixed_value: Any = None


class FeedSummaryResponse(BaseModel):
    total_rows: int = Field(..., ge=0)
    processed_rows: int = Field(..., ge=0)
    valid_rows: int = Field(..., ge=0)
    invalid_rows: int = Field(..., ge=0)
    error_count: int = Field(..., ge=0)
    warning_count: int = Field(..., ge=0)
    issues: list[ValidationIssueResponse] = Field(default_factory=list)
    valid_records: list[dict[str, Any]] | None = None


class ValidatorInfoResponse(BaseModel):
    id: str
    name: str
    version: str


class FeedFileResponse(BaseModel):
    name: str
    format: str
    size: int = Field(..., ge=0)


class FeedValidationResponse(BaseModel):
    """
    API response model for a full feed validation.
    """

    success: bool
    cancelled: bool = False
    validator: ValidatorInfoResponse
    file: FeedFileResponse
    summary: FeedSummaryResponse
    raw_issues: list[RawFeedIssueResponse] = Field(default_factory=list)
    truncated: bool = False
    valid_records_truncated: bool = False


class PreValidationResponse(BaseModel):
    """
    API response model for an as-is feed check.
    """

    total_rows: int = Field(..., ge=0)
    analyzed_rows: int = Field(..., ge=0)
    valid_rows: int = Field(..., ge=0)
    invalid_rows: int = Field(..., ge=0)
    raw_issues: list[RawFeedIssueResponse] = Field(default_factory=list)
    cancelled: bool = False


class ValidatorDescriptionResponse(BaseModel):
    id: str
    name: str
    description: str
    version: str
    supported_formats: list[str]
    canonical_fields: list[str]
    required_fields: list[str]
    field_aliases: dict[str, list[str]]


class ValidatorListResponse(BaseModel):
    validators: list[ValidatorDescriptionResponse] = Field(default_factory=list)


class MappingSuggestionRequest(BaseModel):
    validator: str = Field(..., min_length=1)
    headers: list[str] = Field(default_factory=list)


class MappingSuggestionResponse(BaseModel):
    validator: str
    mappings: dict[str, str] = Field(default_factory=dict)
    match_strategies: dict[str, str] = Field(default_factory=dict)
    unmapped_headers: list[str] = Field(default_factory=list)
