"""
feedcheck/api/routers/validation.py

Feed validation HTTP endpoints.

GET  /validators           registered validator definitions
POST /mapping-suggestions  suggested source-to-canonical mapping for headers
POST /validate             full validation with normalization
POST /pre-validate         as-is check without normalization
POST /export               valid records as JSONL (optionally gzip)

All pipeline logic lives in FeedValidationService; the router only reads
uploads and maps results and errors to HTTP.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, Form, HTTPException, Response, UploadFile, status

from feedcheck.api.dependencies import get_feed_upload, read_upload
from feedcheck.domain.feed_records import FeedValidationResult, PreValidationResult, RawFeedIssue
from feedcheck.mappers.field_reconciler import suggest_mapping
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
from feedcheck.services.export_service import GZIP_MEDIA_TYPE, JSONL_MEDIA_TYPE, export_filename, export_jsonl
from feedcheck.services.validation_service import (
    FeedValidationService,
    ValidatorFormatError,
    get_feed_validation_service,
)
from feedcheck.sources.record_source import FeedInputError
from feedcheck.validators.mapping_validator import FieldMappingError
from feedcheck.validators.registry import UnknownValidatorError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["validation"])


# ---------------------------------------------------------------------------
# Request / response helpers (no business logic)
# ---------------------------------------------------------------------------


def _parse_custom_mappings(raw: str | None) -> dict[str, str] | None:
    if raw is None or not raw.strip():
        return None
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="custom_mappings must be a JSON object.",
        ) from exc
    if not isinstance(parsed, dict) or not all(
        isinstance(key, str) and isinstance(value, str) for key, value in parsed.items()
    ):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="custom_mappings must map source field names to canonical field names.",
        )
    return parsed


def _input_error(exc: Exception) -> HTTPException:
    detail: dict[str, Any]
    if isinstance(exc, UnknownValidatorError):
        detail = {"error": str(exc), "available_validators": list(exc.available)}
    elif isinstance(exc, ValidatorFormatError):
        detail = {"error": str(exc), "supported_formats": list(exc.supported)}
    elif isinstance(exc, FieldMappingError):
        detail = exc.to_dict()
    else:
        detail = {"error": str(exc)}
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def _raw_issue_response(issue: RawFeedIssue) -> RawFeedIssueResponse:
    return RawFeedIssueResponse(
        field=issue.field,
        problem=issue.problem,
        severity=issue.severity.value,
        count=issue.count,
        original_value=issue.original_value,
        fixed_value=issue.fixed_value,
    )


def _validation_response(result: FeedValidationResult) -> FeedValidationResponse:
    summary = result.summary
    return FeedValidationResponse(
        success=result.success,
        cancelled=result.cancelled,
        validator=ValidatorInfoResponse(
            id=result.validator.id,
            name=result.validator.name,
            version=result.validator.version,
        ),
        file=FeedFileResponse(name=result.file.name, format=result.file.format, size=result.file.size),
        summary=FeedSummaryResponse(
            total_rows=summary.total_rows,
            processed_rows=summary.processed_rows,
            valid_rows=summary.valid_rows,
            invalid_rows=summary.invalid_rows,
            error_count=summary.error_count,
            warning_count=summary.warning_count,
            issues=[
                ValidationIssueResponse(
                    row=issue.row,
                    field=issue.field,
                    message=issue.message,
                    severity=issue.severity.value,
                    value=issue.value,
                )
                for issue in summary.issues
            ],
            valid_records=summary.valid_records,
        ),
        raw_issues=[_raw_issue_response(issue) for issue in result.raw_issues],
        truncated=result.truncated,
        valid_records_truncated=result.valid_records_truncated,
    )


def _pre_validation_response(result: PreValidationResult) -> PreValidationResponse:
    return PreValidationResponse(
        total_rows=result.total_rows,
        analyzed_rows=result.analyzed_rows,
        valid_rows=result.valid_rows,
        invalid_rows=result.invalid_rows,
        raw_issues=[_raw_issue_response(issue) for issue in result.raw_issues],
        cancelled=result.cancelled,
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("/validators", response_model=ValidatorListResponse)
def list_validators(
    service: FeedValidationService = Depends(get_feed_validation_service),
) -> ValidatorListResponse:
    """
    List every registered validator definition.
    """

    return ValidatorListResponse(
        validators=[
            ValidatorDescriptionResponse(
                id=definition.id,
                name=definition.name,
                description=definition.description,
                version=definition.version,
                supported_formats=list(definition.supported_formats),
                canonical_fields=list(definition.canonical_fields),
                required_fields=list(definition.rule_set.required_fields),
                field_aliases={key: list(values) for key, values in definition.field_aliases.items()},
            )
            for definition in service.registry.all()
        ]
    )


@router.post("/mapping-suggestions", response_model=MappingSuggestionResponse)
def suggest_field_mapping(
    request: MappingSuggestionRequest,
    service: FeedValidationService = Depends(get_feed_validation_service),
) -> MappingSuggestionResponse:
    try:
        definition = service.registry.require(request.validator)
    except UnknownValidatorError as exc:
        raise _input_error(exc) from exc

    suggestion = suggest_mapping(
        request.headers,
        canonical_fields=definition.canonical_fields,
        aliases=definition.field_aliases,
    )
    return MappingSuggestionResponse(
        validator=definition.id,
        mappings=suggestion.source_to_canonical,
        match_strategies=suggestion.match_strategies,
        unmapped_headers=list(suggestion.unmapped_headers),
    )


@router.post("/validate", response_model=FeedValidationResponse)
async def validate_feed(
    file: UploadFile = Depends(get_feed_upload),
    validator: str = Form(...),
    include_valid_records: bool = Form(default=True),
    custom_mappings: str | None = Form(default=None),
    service: FeedValidationService = Depends(get_feed_validation_service),
) -> FeedValidationResponse:
    """
    Validate one uploaded feed file with normalization applied.
    """

    mapping = _parse_custom_mappings(custom_mappings)
    try:
        payload = await read_upload(file)
        result = await service.validate_file(
            filename=file.filename or "",
            payload=payload,
            validator_id=validator,
            include_valid_records=include_valid_records,
            custom_mappings=mapping,
        )
    except (UnknownValidatorError, FieldMappingError, FeedInputError) as exc:
        raise _input_error(exc) from exc
    finally:
        await file.close()

    return _validation_response(result)


@router.post("/pre-validate", response_model=PreValidationResponse)
async def pre_validate_feed(
    file: UploadFile = Depends(get_feed_upload),
    validator: str = Form(...),
    service: FeedValidationService = Depends(get_feed_validation_service),
) -> PreValidationResponse:
    """
    Check an uploaded feed as-is, without normalizing values.
    """

    try:
        payload = await read_upload(file)
        result = await service.pre_validate_file(
            filename=file.filename or "",
            payload=payload,
            validator_id=validator,
        )
    except (UnknownValidatorError, FeedInputError) as exc:
        raise _input_error(exc) from exc
    finally:
        await file.close()

    return _pre_validation_response(result)


@router.post("/export")
async def export_valid_records(
    file: UploadFile = Depends(get_feed_upload),
    validator: str = Form(...),
    custom_mappings: str | None = Form(default=None),
    compress: bool = Form(default=False),
    service: FeedValidationService = Depends(get_feed_validation_service),
) -> Response:
    """
    Validate a feed and return its valid, normalized records as JSONL.
    """

    mapping = _parse_custom_mappings(custom_mappings)
    try:
        payload = await read_upload(file)
        result = await service.validate_file(
            filename=file.filename or "",
            payload=payload,
            validator_id=validator,
            include_valid_records=True,
            custom_mappings=mapping,
        )
    except (UnknownValidatorError, FieldMappingError, FeedInputError) as exc:
        raise _input_error(exc) from exc
    finally:
        await file.close()

    records = result.summary.valid_records or []
    if result.valid_records_truncated:
        logger.warning(
            "Export truncated feed=%s exported=%s valid_rows=%s",
            result.file.name,
            len(records),
            result.summary.valid_rows,
        )

    filename = export_filename(result.file.name, compress=compress)
    return Response(
        content=export_jsonl(records, compress=compress),
        media_type=GZIP_MEDIA_TYPE if compress else JSONL_MEDIA_TYPE,
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "X-Valid-Rows": str(result.summary.valid_rows),
            "X-Exported-Rows": str(len(records)),
        },
    )
