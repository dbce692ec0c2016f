"""
feedcheck/services/validation_service.py

Service layer for feed validation runs.

A run drives every record of one feed through reconciliation, raw-issue
detection and schema validation, in source order:

    1. apply the caller's field mapping override, if any
    2. detect raw issues (first N rows only, for preview)
    3. reconcile (aliases, defaults, normalizers)
    4. validate against the validator's rule set
    5. update counters and the capped issue / valid-record buffers

Processing is chunked: every ``chunk_size`` records a progress snapshot is
emitted and control is yielded to the event loop. Cancellation is checked
at record boundaries only and ends the run with a partial summary.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterable, Callable, Iterable, Mapping
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Protocol

from feedcheck.config import get_feed_validation_settings
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
from feedcheck.logging_utils import log_event
from feedcheck.mappers.field_reconciler import apply_custom_mapping, reconcile
from feedcheck.sources.record_source import FeedFormat, FeedInputError, detect_format, open_record_source
from feedcheck.validators.mapping_validator import MappingValidator
from feedcheck.validators.raw_issues import DetectedRawIssue, RawIssueCollector, detect_raw_issues
from feedcheck.validators.registry import ValidatorDefinition, ValidatorRegistry, build_default_registry
from feedcheck.validators.rules import FieldKind

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressSnapshot], None]
RecordStream = Iterable[Mapping[str, Any]] | AsyncIterable[Mapping[str, Any]]


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ValidatorFormatError(FeedInputError):
    """
    Raised when the chosen validator does not accept the feed's base format.
    """

    def __init__(self, *, validator_id: str, base_format: str, supported: tuple[str, ...]) -> None:
        self.validator_id = validator_id
        self.base_format = base_format
        self.supported = supported
        super().__init__(
            f"Validator {validator_id} does not support {base_format} format. "
            f"Supported: {', '.join(supported)}."
        )


class CancellationSignal(Protocol):
    def is_set(self) -> bool:
        ...


# ---------------------------------------------------------------------------
# Run state
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RunOutcome:
    """
    Result of one orchestrated run over a record stream.
    """

    state: RunState
    summary: RunSummary
    raw_issues: list[RawFeedIssue]
    issues_truncated: bool
    valid_records_truncated: bool

    @property
    def cancelled(self) -> bool:
        return self.state == RunState.CANCELLED


class _RunCounters:
    """
    Mutable counters and capped buffers owned by exactly one run.
    """

    def __init__(self, *, total_rows: int, max_issues: int, max_valid_records: int) -> None:
        self.total_rows = total_rows
        self.processed_rows = 0
        self.valid_rows = 0
        self.invalid_rows = 0
        self.error_count = 0
        self.warning_count = 0
        self.issues: CappedList[ValidationIssue] = CappedList(max_issues)
        self.valid_records: CappedList[dict[str, Any]] = CappedList(max_valid_records)

    def snapshot(self, *, is_complete: bool = False, is_cancelled: bool = False) -> ProgressSnapshot:
        return ProgressSnapshot(
            total_rows=self.total_rows,
            processed_rows=self.processed_rows,
            valid_rows=self.valid_rows,
            invalid_rows=self.invalid_rows,
            error_count=self.error_count,
            warning_count=self.warning_count,
            is_complete=is_complete,
            is_cancelled=is_cancelled,
        )

    def summary(self, *, include_valid_records: bool) -> RunSummary:
        return RunSummary(
            total_rows=self.total_rows,
            processed_rows=self.processed_rows,
            valid_rows=self.valid_rows,
            invalid_rows=self.invalid_rows,
            error_count=self.error_count,
            warning_count=self.warning_count,
            issues=self.issues.to_list(),
            valid_records=self.valid_records.to_list() if include_valid_records else None,
        )


async def materialize_records(records: RecordStream) -> list[Mapping[str, Any]]:
    """
    Drain a sync or async record stream into a list.
    """

    if isinstance(records, AsyncIterable):
        return [record async for record in records]
    return list(records)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class FeedValidationService:
    """
    Coordinates feed parsing, reconciliation, validation, and aggregation.
    """

    def __init__(
        self,
        *,
        registry: ValidatorRegistry,
        chunk_size: int = 500,
        max_issues: int = 100,
        max_valid_records: int = 10000,
        max_raw_issues: int = 20,
        raw_preview_rows: int = 10,
        precheck_raw_preview_rows: int = 20,
        log_validation_issues: bool = False,
    ) -> None:
        self._registry = registry
        self._chunk_size = max(1, chunk_size)
        self._max_issues = max(0, max_issues)
        self._max_valid_records = max(0, max_valid_records)
        self._max_raw_issues = max(0, max_raw_issues)
        self._raw_preview_rows = max(0, raw_preview_rows)
        self._precheck_raw_preview_rows = max(0, precheck_raw_preview_rows)
        self._log_validation_issues = log_validation_issues

    @property
    def registry(self) -> ValidatorRegistry:
        return self._registry

    async def validate_file(
        self,
        *,
        filename: str,
        payload: bytes,
        validator_id: str,
        include_valid_records: bool = True,
        custom_mappings: Mapping[str, str] | None = None,
        on_progress: ProgressCallback | None = None,
        cancel_signal: CancellationSignal | None = None,
        chunk_size: int | None = None,
    ) -> FeedValidationResult:
        """
        Validate one feed file with value normalization applied.

        Unknown validators, unsupported formats, invalid mapping overrides and
        unreadable files raise before any record is processed. Cancellation
        returns a partial result with ``success=False``.
        """

        definition, feed_format = self.resolve_validator(validator_id=validator_id, filename=filename)
        mapping = self._validated_mapping(definition, custom_mappings)
        parsed = open_record_source(filename, payload)

        outcome = await self.run(
            parsed.records,
            definition,
            include_valid_records=include_valid_records,
            custom_mappings=mapping,
            on_progress=on_progress,
            cancel_signal=cancel_signal,
            chunk_size=chunk_size,
            feed_name=filename,
        )

        return FeedValidationResult(
            success=not outcome.cancelled,
            cancelled=outcome.cancelled,
            validator=ValidatorInfo(id=definition.id, name=definition.name, version=definition.version),
            file=FeedFileInfo(name=filename, format=feed_format.value, size=len(payload)),
            summary=outcome.summary,
            raw_issues=outcome.raw_issues,
            truncated=outcome.issues_truncated,
            valid_records_truncated=outcome.valid_records_truncated,
        )

    async def pre_validate_file(
        self,
        *,
        filename: str,
        payload: bytes,
        validator_id: str,
        on_progress: ProgressCallback | None = None,
        cancel_signal: CancellationSignal | None = None,
        chunk_size: int | None = None,
    ) -> PreValidationResult:
        """
        Check the feed as-is: aliases are resolved but no defaults or
        normalizers are applied, so the result reflects the uploaded values.
        """

        definition, _ = self.resolve_validator(validator_id=validator_id, filename=filename)
        parsed = open_record_source(filename, payload)

        outcome = await self.run(
            parsed.records,
            definition,
            include_valid_records=False,
            on_progress=on_progress,
            cancel_signal=cancel_signal,
            chunk_size=chunk_size,
            normalize=False,
            raw_preview_rows=self._precheck_raw_preview_rows,
            feed_name=filename,
        )

        summary = outcome.summary
        return PreValidationResult(
            total_rows=summary.total_rows,
            analyzed_rows=summary.processed_rows,
            valid_rows=summary.valid_rows,
            invalid_rows=summary.invalid_rows,
            raw_issues=outcome.raw_issues,
            cancelled=outcome.cancelled,
        )

    def resolve_validator(self, *, validator_id: str, filename: str) -> tuple[ValidatorDefinition, FeedFormat]:
        definition = self._registry.require(validator_id)
        feed_format = detect_format(filename)
        if not definition.supports(feed_format.base_format):
            raise ValidatorFormatError(
                validator_id=definition.id,
                base_format=feed_format.base_format,
                supported=definition.supported_formats,
            )
        return definition, feed_format

    async def run(
        self,
        records: RecordStream,
        definition: ValidatorDefinition,
        *,
        include_valid_records: bool = True,
        custom_mappings: Mapping[str, str] | None = None,
        on_progress: ProgressCallback | None = None,
        cancel_signal: CancellationSignal | None = None,
        chunk_size: int | None = None,
        normalize: bool = True,
        raw_preview_rows: int | None = None,
        feed_name: str | None = None,
    ) -> RunOutcome:
        """
        Drive one record stream through the pipeline.

        The stream is drained first so the total row count is known; record
        source errors therefore surface before the initial snapshot.
        """

        all_records = await materialize_records(records)
        effective_chunk_size = max(1, chunk_size) if chunk_size is not None else self._chunk_size
        preview_rows = self._raw_preview_rows if raw_preview_rows is None else max(0, raw_preview_rows)

        state = RunState.INITIALIZING
        counters = _RunCounters(
            total_rows=len(all_records),
            max_issues=self._max_issues,
            max_valid_records=self._max_valid_records,
        )
        raw_collector = RawIssueCollector(self._max_raw_issues)
        aliases = {} if custom_mappings else definition.field_aliases
        boolean_fields = definition.rule_set.fields_of_kind(FieldKind.BOOLEAN)
        url_fields = definition.rule_set.fields_of_kind(FieldKind.URL)

        log_event(
            logger,
            logging.INFO,
            "feed_validation_started",
            feed=feed_name,
            validator=definition.id,
            total_rows=counters.total_rows,
            normalize=normalize,
            custom_mapping=bool(custom_mappings),
        )
        self._emit(on_progress, counters.snapshot())

        state = RunState.PROCESSING
        processed_in_chunk = 0
        for index, raw_record in enumerate(all_records):
            if cancel_signal is not None and cancel_signal.is_set():
                state = RunState.CANCELLED
                break

            row = index + 1
            result, detected = self._process_record(
                raw_record,
                row=row,
                definition=definition,
                aliases=aliases,
                custom_mappings=custom_mappings,
                normalize=normalize,
                detect=row <= preview_rows,
                boolean_fields=boolean_fields,
                url_fields=url_fields,
            )
            raw_collector.add_all(detected)
            self._record_result(counters, result, include_valid_records=include_valid_records)

            processed_in_chunk += 1
            if processed_in_chunk >= effective_chunk_size:
                processed_in_chunk = 0
                self._emit(on_progress, counters.snapshot())
                await asyncio.sleep(0)

        if state == RunState.CANCELLED:
            self._emit(on_progress, counters.snapshot(is_cancelled=True))
            event = "feed_validation_cancelled"
        else:
            state = RunState.COMPLETED
            self._emit(on_progress, counters.snapshot(is_complete=True))
            event = "feed_validation_completed"

        log_event(
            logger,
            logging.INFO,
            event,
            feed=feed_name,
            validator=definition.id,
            total_rows=counters.total_rows,
            processed_rows=counters.processed_rows,
            valid_rows=counters.valid_rows,
            invalid_rows=counters.invalid_rows,
            error_count=counters.error_count,
            warning_count=counters.warning_count,
        )

        return RunOutcome(
            state=state,
            summary=counters.summary(include_valid_records=include_valid_records),
            raw_issues=raw_collector.to_list(),
            issues_truncated=counters.issues.is_truncated,
            valid_records_truncated=include_valid_records and counters.valid_records.is_truncated,
        )

    # ------------------------------------------------------------------
    # Run internals
    # ------------------------------------------------------------------

    def _process_record(
        self,
        raw_record: Mapping[str, Any],
        *,
        row: int,
        definition: ValidatorDefinition,
        aliases: Mapping[str, tuple[str, ...]],
        custom_mappings: Mapping[str, str] | None,
        normalize: bool,
        detect: bool,
        boolean_fields: tuple[str, ...],
        url_fields: tuple[str, ...],
    ) -> tuple[RecordValidationResult, list[DetectedRawIssue]]:
        mapped = apply_custom_mapping(raw_record, custom_mappings) if custom_mappings else raw_record
        detected: list[DetectedRawIssue] = []
        try:
            if detect:
                detected = detect_raw_issues(
                    mapped,
                    aliases,
                    definition.field_normalizers,
                    boolean_fields=boolean_fields,
                    url_fields=url_fields,
                )
            if normalize:
                canonical = reconcile(
                    mapped,
                    aliases,
                    definition.field_normalizers,
                    definition.default_values,
                )
            else:
                canonical = reconcile(mapped, aliases, {}, {})
            return definition.validate_record(canonical, row), detected
        except Exception as exc:  # noqa: BLE001
            logger.exception("Feed record processing failed row=%s validator=%s", row, definition.id)
            issue = ValidationIssue(
                row=row,
                field="",
                message=f"Record could not be processed: {exc}",
                severity=IssueSeverity.ERROR,
            )
            return (
                RecordValidationResult(row=row, is_valid=False, issues=[issue], normalized=dict(mapped)),
                detected,
            )

    def _record_result(
        self,
        counters: _RunCounters,
        result: RecordValidationResult,
        *,
        include_valid_records: bool,
    ) -> None:
        counters.processed_rows += 1
        if result.is_valid:
            counters.valid_rows += 1
            if include_valid_records and result.data is not None:
                counters.valid_records.append(result.data)
        else:
            counters.invalid_rows += 1

        for issue in result.issues:
            if issue.severity == IssueSeverity.ERROR:
                counters.error_count += 1
            elif issue.severity == IssueSeverity.WARNING:
                counters.warning_count += 1

            if self._log_validation_issues:
                logger.warning(
                    "Feed validation issue row=%s field=%s severity=%s message=%s value=%r",
                    issue.row,
                    issue.field,
                    issue.severity.value,
                    issue.message,
                    issue.value,
                )
            counters.issues.append(issue)

    @staticmethod
    def _validated_mapping(
        definition: ValidatorDefinition,
        custom_mappings: Mapping[str, str] | None,
    ) -> dict[str, str] | None:
        if not custom_mappings:
            return None
        validator = MappingValidator(canonical_fields=definition.canonical_fields)
        return validator.validate(mapping=custom_mappings) or None

    @staticmethod
    def _emit(on_progress: ProgressCallback | None, snapshot: ProgressSnapshot) -> None:
        if on_progress is not None:
            on_progress(snapshot)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def get_feed_validation_service() -> FeedValidationService:
    """
    Build and cache the validation service with env-driven settings.
    """
    settings = get_feed_validation_settings()
    return FeedValidationService(
        registry=build_default_registry(),
        chunk_size=settings.chunk_size,
        max_issues=settings.max_issues,
        max_valid_records=settings.max_valid_records,
        max_raw_issues=settings.max_raw_issues,
        raw_preview_rows=settings.raw_preview_rows,
        precheck_raw_preview_rows=settings.precheck_raw_preview_rows,
        log_validation_issues=settings.log_validation_issues,
    )
