"""
tests/test_validation_service.py

Pytest unit tests for FeedValidationService.

Coroutines are driven with asyncio.run so no async test plugin is needed.

Coverage
--------
- Counters and summary for mixed valid / invalid feeds
- Progress snapshot cadence and the counter invariant
- Cancellation at a chunk boundary
- Issue and valid-record caps with truncation flags
- Custom mapping override bypassing aliases
- Raw-issue preview window
- Per-record failure isolation
- Input errors raised before processing
- Pre-validation without normalization
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncIterator

import pytest

from feedcheck.domain.feed_records import ProgressSnapshot, RunState
from feedcheck.services.validation_service import FeedValidationService, ValidatorFormatError
from feedcheck.sources.record_source import RecordParseError, UnsupportedFormatError
from feedcheck.validators.mapping_validator import FieldMappingError
from feedcheck.validators.registry import UnknownValidatorError, ValidatorDefinition, ValidatorRegistry
from feedcheck.validators.rules import FieldRule, RuleSet


def _jsonl(records: list[dict[str, Any]]) -> bytes:
    return b"".join(json.dumps(record).encode("utf-8") + b"\n" for record in records)


def _explode_on_bad(value: Any) -> Any:
    if value == "bad":
        raise RuntimeError("normalizer exploded")
    return value


def _tiny_definition(**overrides: Any) -> ValidatorDefinition:
    values: dict[str, Any] = {
        "id": "tiny",
        "name": "Tiny",
        "description": "Single-field validator",
        "version": "0.1.0",
        "supported_formats": ("jsonl",),
        "rule_set": RuleSet([FieldRule(name="item_id", required=True)]),
        "field_normalizers": {"item_id": _explode_on_bad},
    }
    values.update(overrides)
    return ValidatorDefinition(**values)


# ---------------------------------------------------------------------------
# Full validation
# ---------------------------------------------------------------------------


class TestValidateFile:
    def test_mixed_feed_summary(self, service, make_record) -> None:
        records = [make_record(), make_record(title=None), make_record(item_id="SKU-003")]

        result = asyncio.run(
            service.validate_file(filename="feed.jsonl", payload=_jsonl(records), validator_id="openai")
        )

        assert result.success is True
        assert result.cancelled is False
        assert result.validator.id == "openai"
        assert result.file.format == "jsonl"
        assert result.file.size == len(_jsonl(records))
        summary = result.summary
        assert (summary.total_rows, summary.processed_rows) == (3, 3)
        assert (summary.valid_rows, summary.invalid_rows) == (2, 1)
        assert summary.error_count == 1
        assert summary.issues[0].row == 2
        assert summary.issues[0].field == "title"
        assert [record["item_id"] for record in summary.valid_records] == ["SKU-001", "SKU-003"]

    def test_validator_id_is_case_insensitive(self, service, make_record) -> None:
        result = asyncio.run(
            service.validate_file(filename="feed.jsonl", payload=_jsonl([make_record()]), validator_id="OpenAI")
        )

        assert result.summary.valid_rows == 1

    def test_csv_feed(self, service) -> None:
        payload = (
            "item_id,title,description,url,brand,price,availability,image_url,"
            "return_policy,return_window,target_countries,store_country,is_eligible_search\n"
            "A1,Linen Shirt,Breathable linen,https://shop.example.com/a1,Acme,\"19,99 EUR\",In Stock,"
            "https://shop.example.com/a1.jpg,https://shop.example.com/returns,30 days,\"us,gb\",us,TRUE\n"
        ).encode("utf-8")

        result = asyncio.run(service.validate_file(filename="feed.csv", payload=payload, validator_id="openai"))

        assert result.summary.valid_rows == 1, result.summary.issues
        record = result.summary.valid_records[0]
        assert record["price"] == "19.99 EUR"
        assert record["availability"] == "in_stock"
        assert record["return_window"] == 30
        assert record["is_eligible_search"] is True
        problems = {issue.problem for issue in result.raw_issues}
        assert "Price format corrected (comma → dot)" in problems
        assert "Boolean as string → will convert to true" in problems

    def test_custom_mapping_bypasses_aliases(self, service, make_record) -> None:
        raw = make_record(item_id=None, title=None)
        raw["sku"] = "A1"
        raw["name"] = "Linen Shirt"

        result = asyncio.run(
            service.validate_file(
                filename="feed.jsonl",
                payload=_jsonl([raw]),
                validator_id="openai",
                custom_mappings={"sku": "item_id"},
            )
        )

        issues = {issue.field: issue.message for issue in result.summary.issues}
        assert "item_id" not in issues
        assert issues["title"] == "Required value is missing."

    def test_custom_mapping_produces_valid_record(self, service, make_record) -> None:
        raw = make_record(item_id=None)
        raw["sku"] = "A1"

        result = asyncio.run(
            service.validate_file(
                filename="feed.jsonl",
                payload=_jsonl([raw]),
                validator_id="openai",
                custom_mappings={"sku": "item_id"},
            )
        )

        assert result.summary.valid_records[0]["item_id"] == "A1"

    def test_raw_issue_preview_is_limited(self, registry, make_record) -> None:
        service = FeedValidationService(registry=registry, raw_preview_rows=10)
        records = [make_record(item_id=f"SKU-{index}", price="19,99 EUR") for index in range(15)]

        result = asyncio.run(
            service.validate_file(filename="feed.jsonl", payload=_jsonl(records), validator_id="openai")
        )

        assert result.summary.valid_rows == 15
        assert len(result.raw_issues) == 1
        assert result.raw_issues[0].count == 10

    def test_raw_issues_do_not_affect_validity(self, service, make_record) -> None:
        record = make_record(url="http://localhost:3000/products/1")

        result = asyncio.run(
            service.validate_file(filename="feed.jsonl", payload=_jsonl([record]), validator_id="openai")
        )

        assert result.summary.valid_rows == 1
        assert result.raw_issues[0].severity.value == "warning"

    def test_is_deterministic(self, service, make_record) -> None:
        records = [make_record(price="19,99 EUR"), make_record(url="bad"), make_record(availability="Sold Out")]
        payload = _jsonl(records)

        first = asyncio.run(service.validate_file(filename="feed.jsonl", payload=payload, validator_id="openai"))
        second = asyncio.run(service.validate_file(filename="feed.jsonl", payload=payload, validator_id="openai"))

        assert first == second


# ---------------------------------------------------------------------------
# Input errors
# ---------------------------------------------------------------------------


class TestInputErrors:
    def test_unknown_validator(self, service) -> None:
        with pytest.raises(UnknownValidatorError) as excinfo:
            asyncio.run(service.validate_file(filename="feed.jsonl", payload=b"", validator_id="amazon"))

        assert excinfo.value.available == ("openai",)

    def test_unsupported_format(self, service) -> None:
        with pytest.raises(UnsupportedFormatError):
            asyncio.run(service.validate_file(filename="feed.xml", payload=b"", validator_id="openai"))

    def test_validator_format_mismatch(self) -> None:
        service = FeedValidationService(registry=ValidatorRegistry([_tiny_definition()]))

        with pytest.raises(ValidatorFormatError) as excinfo:
            asyncio.run(service.validate_file(filename="feed.csv", payload=b"item_id\nA\n", validator_id="tiny"))

        assert excinfo.value.supported == ("jsonl",)

    def test_invalid_custom_mapping(self, service, make_record) -> None:
        with pytest.raises(FieldMappingError):
            asyncio.run(
                service.validate_file(
                    filename="feed.jsonl",
                    payload=_jsonl([make_record()]),
                    validator_id="openai",
                    custom_mappings={"sku": "not_a_field"},
                )
            )

    def test_malformed_line_fails_the_run(self, service) -> None:
        with pytest.raises(RecordParseError):
            asyncio.run(
                service.validate_file(filename="feed.jsonl", payload=b"{oops\n", validator_id="openai")
            )


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------


class TestRun:
    def test_progress_cadence_and_invariant(self, service, openai_validator, make_record) -> None:
        snapshots: list[ProgressSnapshot] = []
        records = [make_record(item_id=f"SKU-{index}", url="bad" if index % 3 == 0 else None) for index in range(120)]
        for record in records:
            record.setdefault("url", "https://shop.example.com/p")

        outcome = asyncio.run(service.run(records, openai_validator, on_progress=snapshots.append, chunk_size=50))

        assert [snapshot.processed_rows for snapshot in snapshots] == [0, 50, 100, 120]
        for snapshot in snapshots:
            assert snapshot.processed_rows == snapshot.valid_rows + snapshot.invalid_rows
            assert snapshot.total_rows == 120
        assert snapshots[-1].is_complete
        assert not any(snapshot.is_complete for snapshot in snapshots[:-1])
        assert outcome.state == RunState.COMPLETED
        assert outcome.summary.invalid_rows == 40
        for earlier, later in zip(snapshots, snapshots[1:]):
            assert later.error_count >= earlier.error_count
            assert later.warning_count >= earlier.warning_count
        assert snapshots[-1].error_count == 40

    def test_cancellation_after_first_chunk(self, service, openai_validator, make_record) -> None:
        records = [make_record(item_id=f"SKU-{index}") for index in range(1000)]
        snapshots: list[ProgressSnapshot] = []

        async def scenario():
            cancel = asyncio.Event()

            def on_progress(snapshot: ProgressSnapshot) -> None:
                snapshots.append(snapshot)
                if snapshot.processed_rows >= 50:
                    cancel.set()

            return await service.run(
                records,
                openai_validator,
                on_progress=on_progress,
                cancel_signal=cancel,
                chunk_size=50,
            )

        outcome = asyncio.run(scenario())

        final = snapshots[-1]
        assert final.processed_rows == 50
        assert final.is_cancelled is True
        assert final.is_complete is False
        assert outcome.cancelled
        assert outcome.summary.processed_rows == 50
        assert outcome.summary.total_rows == 1000
        assert len(outcome.summary.valid_records) == 50

    def test_cancelled_file_result(self, service, make_record) -> None:
        class AlreadySet:
            def is_set(self) -> bool:
                return True

        result = asyncio.run(
            service.validate_file(
                filename="feed.jsonl",
                payload=_jsonl([make_record(), make_record()]),
                validator_id="openai",
                cancel_signal=AlreadySet(),
            )
        )

        assert result.success is False
        assert result.cancelled is True
        assert result.summary.processed_rows == 0

    def test_caps_and_truncation_flags(self, registry, openai_validator, make_record) -> None:
        service = FeedValidationService(registry=registry, max_issues=3, max_valid_records=2)
        records = [make_record(title=None) for _ in range(5)] + [make_record() for _ in range(4)]

        outcome = asyncio.run(service.run(records, openai_validator))

        assert len(outcome.summary.issues) == 3
        assert outcome.summary.error_count == 5
        assert outcome.issues_truncated is True
        assert len(outcome.summary.valid_records) == 2
        assert outcome.summary.valid_rows == 4
        assert outcome.valid_records_truncated is True

    def test_valid_records_can_be_omitted(self, service, openai_validator, make_record) -> None:
        outcome = asyncio.run(service.run([make_record()], openai_validator, include_valid_records=False))

        assert outcome.summary.valid_records is None
        assert outcome.valid_records_truncated is False
        assert outcome.summary.valid_rows == 1

    def test_async_record_stream(self, service, openai_validator, make_record) -> None:
        async def stream() -> AsyncIterator[dict[str, Any]]:
            for index in range(3):
                yield make_record(item_id=f"SKU-{index}")

        outcome = asyncio.run(service.run(stream(), openai_validator))

        assert outcome.summary.valid_rows == 3

    def test_record_failure_is_isolated(self) -> None:
        definition = _tiny_definition()
        service = FeedValidationService(registry=ValidatorRegistry([definition]))

        outcome = asyncio.run(service.run([{"item_id": "a"}, {"item_id": "bad"}, {"item_id": "c"}], definition))

        assert outcome.summary.processed_rows == 3
        assert outcome.summary.valid_rows == 2
        issue = outcome.summary.issues[0]
        assert issue.row == 2
        assert issue.field == ""
        assert issue.message.startswith("Record could not be processed")

    def test_empty_feed(self, service, openai_validator) -> None:
        snapshots: list[ProgressSnapshot] = []

        outcome = asyncio.run(service.run([], openai_validator, on_progress=snapshots.append))

        assert outcome.state == RunState.COMPLETED
        assert [snapshot.is_complete for snapshot in snapshots] == [False, True]

    def test_structured_log_events(self, service, openai_validator, make_record, caplog) -> None:
        caplog.set_level(logging.INFO, logger="feedcheck.services.validation_service")

        asyncio.run(service.run([make_record()], openai_validator, feed_name="feed.jsonl"))

        events = [
            json.loads(record.getMessage())["event"]
            for record in caplog.records
            if record.name == "feedcheck.services.validation_service"
        ]
        assert events == ["feed_validation_started", "feed_validation_completed"]


# ---------------------------------------------------------------------------
# Pre-validation
# ---------------------------------------------------------------------------


class TestPreValidate:
    def test_values_are_checked_as_is(self, registry, make_record) -> None:
        service = FeedValidationService(registry=registry, precheck_raw_preview_rows=20)
        clean = make_record(is_eligible_search=True, is_eligible_checkout=False)
        messy = make_record(is_eligible_search=True, is_eligible_checkout=False, availability="In Stock")

        result = asyncio.run(
            service.pre_validate_file(filename="feed.jsonl", payload=_jsonl([clean, messy]), validator_id="openai")
        )

        assert result.total_rows == 2
        assert result.analyzed_rows == 2
        assert (result.valid_rows, result.invalid_rows) == (1, 1)
        assert result.cancelled is False
        assert [issue.problem for issue in result.raw_issues] == ["Availability format standardized"]

    def test_defaults_are_not_injected(self, service, make_record) -> None:
        result = asyncio.run(
            service.pre_validate_file(filename="feed.jsonl", payload=_jsonl([make_record()]), validator_id="openai")
        )

        assert result.invalid_rows == 1

    def test_aliases_are_still_resolved(self, service, make_record) -> None:
        raw = make_record(item_id=None, is_eligible_search=True, is_eligible_checkout=False)
        raw["id"] = "A1"

        result = asyncio.run(
            service.pre_validate_file(filename="feed.jsonl", payload=_jsonl([raw]), validator_id="openai")
        )

        assert result.valid_rows == 1
        assert result.raw_issues[0].problem == 'Field "id" renamed to "item_id"'
