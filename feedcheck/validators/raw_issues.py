"""
feedcheck/validators/raw_issues.py

Advisory findings that explain what reconciliation will change in a raw
feed record. Findings never affect whether a record is valid.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Sequence

from feedcheck.domain.feed_records import IssueSeverity, RawFeedIssue
from feedcheck.mappers.field_reconciler import FieldAliases, FieldNormalizers, is_missing
from feedcheck.validators.normalizers import (
    normalize_availability,
    normalize_condition,
    normalize_price,
    normalize_return_window,
)
from feedcheck.validators.rules import parse_boolean

LOOPBACK_TOKENS: tuple[str, ...] = ("localhost", "127.0.0.1")
MIN_RETURN_WINDOW_DAYS = 7
DEFAULT_MAX_RAW_ISSUES = 20

_LEADING_INTEGER = re.compile(r"^\s*(\d+)")
_NON_AMOUNT = re.compile(r"[^\d.,]")

NORMALIZER_PROBLEMS: dict[Callable[[Any], Any], str] = {
    normalize_price: "Price format corrected (comma → dot)",
    normalize_availability: "Availability format standardized",
    normalize_return_window: "Return window extracted (days → number)",
    normalize_condition: "Condition value translated",
}
GENERIC_NORMALIZER_PROBLEM = "Value normalized"


@dataclass(frozen=True)
class DetectedRawIssue:
    field: str
    original: Any
    problem: str
    severity: IssueSeverity
    fixed: Any = None


def _find_value(
    record: Mapping[str, Any],
    field_name: str,
    aliases: FieldAliases,
) -> tuple[str, Any] | None:
    value = record.get(field_name)
    if not is_missing(value):
        return field_name, value
    for alias in aliases.get(field_name, ()):
        alias_value = record.get(alias)
        if not is_missing(alias_value):
            return alias, alias_value
    return None


def _amount_marks(value: Any) -> str:
    return _NON_AMOUNT.sub("", str(value))


def _normalizer_problem(normalizer: Callable[[Any], Any], original: Any, normalized: Any) -> str:
    # Trimming or moving the currency code is not a separator fix
    if normalizer is normalize_price and _amount_marks(original) == _amount_marks(normalized):
        return GENERIC_NORMALIZER_PROBLEM
    return NORMALIZER_PROBLEMS.get(normalizer, GENERIC_NORMALIZER_PROBLEM)


def _leading_integer(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        match = _LEADING_INTEGER.match(value)
        if match is not None:
            return int(match.group(1))
    return None


def detect_raw_issues(
    record: Mapping[str, Any],
    aliases: FieldAliases,
    normalizers: FieldNormalizers,
    *,
    boolean_fields: Sequence[str] = (),
    url_fields: Sequence[str] = (),
    return_window_field: str = "return_window",
) -> list[DetectedRawIssue]:
    """
    Detect advisory issues in one raw (or custom-mapped) record.

    Values are looked up under the canonical name first, then under the
    first alias carrying a value. Findings are reported under the source
    field name actually used.
    """

    issues: list[DetectedRawIssue] = []

    for field_name in boolean_fields:
        found = _find_value(record, field_name, aliases)
        if found is None or not isinstance(found[1], str):
            continue
        source_field, value = found
        resolved = parse_boolean(value)
        if resolved is None:
            continue
        issues.append(
            DetectedRawIssue(
                field=source_field,
                original=value,
                fixed=resolved,
                problem=f"Boolean as string → will convert to {str(resolved).lower()}",
                severity=IssueSeverity.WARNING,
            )
        )

    for field_name in url_fields:
        found = _find_value(record, field_name, aliases)
        if found is None or not isinstance(found[1], str):
            continue
        source_field, value = found
        lowered = value.lower()
        if any(token in lowered for token in LOOPBACK_TOKENS):
            issues.append(
                DetectedRawIssue(
                    field=source_field,
                    original=value,
                    problem="URL contains localhost - will not be reachable by the platform",
                    severity=IssueSeverity.WARNING,
                )
            )

    found = _find_value(record, return_window_field, aliases)
    if found is not None:
        source_field, value = found
        days = _leading_integer(value)
        if days is not None and days < MIN_RETURN_WINDOW_DAYS:
            issues.append(
                DetectedRawIssue(
                    field=source_field,
                    original=value,
                    problem=f"Return window is only {days} day(s) - unusually short",
                    severity=IssueSeverity.WARNING,
                )
            )

    for canonical_field, alias_list in aliases.items():
        if not is_missing(record.get(canonical_field)):
            continue
        for alias in alias_list:
            if is_missing(record.get(alias)):
                continue
            issues.append(
                DetectedRawIssue(
                    field=alias,
                    original=alias,
                    fixed=canonical_field,
                    problem=f'Field "{alias}" renamed to "{canonical_field}"',
                    severity=IssueSeverity.INFO,
                )
            )

    for field_name, normalizer in normalizers.items():
        found = _find_value(record, field_name, aliases)
        if found is None:
            continue
        source_field, value = found
        normalized = normalizer(value)
        if normalized == value and type(normalized) is type(value):
            continue
        issues.append(
            DetectedRawIssue(
                field=source_field,
                original=value,
                fixed=normalized,
                problem=_normalizer_problem(normalizer, value, normalized),
                severity=IssueSeverity.INFO,
            )
        )

    return issues


class RawIssueCollector:
    """
    Deduplicates raw findings by (field, problem) with a cap on distinct entries.

    Repeats of a retained finding increase its count; new findings beyond
    the cap are dropped.
    """

    def __init__(self, capacity: int = DEFAULT_MAX_RAW_ISSUES) -> None:
        self._capacity = max(0, capacity)
        self._entries: dict[tuple[str, str], DetectedRawIssue] = {}
        self._counts: dict[tuple[str, str], int] = {}

    def add(self, issue: DetectedRawIssue) -> None:
        key = (issue.field, issue.problem)
        if key in self._entries:
            self._counts[key] += 1
        elif len(self._entries) < self._capacity:
            self._entries[key] = issue
            self._counts[key] = 1

    def add_all(self, issues: Sequence[DetectedRawIssue]) -> None:
        for issue in issues:
            self.add(issue)

    def to_list(self) -> list[RawFeedIssue]:
        return [
            RawFeedIssue(
                field=issue.field,
                original_value=issue.original,
                problem=issue.problem,
                severity=issue.severity,
                fixed_value=issue.fixed,
                count=self._counts[key],
            )
            for key, issue in self._entries.items()
        ]

    def __len__(self) -> int:
        return len(self._entries)
