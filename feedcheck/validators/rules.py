"""
feedcheck/validators/rules.py

Declarative field rules and the rule-set engine that validates reconciled
feed records.

A validator definition describes each canonical field with a ``FieldRule``
and any relationships between fields with ``CrossFieldRule`` predicates.
``RuleSet`` compiles them once and is reused for every record.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Mapping, Sequence

from pydantic import AnyUrl, TypeAdapter, ValidationError

from feedcheck.domain.feed_records import IssueSeverity, RecordValidationResult, ValidationIssue
from feedcheck.mappers.field_reconciler import is_missing

_URL_ADAPTER = TypeAdapter(AnyUrl)

_AMOUNT_WITH_CURRENCY = re.compile(r"^(?P<amount>\d+(?:\.\d{1,2})?)\s?(?P<currency>[A-Z]{3})$")
_NUMERIC_STRING = re.compile(r"^\d+(?:\.\d+)?$")
_INTEGER_STRING = re.compile(r"^\d+$")
_ISO_DATE = re.compile(
    r"^\d{4}-\d{2}-\d{2}(T\d{2}:\d{2}:\d{2}(\.\d{1,6})?(Z|[+-]\d{2}:\d{2})?)?$"
)
_FRACTION = re.compile(r"\.\d{1,6}")
_COUNTRY_CODE = re.compile(r"^[A-Z]{2}$")

TRUE_STRINGS = frozenset({"true", "1"})
FALSE_STRINGS = frozenset({"false", "0"})

REQUIRED_MESSAGE = "Required value is missing."


class FieldKind(str, Enum):
    STRING = "string"
    URL = "url"
    ENUM = "enum"
    PRICE = "price"
    DATE = "date"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    NUMBER = "number"
    CODE_LIST = "code_list"


class FieldRuleViolation(ValueError):
    """
    Raised by a field parser when a value breaks its rule.
    """


@dataclass(frozen=True)
class FieldRule:
    """
    Constraint descriptor for one canonical field.
    """

    name: str
    kind: FieldKind = FieldKind.STRING
    required: bool = False
    min_length: int | None = None
    max_length: int | None = None
    choices: tuple[str, ...] = ()
    minimum: float | None = None
    maximum: float | None = None
    exclusive_minimum: bool = False
    check: Callable[[Any], str | None] | None = None


@dataclass(frozen=True)
class CrossFieldRule:
    """
    Predicate over a typed record.

    ``fields`` lists every field the predicate reads; the rule is skipped
    when any of them failed its own field rule. Issues are reported under
    ``field``.
    """

    field: str
    message: str
    fields: tuple[str, ...]
    predicate: Callable[[Mapping[str, Any]], bool]


def price_amount(value: Any) -> float | None:
    """
    Return the numeric amount of a typed price value.
    """

    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        try:
            return float(value)
        except OverflowError:
            return math.inf if value > 0 else -math.inf
    if isinstance(value, float):
        return value
    if isinstance(value, str):
        match = _AMOUNT_WITH_CURRENCY.match(value)
        if match is not None:
            return float(match.group("amount"))
        if _NUMERIC_STRING.match(value):
            return float(value)
    return None


def parse_boolean(value: Any) -> bool | None:
    """
    Resolve a boolean or boolean-like value; None when it is not one.
    """

    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_STRINGS:
            return True
        if lowered in FALSE_STRINGS:
            return False
    return None


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and math.isfinite(value)


def _check_length(rule: FieldRule, text: str) -> None:
    if rule.min_length is not None and len(text) < rule.min_length:
        raise FieldRuleViolation(f"Must be at least {rule.min_length} character(s).")
    if rule.max_length is not None and len(text) > rule.max_length:
        raise FieldRuleViolation(f"Must be at most {rule.max_length} characters.")


def _check_bounds(rule: FieldRule, number: float) -> None:
    if rule.minimum is not None:
        if rule.exclusive_minimum and number <= rule.minimum:
            raise FieldRuleViolation(f"Must be greater than {rule.minimum:g}.")
        if not rule.exclusive_minimum and number < rule.minimum:
            raise FieldRuleViolation(f"Must be at least {rule.minimum:g}.")
    if rule.maximum is not None and number > rule.maximum:
        raise FieldRuleViolation(f"Must be at most {rule.maximum:g}.")


def _parse_string(rule: FieldRule, value: Any) -> str:
    if _is_number(value):
        value = str(value)
    if not isinstance(value, str):
        raise FieldRuleViolation("Expected a text value.")
    _check_length(rule, value)
    return value


def _parse_url(rule: FieldRule, value: Any) -> str:
    if not isinstance(value, str):
        raise FieldRuleViolation("Expected a URL string.")
    _check_length(rule, value)
    try:
        _URL_ADAPTER.validate_python(value)
    except ValidationError as exc:
        raise FieldRuleViolation("Invalid URL.") from exc
    return value


def _parse_enum(rule: FieldRule, value: Any) -> str:
    if not isinstance(value, str) or value not in rule.choices:
        allowed = ", ".join(rule.choices)
        raise FieldRuleViolation(f"Invalid value. Allowed values: {allowed}.")
    return value


def _parse_price(rule: FieldRule, value: Any) -> float | str:
    if _is_number(value):
        parsed: float | str = value
    elif isinstance(value, str) and _NUMERIC_STRING.match(value):
        parsed = float(value)
    elif isinstance(value, str) and _AMOUNT_WITH_CURRENCY.match(value):
        parsed = value
    else:
        raise FieldRuleViolation("Price must be a number or 'amount CUR' format.")

    amount = price_amount(parsed)
    if amount is not None:
        _check_bounds(rule, amount)
    return parsed


def _parse_date(rule: FieldRule, value: Any) -> str:
    if not isinstance(value, str) or not _ISO_DATE.match(value):
        raise FieldRuleViolation("Date must be in ISO 8601 format.")
    normalized = value[:-1] + "+00:00" if value.endswith("Z") else value
    # fromisoformat before 3.11 only accepts 3 or 6 fractional digits
    normalized = _FRACTION.sub(lambda match: match.group(0).ljust(7, "0"), normalized)
    try:
        datetime.fromisoformat(normalized)
    except ValueError as exc:
        raise FieldRuleViolation("Date must be a valid calendar date.") from exc
    return value


def _parse_boolean(rule: FieldRule, value: Any) -> bool:
    parsed = parse_boolean(value)
    if parsed is None:
        raise FieldRuleViolation("Must be a boolean (true or false).")
    return parsed


def _parse_integer(rule: FieldRule, value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        parsed = value
    elif _is_number(value) and float(value).is_integer():
        parsed = int(value)
    elif isinstance(value, str) and _INTEGER_STRING.match(value):
        parsed = int(value)
    else:
        raise FieldRuleViolation("Must be a whole number.")
    _check_bounds(rule, parsed)
    return parsed


def _parse_number(rule: FieldRule, value: Any) -> float | int:
    if _is_number(value):
        parsed: float | int = value
    elif isinstance(value, str) and _NUMERIC_STRING.match(value):
        parsed = float(value)
    else:
        raise FieldRuleViolation("Must be a number.")
    _check_bounds(rule, parsed)
    return parsed


def _parse_code_list(rule: FieldRule, value: Any) -> str:
    if not isinstance(value, str):
        raise FieldRuleViolation("Expected a comma-separated list of country codes.")
    _check_length(rule, value)
    codes = [code.strip() for code in value.split(",")]
    invalid = [code for code in codes if not _COUNTRY_CODE.match(code)]
    if invalid:
        raise FieldRuleViolation(
            "Must be a comma-separated list of ISO 3166-1 alpha-2 country codes."
        )
    if rule.choices:
        unknown = [code for code in codes if code not in rule.choices]
        if unknown:
            raise FieldRuleViolation(f"Unsupported country code(s): {', '.join(unknown)}.")
    return value


_PARSERS: dict[FieldKind, Callable[[FieldRule, Any], Any]] = {
    FieldKind.STRING: _parse_string,
    FieldKind.URL: _parse_url,
    FieldKind.ENUM: _parse_enum,
    FieldKind.PRICE: _parse_price,
    FieldKind.DATE: _parse_date,
    FieldKind.BOOLEAN: _parse_boolean,
    FieldKind.INTEGER: _parse_integer,
    FieldKind.NUMBER: _parse_number,
    FieldKind.CODE_LIST: _parse_code_list,
}


class RuleSet:
    """
    Compiled field and cross-field rules for one validator definition.
    """

    def __init__(
        self,
        field_rules: Sequence[FieldRule],
        cross_field_rules: Sequence[CrossFieldRule] = (),
    ) -> None:
        names = [rule.name for rule in field_rules]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate field rules: {', '.join(duplicates)}.")

        self._field_rules = tuple(field_rules)
        self._parsers = tuple((rule, _PARSERS[rule.kind]) for rule in self._field_rules)
        self._cross_field_rules = tuple(cross_field_rules)

    @property
    def field_rules(self) -> tuple[FieldRule, ...]:
        return self._field_rules

    @property
    def canonical_fields(self) -> tuple[str, ...]:
        return tuple(rule.name for rule in self._field_rules)

    @property
    def required_fields(self) -> tuple[str, ...]:
        return tuple(rule.name for rule in self._field_rules if rule.required)

    def fields_of_kind(self, kind: FieldKind) -> tuple[str, ...]:
        return tuple(rule.name for rule in self._field_rules if rule.kind == kind)

    def validate(self, record: Mapping[str, Any], *, row: int) -> RecordValidationResult:
        """
        Validate one reconciled record. Never raises for data problems.
        """

        issues: list[ValidationIssue] = []
        typed: dict[str, Any] = {}
        failed: set[str] = set()

        for rule, parser in self._parsers:
            value = record.get(rule.name)
            if is_missing(value):
                if rule.required:
                    failed.add(rule.name)
                    issues.append(self._issue(row, rule.name, REQUIRED_MESSAGE, value))
                continue

            try:
                parsed = parser(rule, value)
                if rule.check is not None:
                    message = rule.check(parsed)
                    if message:
                        raise FieldRuleViolation(message)
            except FieldRuleViolation as exc:
                failed.add(rule.name)
                issues.append(self._issue(row, rule.name, str(exc), value))
                continue

            typed[rule.name] = parsed

        for cross_rule in self._cross_field_rules:
            if failed.intersection(cross_rule.fields):
                continue
            if not cross_rule.predicate(typed):
                issues.append(
                    self._issue(row, cross_rule.field, cross_rule.message, record.get(cross_rule.field))
                )

        is_valid = not any(issue.severity == IssueSeverity.ERROR for issue in issues)
        return RecordValidationResult(
            row=row,
            is_valid=is_valid,
            issues=issues,
            data=typed if is_valid else None,
            normalized=dict(record),
        )

    @staticmethod
    def _issue(row: int, field_name: str, message: str, value: Any) -> ValidationIssue:
        return ValidationIssue(
            row=row,
            field=field_name,
            message=message,
            severity=IssueSeverity.ERROR,
            value=value,
        )
