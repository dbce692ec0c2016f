"""
Validator definitions and the registry that resolves them by id.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable

from feedcheck.domain.feed_records import RecordValidationResult
from feedcheck.validators.rules import RuleSet

BASE_FORMATS: tuple[str, ...] = ("jsonl", "csv")


class UnknownValidatorError(LookupError):
    """
    Raised when a validator id is not registered.
    """

    def __init__(self, validator_id: str, available: Iterable[str]) -> None:
        self.validator_id = validator_id
        self.available = tuple(available)
        available_csv = ", ".join(self.available) or "<none>"
        super().__init__(f"Unknown validator: {validator_id}. Available: {available_csv}")


@dataclass(frozen=True)
class ValidatorDefinition:
    """
    Everything the pipeline needs to reconcile and validate one feed type.
    """

    id: str
    name: str
    description: str
    version: str
    supported_formats: tuple[str, ...]
    rule_set: RuleSet
    field_aliases: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    field_normalizers: Mapping[str, Callable[[Any], Any]] = field(default_factory=dict)
    default_values: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        unsupported = [fmt for fmt in self.supported_formats if fmt not in BASE_FORMATS]
        if unsupported:
            raise ValueError(f"Unsupported base formats for {self.id}: {', '.join(unsupported)}.")
        object.__setattr__(self, "field_aliases", MappingProxyType(dict(self.field_aliases)))
        object.__setattr__(self, "field_normalizers", MappingProxyType(dict(self.field_normalizers)))
        object.__setattr__(self, "default_values", MappingProxyType(dict(self.default_values)))

    @property
    def canonical_fields(self) -> tuple[str, ...]:
        return self.rule_set.canonical_fields

    def supports(self, base_format: str) -> bool:
        return base_format in self.supported_formats

    def validate_record(self, record: Mapping[str, Any], row: int) -> RecordValidationResult:
        return self.rule_set.validate(record, row=row)


class ValidatorRegistry:
    """
    Explicit id-to-definition registry passed to every pipeline invocation.
    """

    def __init__(self, definitions: Iterable[ValidatorDefinition] = ()) -> None:
        self._definitions: dict[str, ValidatorDefinition] = {}
        for definition in definitions:
            self.register(definition)

    def register(self, definition: ValidatorDefinition) -> None:
        key = definition.id.strip().lower()
        if key in self._definitions:
            raise ValueError(f"Validator already registered: {definition.id}")
        self._definitions[key] = definition

    def get(self, validator_id: str) -> ValidatorDefinition | None:
        return self._definitions.get(validator_id.strip().lower())

    def require(self, validator_id: str) -> ValidatorDefinition:
        definition = self.get(validator_id)
        if definition is None:
            raise UnknownValidatorError(validator_id, self.ids())
        return definition

    def ids(self) -> list[str]:
        return list(self._definitions)

    def all(self) -> list[ValidatorDefinition]:
        return list(self._definitions.values())

    def __contains__(self, validator_id: object) -> bool:
        return isinstance(validator_id, str) and self.get(validator_id) is not None

    def __len__(self) -> int:
        return len(self._definitions)


def build_default_registry() -> ValidatorRegistry:
    """
    Build a registry with every built-in validator definition.
    """

    from feedcheck.validators.openai_feed import build_openai_validator

    return ValidatorRegistry([build_openai_validator()])
