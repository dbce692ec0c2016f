"""
feedcheck/validators/mapping_validator.py

Validation for caller-supplied field mapping overrides.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Sequence


@dataclass(frozen=True)
class MappingErrorDetail:
    """
    Structured mapping error detail.
    """

    code: str
    message: str
    canonical_field: str | None = None
    source_column: str | None = None
    context: dict[str, Any] | None = None


class FieldMappingError(ValueError):
    """
    Raised when a field mapping override cannot be applied safely.
    """

    def __init__(self, *, message: str, errors: Sequence[MappingErrorDetail]) -> None:
        super().__init__(message)
        self.message = message
        self.errors = tuple(errors)

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "errors": [
                {
                    "code": error.code,
                    "message": error.message,
                    "canonical_field": error.canonical_field,
                    "source_column": error.source_column,
                    "context": error.context,
                }
                for error in self.errors
            ],
        }


class MappingValidator:
    """
    Validates source-to-canonical mapping overrides against a validator's fields.
    """

    def __init__(self, *, canonical_fields: Sequence[str]) -> None:
        self._canonical_fields = tuple(canonical_fields)
        self._canonical_set = set(self._canonical_fields)

    def validate(self, *, mapping: Mapping[str, str]) -> dict[str, str]:
        """
        Return the cleaned mapping or raise ``FieldMappingError``.

        Entries with a blank source or target are dropped.
        """

        cleaned: dict[str, str] = {}
        errors: list[MappingErrorDetail] = []
        claimed_by: dict[str, str] = {}

        for source_column, canonical_field in mapping.items():
            if not isinstance(source_column, str) or not isinstance(canonical_field, str):
                errors.append(
                    MappingErrorDetail(
                        code="invalid_mapping_entry",
                        message="Mapping keys and values must be strings.",
                        source_column=str(source_column),
                    )
                )
                continue

            source = source_column.strip()
            target = canonical_field.strip()
            if not source or not target:
                continue

            if target not in self._canonical_set:
                errors.append(
                    MappingErrorDetail(
                        code="unknown_canonical_field",
                        message="Mapping targets a field that is not part of the validator schema.",
                        canonical_field=target,
                        source_column=source,
                    )
                )
                continue

            previous = claimed_by.get(target)
            if previous is not None:
                errors.append(
                    MappingErrorDetail(
                        code="duplicate_canonical_field",
                        message="More than one source column maps to the same field.",
                        canonical_field=target,
                        source_column=source,
                        context={"already_mapped_from": previous},
                    )
                )
                continue

            claimed_by[target] = source
            cleaned[source] = target

        if errors:
            fields_csv = ", ".join(
                sorted({error.canonical_field for error in errors if error.canonical_field})
            ) or "unknown"
            raise FieldMappingError(
                message=f"Field mapping validation failed for: {fields_csv}.",
                errors=errors,
            )
        return cleaned
