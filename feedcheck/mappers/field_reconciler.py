"""
feedcheck/mappers/field_reconciler.py

Reconciles raw feed records onto a validator's canonical field names.
"""

from __future__ import annotations

from dataclasses import dataclass
from difflib import SequenceMatcher
from typing import Any, Callable, Mapping, Sequence

FieldAliases = Mapping[str, Sequence[str]]
FieldNormalizers = Mapping[str, Callable[[Any], Any]]


def is_missing(value: Any) -> bool:
    """
    Return True for values treated as absent: ``None`` and the empty string.
    """

    return value is None or value == ""


def normalize_header(header: str) -> str:
    """
    Normalize a column name for flexible matching.
    """

    return "".join(ch for ch in header.strip().lower() if ch.isalnum())


def declared_aliases(aliases: FieldAliases) -> frozenset[str]:
    return frozenset(alias for values in aliases.values() for alias in values)


def resolve_aliases(raw: Mapping[str, Any], aliases: FieldAliases) -> dict[str, Any]:
    """
    Map aliased source fields onto canonical names and pass unknown fields through.

    The canonical name wins over any alias; otherwise the first alias in
    declared order with a non-missing value is used.
    """

    resolved: dict[str, Any] = {}
    for canonical_field, alias_list in aliases.items():
        value = raw.get(canonical_field)
        if not is_missing(value):
            resolved[canonical_field] = value
            continue
        for alias in alias_list:
            alias_value = raw.get(alias)
            if not is_missing(alias_value):
                resolved[canonical_field] = alias_value
                break

    alias_names = declared_aliases(aliases)
    for key, value in raw.items():
        if key in resolved or key in aliases or key in alias_names:
            continue
        resolved[key] = value
    return resolved


def apply_defaults(record: dict[str, Any], defaults: Mapping[str, Any]) -> dict[str, Any]:
    for field_name, default_value in defaults.items():
        if is_missing(record.get(field_name)):
            record[field_name] = default_value
    return record


def apply_normalizers(record: dict[str, Any], normalizers: FieldNormalizers) -> dict[str, Any]:
    for field_name, normalizer in normalizers.items():
        if field_name in record and record[field_name] is not None:
            record[field_name] = normalizer(record[field_name])
    return record


def reconcile(
    raw: Mapping[str, Any],
    aliases: FieldAliases,
    normalizers: FieldNormalizers,
    defaults: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Build one canonical record from one raw record.

    Order is fixed: alias resolution and pass-through, then defaults for
    still-missing fields, then per-field normalizers.
    """

    record = resolve_aliases(raw, aliases)
    apply_defaults(record, defaults or {})
    return apply_normalizers(record, normalizers)


def apply_custom_mapping(raw: Mapping[str, Any], mapping: Mapping[str, str]) -> dict[str, Any]:
    """
    Rename source fields using an explicit source-to-canonical table.

    Unmapped fields are kept under their original name.
    """

    mapped: dict[str, Any] = {}
    for source_field, value in raw.items():
        target_field = mapping.get(source_field)
        mapped[target_field or source_field] = value
    return mapped


@dataclass(frozen=True)
class MappingSuggestion:
    """
    Suggested source-to-canonical mapping for a set of feed headers.
    """

    source_to_canonical: dict[str, str]
    match_strategies: dict[str, str]
    unmapped_headers: tuple[str, ...]


def suggest_mapping(
    headers: Sequence[str],
    *,
    canonical_fields: Sequence[str],
    aliases: FieldAliases,
    fuzzy_threshold: float = 0.84,
) -> MappingSuggestion:
    """
    Suggest a custom mapping for feed headers.

    Headers are matched against canonical names and aliases case- and
    punctuation-insensitively first, then by fuzzy similarity. Each
    canonical field is claimed by at most one header.
    """

    threshold = max(0.0, min(1.0, fuzzy_threshold))
    lookup: dict[str, str] = {}
    for canonical_field in canonical_fields:
        for candidate in (canonical_field, *aliases.get(canonical_field, ())):
            normalized = normalize_header(candidate)
            if normalized and normalized not in lookup:
                lookup[normalized] = canonical_field

    mapping: dict[str, str] = {}
    strategies: dict[str, str] = {}
    claimed: set[str] = set()
    pending: list[str] = []

    for header in headers:
        if not header or not header.strip():
            continue
        target = lookup.get(normalize_header(header))
        if target is not None and target not in claimed:
            mapping[header] = target
            strategies[header] = "exact_or_alias"
            claimed.add(target)
        else:
            pending.append(header)

    unmapped: list[str] = []
    for header in pending:
        target = _best_fuzzy_target(
            header=header,
            lookup=lookup,
            claimed=claimed,
            threshold=threshold,
        )
        if target is None:
            unmapped.append(header)
            continue
        mapping[header] = target
        strategies[header] = "fuzzy"
        claimed.add(target)

    return MappingSuggestion(
        source_to_canonical=mapping,
        match_strategies=strategies,
        unmapped_headers=tuple(unmapped),
    )


def _best_fuzzy_target(
    *,
    header: str,
    lookup: Mapping[str, str],
    claimed: set[str],
    threshold: float,
) -> str | None:
    header_norm = normalize_header(header)
    if not header_norm:
        return None

    best_target: str | None = None
    best_score = 0.0
    for candidate, canonical_field in lookup.items():
        if canonical_field in claimed:
            continue
        score = SequenceMatcher(None, header_norm, candidate).ratio()
        if score > best_score:
            best_score = score
            best_target = canonical_field

    if best_target is not None and best_score >= threshold:
        return best_target
    return None
