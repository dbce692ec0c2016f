"""
feedcheck/mappers package marker.
"""

from feedcheck.mappers.field_reconciler import (
    MappingSuggestion,
    apply_custom_mapping,
    is_missing,
    reconcile,
    resolve_aliases,
    suggest_mapping,
)

__all__ = [
    "MappingSuggestion",
    "apply_custom_mapping",
    "is_missing",
    "reconcile",
    "resolve_aliases",
    "suggest_mapping",
]
