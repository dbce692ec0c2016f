"""
feedcheck/validators package marker.
"""

from feedcheck.validators.mapping_validator import FieldMappingError, MappingErrorDetail, MappingValidator
from feedcheck.validators.raw_issues import DetectedRawIssue, RawIssueCollector, detect_raw_issues
from feedcheck.validators.registry import (
    UnknownValidatorError,
    ValidatorDefinition,
    ValidatorRegistry,
    build_default_registry,
)
from feedcheck.validators.rules import CrossFieldRule, FieldKind, FieldRule, RuleSet

__all__ = [
    "CrossFieldRule",
    "DetectedRawIssue",
    "FieldKind",
    "FieldMappingError",
    "FieldRule",
    "MappingErrorDetail",
    "MappingValidator",
    "RawIssueCollector",
    "RuleSet",
    "UnknownValidatorError",
    "ValidatorDefinition",
    "ValidatorRegistry",
    "build_default_registry",
    "detect_raw_issues",
]
