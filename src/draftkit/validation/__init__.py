"""Validation engine and primitive rules."""

from draftkit.validation.engine import (
    FieldErrors,
    Rule,
    Schema,
    ValidationResult,
    first_error,
    has_errors,
    validate,
)
from draftkit.validation.rules import (
    custom,
    hex_color,
    int_min,
    is_blank,
    min_len,
    pattern,
    required,
)

__all__ = [
    "FieldErrors",
    "Rule",
    "Schema",
    "ValidationResult",
    "custom",
    "first_error",
    "has_errors",
    "hex_color",
    "int_min",
    "is_blank",
    "min_len",
    "pattern",
    "required",
    "validate",
]
