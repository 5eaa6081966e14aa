"""Declarative per-field validation.

A schema maps field names to an ordered list of rules.  Each rule is a
plain callable ``(value, data) -> message | None``.  Every rule of every
field runs; messages are collected in rule order so the UI can show all
of them or just the first.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import Any

from pydantic import BaseModel, Field

Rule = Callable[[Any, Any], str | None]
Schema = Mapping[str, Sequence[Rule]]
FieldErrors = dict[str, list[str]]


class ValidationResult(BaseModel):
    """Outcome of running a schema against one object."""

    is_valid: bool
    errors: FieldErrors = Field(default_factory=dict)

    def errors_for(self, field: str) -> list[str]:
        """Return the messages for *field*, or an empty list if it is valid."""
        return list(self.errors.get(field, []))


def field_value(data: Any, field: str) -> Any:
    """Read *field* from a mapping or an attribute-bearing object."""
    if isinstance(data, Mapping):
        return data.get(field)
    return getattr(data, field, None)


def validate(data: Any, schema: Schema) -> ValidationResult:
    """Evaluate every rule in *schema* against *data*.

    Fields are visited in schema key order.  A field is only present in
    ``errors`` when at least one of its rules produced a message.
    """
    errors: FieldErrors = {}
    for field, rules in schema.items():
        if not rules:
            continue
        value = field_value(data, field)
        messages: list[str] = []
        for rule in rules:
            message = rule(value, data)
            if message:
                messages.append(message)
        if messages:
            errors[field] = messages
    return ValidationResult(is_valid=not errors, errors=errors)


def has_errors(errors: Mapping[str, Sequence[str]]) -> bool:
    """Check whether any field carries at least one message."""
    return any(messages for messages in errors.values())


def first_error(errors: Mapping[str, Sequence[str]], field: str) -> str | None:
    """Return only the first message for *field*, if any."""
    messages = errors.get(field)
    if messages:
        return messages[0]
    return None
