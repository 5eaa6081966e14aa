"""Primitive rule factories.

Only ``required`` decides whether a value is present.  Every other rule
returns ``None`` for an empty value so a blank optional field never gets
two contradictory messages.
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Sized
from typing import Any

from draftkit.validation.engine import Rule

HEX_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")


def is_blank(value: Any) -> bool:
    """True for ``None`` and whitespace-only strings."""
    if value is None:
        return True
    return isinstance(value, str) and value.strip() == ""


def required(message: str = "This field is required") -> Rule:
    def rule(value: Any, data: Any) -> str | None:
        if is_blank(value):
            return message
        if isinstance(value, Sized) and not isinstance(value, str) and len(value) == 0:
            return message
        return None

    return rule


def min_len(minimum: int, message: str | None = None) -> Rule:
    def rule(value: Any, data: Any) -> str | None:
        if not isinstance(value, str) or is_blank(value):
            return None
        if len(value.strip()) < minimum:
            return message or f"Must be at least {minimum} characters"
        return None

    return rule


def pattern(regex: str | re.Pattern[str], message: str = "Invalid format") -> Rule:
    compiled = re.compile(regex) if isinstance(regex, str) else regex

    def rule(value: Any, data: Any) -> str | None:
        if not isinstance(value, str) or is_blank(value):
            return None
        if not compiled.search(value):
            return message
        return None

    return rule


def hex_color(message: str = "Invalid color. Use #RRGGBB") -> Rule:
    def rule(value: Any, data: Any) -> str | None:
        if is_blank(value):
            return None
        if not isinstance(value, str):
            return message
        return None if HEX_COLOR_RE.match(value.strip()) else message

    return rule


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def int_min(minimum: int, message: str | None = None) -> Rule:
    def rule(value: Any, data: Any) -> str | None:
        if is_blank(value):
            return None
        number = _as_number(value)
        if number is None or not math.isfinite(number):
            return message or "Invalid value"
        if not number.is_integer():
            return message or "Must be a whole number"
        if number < minimum:
            return message or f"Must be at least {minimum}"
        return None

    return rule


def custom(predicate: Callable[[Any, Any], bool], message: str = "Invalid value") -> Rule:
    def rule(value: Any, data: Any) -> str | None:
        if is_blank(value):
            return None
        return None if predicate(value, data) else message

    return rule
