"""
Built-in validators.

Plain validators (required, email, ...) are used as-is; parameterized ones
(min_length, range_validator, fields_match, ...) are factories returning a
bound validator. All of them are pure: the result depends only on the
control handed in.
"""

import math
import re
from numbers import Real
from typing import Any, Optional

from .pipeline import ValidationErrors, Validator

# Local part and dotted domain, in the spirit of the WHATWG e-mail rule
EMAIL_PATTERN = re.compile(
    r"^(?=.{1,254}$)(?=.{1,64}@)"
    r"[a-zA-Z0-9!#$%&'*+/=?^_`{|}~-]+(?:\.[a-zA-Z0-9!#$%&'*+/=?^_`{|}~-]+)*"
    r"@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (str, list, tuple, dict, set)):
        return len(value) == 0
    return False


def _length(value: Any) -> Optional[int]:
    if isinstance(value, (str, list, tuple, dict, set)):
        return len(value)
    return None


def required(control) -> Optional[ValidationErrors]:
    """Fails on None, the empty string and empty collections."""
    if _is_empty(control.value):
        return {"required": True}
    return None


def required_true(control) -> Optional[ValidationErrors]:
    """Fails unless the value is exactly True (checkbox consent and the like)."""
    if control.value is not True:
        return {"required": True}
    return None


def email(control) -> Optional[ValidationErrors]:
    value = control.value
    if _is_empty(value):
        return None
    if not isinstance(value, str) or not EMAIL_PATTERN.match(value):
        return {"email": True}
    return None


def min_length(length: int) -> Validator:
    def validate(control) -> Optional[ValidationErrors]:
        actual = _length(control.value)
        if actual is None or actual == 0 or actual >= length:
            return None
        return {"min_length": {"required_length": length, "actual_length": actual}}

    return validate


def max_length(length: int) -> Validator:
    def validate(control) -> Optional[ValidationErrors]:
        actual = _length(control.value)
        if actual is None or actual <= length:
            return None
        return {"max_length": {"required_length": length, "actual_length": actual}}

    return validate


def pattern(regex) -> Validator:
    """Full-match the string form of the value against a regex."""
    compiled = re.compile(regex) if isinstance(regex, str) else regex

    def validate(control) -> Optional[ValidationErrors]:
        value = control.value
        if _is_empty(value):
            return None
        if compiled.fullmatch(str(value)):
            return None
        return {"pattern": {"required_pattern": compiled.pattern, "actual_value": value}}

    return validate


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, Real):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            return None
    else:
        return None
    return None if math.isnan(number) else number


def range_validator(minimum: float, maximum: float) -> Validator:
    """
    Factory for an inclusive numeric range check.

    None is always accepted: only a present value that is not a number, or a
    number outside [minimum, maximum], reports a ``range`` error. Numeric
    strings count as numbers, since that is what text inputs deliver.

    Raises:
        ValueError: If minimum is greater than maximum
    """
    if minimum > maximum:
        raise ValueError(f"Range minimum {minimum} is greater than maximum {maximum}")

    def validate(control) -> Optional[ValidationErrors]:
        value = control.value
        if value is None:
            return None
        number = _as_number(value)
        if number is None or number < minimum or number > maximum:
            return {"range": True}
        return None

    return validate


def fields_match(first: str, second: str, error: str = "match") -> Validator:
    """
    Factory for a group-level check that two sibling controls hold equal values.

    While the two controls disagree on touched state the check is skipped, so
    a user still filling in the first field sees no mismatch yet. A pair that
    was never touched always passes, whatever its values.
    """

    def validate(group) -> Optional[ValidationErrors]:
        controls = group.controls
        first_control = controls.get(first)
        second_control = controls.get(second)
        if first_control is None or second_control is None:
            return None
        if first_control.touched != second_control.touched:
            return None
        if not first_control.touched:
            return None
        if first_control.value == second_control.value:
            return None
        return {error: True}

    return validate


email_matcher = fields_match("email", "confirmEmail")
