"""
Validator pipeline.

A validator is any callable taking the control (or group) under validation
and returning None, or a mapping of error kind to a boolean or payload.
Validators are applied in order and never short-circuit: every validator
runs and their errors merge into a single mapping, a later validator
overwriting an earlier one only on the same key.
"""

import logging
from typing import Any, Callable, Dict, Iterable, Optional

logger = logging.getLogger(__name__)

ValidationErrors = Dict[str, Any]
Validator = Callable[[Any], Optional[ValidationErrors]]


def apply_validators(validators: Iterable[Validator], control) -> ValidationErrors:
    """
    Run every validator against a control and merge their errors.

    Args:
        validators: Ordered validators
        control: The FormControl or FormGroup being validated

    Returns:
        Merged error mapping (empty when every validator passed)
    """
    errors: ValidationErrors = {}
    for validator in validators:
        result = validator(control)
        if result:
            errors.update(result)
    if errors:
        logger.debug(f"Control '{control.path}' failed validation: {sorted(errors)}")
    return errors


def compose(*validators: Validator) -> Validator:
    """Combine validators into one that returns their merged errors, or None."""

    def composed(control) -> Optional[ValidationErrors]:
        return apply_validators(validators, control) or None

    return composed
