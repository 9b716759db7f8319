"""
FormBuilder: build control trees from the compact configuration shorthand.

Each entry of a group configuration maps a control name to one of:

- an existing FormControl or FormGroup (e.g. from a nested ``group()`` call),
- ``[initial_value]`` or ``[initial_value, validators]``,
- a bare initial value.

Validators may be callables or registry entries such as ``"required"`` or
``{"min_length": 3}``.
"""

from collections.abc import Mapping
from typing import Any, Optional

from .errors import FormError
from .model import INFER_TYPE, AbstractControl, FormControl, FormGroup
from .validator_registry import ValidatorRegistry


class FormBuilder:
    """
    Factory for controls and groups sharing one scheduler and type policy.

    Args:
        scheduler: Timer source given to every root group built here
        strict_types: Passed to every control built here
        registry: Resolves validator names (default: the built-ins)
    """

    def __init__(
        self,
        scheduler=None,
        strict_types: bool = False,
        registry: Optional[ValidatorRegistry] = None,
    ):
        self.scheduler = scheduler
        self.strict_types = strict_types
        self.registry = registry or ValidatorRegistry.with_builtins()

    def group(self, config: Mapping, validators=None) -> FormGroup:
        """
        Build a group from a configuration mapping.

        Args:
            config: Control name to control shorthand (see module docstring)
            validators: Group-level validators, e.g. cross-field checks

        Returns:
            The new FormGroup
        """
        if not isinstance(config, Mapping):
            raise FormError(f"Group configuration must be a mapping, got {type(config).__name__}")
        controls = {name: self._create_control(name, spec) for name, spec in config.items()}
        return FormGroup(
            controls,
            validators=self.registry.resolve_all(validators),
            scheduler=self.scheduler,
        )

    def control(self, value: Any = None, validators=None, value_type: Any = INFER_TYPE) -> FormControl:
        return FormControl(
            value,
            validators=self.registry.resolve_all(validators),
            value_type=value_type,
            strict_types=self.strict_types,
        )

    def _create_control(self, name: str, spec: Any) -> AbstractControl:
        if isinstance(spec, AbstractControl):
            return spec
        if isinstance(spec, (list, tuple)):
            if not 1 <= len(spec) <= 2:
                raise FormError(
                    f"Control '{name}' must be [value] or [value, validators], got {len(spec)} items"
                )
            validators = spec[1] if len(spec) == 2 else None
            return self.control(spec[0], validators)
        return self.control(spec)
