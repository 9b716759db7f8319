"""
Validator Registry - Validators by Name

Declarative form definitions cannot hold Python callables, so they name
validators instead. The registry maps those names to plain validators or to
validator factories and turns a definition entry into a bound validator.

Accepted entry shapes:

- ``"required"``: a plain validator (or a factory taking no arguments)
- ``{"min_length": 3}``: factory with a single argument
- ``{"range": [1, 5]}``: factory with positional arguments
- ``{"range": {"minimum": 1, "maximum": 5}}``: factory with keyword arguments
- a callable: used as-is

Registries are ordinary objects; each service or builder owns its own.
"""

from collections.abc import Mapping
from typing import Any, Callable, Dict, Iterable, List, Tuple

from .errors import DefinitionError, UnknownValidatorError
from .pipeline import Validator
from . import validators as builtin


class ValidatorRegistry:
    """Maps validator names to validators or validator factories."""

    def __init__(self):
        # name -> (callable, is_factory)
        self._entries: Dict[str, Tuple[Callable, bool]] = {}

    @classmethod
    def with_builtins(cls) -> "ValidatorRegistry":
        registry = cls()
        registry.register("required", builtin.required)
        registry.register("required_true", builtin.required_true)
        registry.register("email", builtin.email)
        registry.register("email_matcher", builtin.email_matcher)
        registry.register("min_length", factory=builtin.min_length)
        registry.register("max_length", factory=builtin.max_length)
        registry.register("pattern", factory=builtin.pattern)
        registry.register("range", factory=builtin.range_validator)
        registry.register("fields_match", factory=builtin.fields_match)
        return registry

    def register(self, name: str, validator: Callable = None, factory: Callable = None) -> None:
        """
        Register a plain validator or a factory under a name.

        Exactly one of ``validator`` and ``factory`` must be given.
        """
        if (validator is None) == (factory is None):
            raise ValueError("Register either a validator or a factory")
        self._entries[name] = (factory, True) if factory is not None else (validator, False)

    def names(self) -> List[str]:
        return sorted(self._entries)

    def __contains__(self, name: str) -> bool:
        return name in self._entries

    def resolve(self, spec: Any) -> Validator:
        """
        Turn one definition entry into a validator.

        Raises:
            UnknownValidatorError: If the name is not registered
            DefinitionError: If the entry is malformed or the factory rejects
                its arguments
        """
        if callable(spec):
            return spec
        if isinstance(spec, str):
            target, is_factory = self._lookup(spec)
            if not is_factory:
                return target
            try:
                return target()
            except TypeError as e:
                raise DefinitionError(f"Validator '{spec}' needs arguments: {e}")
        if isinstance(spec, Mapping) and len(spec) == 1:
            name, args = next(iter(spec.items()))
            target, is_factory = self._lookup(name)
            if not is_factory:
                raise DefinitionError(f"Validator '{name}' takes no arguments")
            try:
                if isinstance(args, Mapping):
                    return target(**args)
                if isinstance(args, (list, tuple)):
                    return target(*args)
                return target(args)
            except (TypeError, ValueError) as e:
                raise DefinitionError(f"Invalid arguments for validator '{name}': {e}")
        raise DefinitionError(f"Cannot interpret validator entry: {spec!r}")

    def resolve_all(self, specs: Iterable[Any]) -> List[Validator]:
        if specs is None:
            return []
        if isinstance(specs, (str, Mapping)) or callable(specs):
            specs = [specs]
        return [self.resolve(spec) for spec in specs]

    def _lookup(self, name: str) -> Tuple[Callable, bool]:
        if name not in self._entries:
            raise UnknownValidatorError(
                f"Unknown validator '{name}'. Known: {', '.join(self.names())}"
            )
        return self._entries[name]
