"""
Usage errors raised by the form model.

These signal a caller defect (a wrong path, an incomplete value map, a value
of the wrong type under strict typing, a malformed definition). They are
never used for validation failures, which live in a control's ``errors``.
Each class also derives from the closest builtin so callers can catch
``KeyError``/``ValueError``/``TypeError`` as usual.
"""

from typing import Iterable, Optional


class FormError(Exception):
    """Base class for every usage error raised by reactive_forms."""


class PathNotFoundError(FormError, KeyError):
    """A control path does not resolve inside a group."""

    def __init__(self, path: str, missing: Optional[str] = None):
        self.path = path
        self.missing = missing or path
        super().__init__(path)

    def __str__(self) -> str:
        if self.missing != self.path:
            return f"Cannot find control '{self.missing}' while resolving '{self.path}'"
        return f"Cannot find control '{self.path}'"


class IncompleteValueError(FormError, ValueError):
    """A strict set_value() did not provide every child of a group."""

    def __init__(self, path: str, missing: Iterable[str]):
        self.path = path
        self.missing = list(missing)
        where = f" of '{path}'" if path else ""
        super().__init__(
            f"Missing value for control(s) {', '.join(self.missing)}{where}"
        )


class TypeMismatchError(FormError, TypeError):
    """A value is not representable by the control's declared type."""

    def __init__(self, path: str, expected: str, actual: str):
        self.path = path
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Control '{path}' expects a {expected} value, got {actual}"
        )


class DefinitionError(FormError, ValueError):
    """A declarative form definition is malformed or cannot be loaded."""


class UnknownValidatorError(DefinitionError, LookupError):
    """A validator name is not present in the registry."""


class UnknownFormError(FormError, KeyError):
    """A form id is not known to the service."""

    def __str__(self) -> str:
        return f"Unknown form: {self.args[0]}"
