"""
Form model: FormControl and FormGroup.

A change flows through the tree in a fixed order:

1. the value is stored and the changed node re-runs its validators,
2. every ancestor re-runs its own (cross-field) validators,
3. only then are subscribers notified, the changed nodes first and then each
   ancestor up to the root.

So by the time any reaction runs, error state is consistent from the root to
the leaves. Validation failures are recorded in ``errors`` and never raised;
usage errors (bad paths, incomplete maps, strict type violations) raise
subclasses of FormError.
"""

import logging
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from .errors import FormError, IncompleteValueError, PathNotFoundError, TypeMismatchError
from .events import EventStream, Reaction, Subscription
from .pipeline import ValidationErrors, Validator, apply_validators

logger = logging.getLogger(__name__)

VALID = "VALID"
INVALID = "INVALID"

DEFAULT_SLOT = "default"

VALUE_TYPES = {
    "string": (str,),
    "number": (int, float),
    "boolean": (bool,),
}

INFER_TYPE = object()
_UNSET = object()


def infer_value_type(value: Any) -> Optional[str]:
    """Declared type implied by an initial value; None means untyped."""
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    return None


def type_error(value_type: Optional[str], value: Any) -> Optional[ValidationErrors]:
    """The ``type`` error for a value that a declared type cannot hold, else None."""
    if value_type is None or value is None:
        return None
    accepted = isinstance(value, VALUE_TYPES[value_type])
    if value_type == "number" and isinstance(value, bool):
        accepted = False
    if accepted:
        return None
    return {"type": {"expected": value_type, "actual": type(value).__name__}}


def _normalize(validators) -> List[Validator]:
    if validators is None:
        return []
    if callable(validators):
        return [validators]
    return list(validators)


class AbstractControl:
    """State and behaviour shared by controls and groups."""

    def __init__(self, validators=None, scheduler=None):
        self.name: Optional[str] = None
        self.parent: Optional["FormGroup"] = None
        self._slots: Dict[str, List[Validator]] = {DEFAULT_SLOT: _normalize(validators)}
        self._errors: ValidationErrors = {}
        self._scheduler = scheduler
        self._destroyed = False
        self.value_changes = EventStream(self, "value")
        self.status_changes = EventStream(self, "status")

    # -- query surface -----------------------------------------------------

    @property
    def value(self) -> Any:
        raise NotImplementedError

    @property
    def valid(self) -> bool:
        raise NotImplementedError

    @property
    def touched(self) -> bool:
        raise NotImplementedError

    @property
    def dirty(self) -> bool:
        raise NotImplementedError

    @property
    def invalid(self) -> bool:
        return not self.valid

    @property
    def status(self) -> str:
        return VALID if self.valid else INVALID

    @property
    def pristine(self) -> bool:
        return not self.dirty

    @property
    def errors(self) -> ValidationErrors:
        """Errors from this node's own validators (a copy)."""
        return dict(self._errors)

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    @property
    def root(self) -> "AbstractControl":
        node = self
        while node.parent is not None:
            node = node.parent
        return node

    @property
    def path(self) -> str:
        """Dot path from the root; the root itself has an empty path."""
        names = []
        node = self
        while node.parent is not None:
            names.append(node.name)
            node = node.parent
        return ".".join(reversed(names))

    @property
    def scheduler(self):
        """Timer source for debounced subscriptions, inherited from ancestors."""
        node = self
        while node is not None:
            if node._scheduler is not None:
                return node._scheduler
            node = node.parent
        return None

    def has_error(self, kind: str) -> bool:
        return kind in self._errors

    def walk(self) -> Iterator["AbstractControl"]:
        """This node, then every descendant, depth first."""
        yield self

    # -- validators --------------------------------------------------------

    @property
    def validators(self) -> Tuple[Validator, ...]:
        """Every validator, slot by slot in slot-creation order."""
        return tuple(v for slot in self._slots.values() for v in slot)

    @property
    def validator_slots(self) -> Dict[str, Tuple[Validator, ...]]:
        return {name: tuple(slot) for name, slot in self._slots.items()}

    def set_validators(self, validators, slot: str = DEFAULT_SLOT) -> None:
        """
        Replace the validators of one slot.

        Other slots are left alone. Does not revalidate: call revalidate()
        afterwards.
        """
        self._check_alive()
        self._slots[slot] = _normalize(validators)

    def clear_validators(self, slot: Optional[str] = None) -> None:
        """Empty one slot, or every slot when ``slot`` is None. Does not revalidate."""
        self._check_alive()
        if slot is None:
            self._slots = {DEFAULT_SLOT: []}
        elif slot == DEFAULT_SLOT:
            self._slots[DEFAULT_SLOT] = []
        else:
            self._slots.pop(slot, None)

    def revalidate(self, emit_event: bool = True) -> None:
        """
        Recompute errors from the current validators.

        Ancestors re-run their own validators too, and status changes are
        emitted up the tree unless ``emit_event`` is False.
        """
        self._check_alive()
        self._run_validators()
        self._update_ancestors()
        if emit_event:
            node = self
            while node is not None:
                node.status_changes.emit(node.status)
                node = node.parent

    # -- notification ------------------------------------------------------

    def subscribe(
        self,
        reaction: Reaction,
        debounce: Optional[float] = None,
        scheduler=None,
    ) -> Subscription:
        """Shorthand for ``value_changes.subscribe``."""
        return self.value_changes.subscribe(reaction, debounce, scheduler)

    def destroy(self) -> None:
        """
        Tear this node down, releasing every subscription.

        Raises:
            FormError: If the node is still attached to a live group; use
                the group's remove_control() instead
        """
        if self._destroyed:
            return
        if self.parent is not None and not self.parent.destroyed:
            raise FormError(
                f"Control '{self.path}' is still attached; remove it from its group"
            )
        self._destroyed = True
        self.value_changes.close()
        self.status_changes.close()

    # -- internals ---------------------------------------------------------

    def _check_alive(self) -> None:
        if self._destroyed:
            raise FormError(f"Control '{self.path or self.name or '<root>'}' was destroyed")

    def _compute_errors(self) -> ValidationErrors:
        return apply_validators(self.validators, self)

    def _run_validators(self) -> None:
        self._errors = self._compute_errors()

    def _update_ancestors(self) -> None:
        node = self.parent
        while node is not None:
            node._run_validators()
            node = node.parent

    def _emit_own(self) -> None:
        self.value_changes.emit(self.value)
        self.status_changes.emit(self.status)

    def _emit_ancestors(self) -> None:
        node = self.parent
        while node is not None:
            node._emit_own()
            node = node.parent

    def snapshot(self) -> Dict[str, Any]:
        """JSON-ready view of this node's state."""
        return {
            "path": self.path,
            "value": self.value,
            "status": self.status,
            "valid": self.valid,
            "errors": self.errors,
            "touched": self.touched,
            "dirty": self.dirty,
        }


class FormControl(AbstractControl):
    """
    A single value with validation state.

    Args:
        value: Initial value, also the reference for ``dirty``
        validators: A validator or sequence of validators (default slot)
        value_type: "string", "number", "boolean" or None for untyped;
            inferred from ``value`` when omitted
        strict_types: Raise TypeMismatchError on a wrongly typed value
            instead of recording a ``type`` error
        scheduler: Timer source for debounced subscriptions
    """

    def __init__(
        self,
        value: Any = None,
        validators=None,
        value_type: Any = INFER_TYPE,
        strict_types: bool = False,
        scheduler=None,
    ):
        super().__init__(validators, scheduler)
        if value_type is INFER_TYPE:
            value_type = infer_value_type(value)
        elif value_type is not None and value_type not in VALUE_TYPES:
            raise FormError(f"Unknown value type: {value_type}")
        self.value_type = value_type
        self.strict_types = strict_types
        self._ensure_type(value)
        self.initial_value = value
        self._value = value
        self._touched = False
        self._dirty = False
        self._run_validators()

    @property
    def value(self) -> Any:
        return self._value

    @property
    def valid(self) -> bool:
        return not self._errors

    @property
    def touched(self) -> bool:
        return self._touched

    @property
    def dirty(self) -> bool:
        return self._dirty

    def set_value(self, value: Any, emit_event: bool = True) -> None:
        """
        Replace the value, revalidate, then notify.

        Raises:
            TypeMismatchError: Under strict typing, if the value does not fit
                the declared type (state is left unchanged)
        """
        self._check_alive()
        self._ensure_type(value)
        self._assign(value)
        self._update_ancestors()
        logger.debug(f"Control '{self.path}' set to {value!r} ({self.status})")
        if emit_event:
            self._emit_own()
            self._emit_ancestors()

    def patch_value(self, value: Any, emit_event: bool = True) -> None:
        self.set_value(value, emit_event)

    def reset(self, value: Any = _UNSET, emit_event: bool = True) -> None:
        """Restore the initial (or given) value and clear touched and dirty."""
        self._check_alive()
        value = self.initial_value if value is _UNSET else value
        self._ensure_type(value)
        self._value = value
        self._touched = False
        self._dirty = False
        self._run_validators()
        self._update_ancestors()
        if emit_event:
            self._emit_own()
            self._emit_ancestors()

    def mark_touched(self) -> None:
        self._touched = True

    def mark_untouched(self) -> None:
        self._touched = False

    def mark_dirty(self) -> None:
        self._dirty = True

    def mark_pristine(self) -> None:
        self._dirty = False

    def _compute_errors(self) -> ValidationErrors:
        errors = type_error(self.value_type, self._value) or {}
        errors.update(apply_validators(self.validators, self))
        return errors

    def _ensure_type(self, value: Any) -> None:
        if not self.strict_types:
            return
        mismatch = type_error(self.value_type, value)
        if mismatch:
            raise TypeMismatchError(
                self.path or self.name or "<control>",
                mismatch["type"]["expected"],
                mismatch["type"]["actual"],
            )

    def _assign(self, value: Any) -> None:
        self._value = value
        self._dirty = self._dirty or value != self.initial_value
        self._run_validators()


class FormGroup(AbstractControl):
    """
    An ordered composite of named controls and nested groups.

    The group is valid when every child is valid and its own validators
    (run against the group itself, e.g. cross-field checks) report nothing.
    ``errors`` holds the group's own errors only.
    """

    def __init__(
        self,
        controls: Optional[Mapping[str, AbstractControl]] = None,
        validators=None,
        scheduler=None,
    ):
        super().__init__(validators, scheduler)
        self._controls: Dict[str, AbstractControl] = {}
        for name, control in (controls or {}).items():
            self._register(name, control)
        self._run_validators()

    @property
    def controls(self) -> Mapping[str, AbstractControl]:
        return MappingProxyType(self._controls)

    @property
    def value(self) -> Dict[str, Any]:
        """A fresh snapshot: child name to child value, recursively."""
        return {name: control.value for name, control in self._controls.items()}

    @property
    def valid(self) -> bool:
        return not self._errors and all(c.valid for c in self._controls.values())

    @property
    def touched(self) -> bool:
        return any(c.touched for c in self._controls.values())

    @property
    def dirty(self) -> bool:
        return any(c.dirty for c in self._controls.values())

    def contains(self, name: str) -> bool:
        return name in self._controls

    def __contains__(self, name: str) -> bool:
        return self.contains(name)

    def walk(self) -> Iterator[AbstractControl]:
        yield self
        for control in self._controls.values():
            yield from control.walk()

    def get(self, path: Union[str, Sequence[str]]) -> AbstractControl:
        """
        Resolve a dot-delimited path (or sequence of names) to a descendant.

        Returns the node itself, so callers can subscribe to it or mutate it.

        Raises:
            PathNotFoundError: If any segment does not exist
        """
        segments = path.split(".") if isinstance(path, str) else list(path)
        text = path if isinstance(path, str) else ".".join(segments)
        if not segments or not all(segments):
            raise PathNotFoundError(text)
        node: AbstractControl = self
        for index, segment in enumerate(segments):
            if not isinstance(node, FormGroup) or segment not in node._controls:
                raise PathNotFoundError(text, ".".join(segments[: index + 1]))
            node = node._controls[segment]
        return node

    # -- structure ---------------------------------------------------------

    def add_control(self, name: str, control: AbstractControl, emit_event: bool = True) -> None:
        """
        Attach a new child and revalidate.

        Raises:
            FormError: If the name is taken or the control already has a parent
        """
        self._check_alive()
        if name in self._controls:
            raise FormError(f"Group '{self.path}' already has a control named '{name}'")
        self._register(name, control)
        self._run_validators()
        self._update_ancestors()
        if emit_event:
            self._emit_own()
            self._emit_ancestors()

    def remove_control(self, name: str, emit_event: bool = True) -> None:
        """
        Detach and destroy a child, then revalidate.

        Raises:
            PathNotFoundError: If no child has that name
        """
        self._check_alive()
        if name not in self._controls:
            raise PathNotFoundError(name)
        control = self._controls.pop(name)
        control.parent = None
        control.destroy()
        self._run_validators()
        self._update_ancestors()
        if emit_event:
            self._emit_own()
            self._emit_ancestors()

    def _register(self, name: str, control: AbstractControl) -> None:
        if not name or "." in name:
            raise FormError(f"Invalid control name: {name!r}")
        if control.parent is not None:
            raise FormError(f"Control '{control.path}' already belongs to a group")
        if control.destroyed:
            raise FormError(f"Cannot add destroyed control as '{name}'")
        control.name = name
        control.parent = self
        self._controls[name] = control

    # -- values ------------------------------------------------------------

    def set_value(self, value: Mapping[str, Any], emit_event: bool = True) -> None:
        """
        Replace the value of every child, all or nothing.

        The mapping must name every child (recursively for nested groups)
        and nothing else. It is checked in full before any child changes.

        Raises:
            IncompleteValueError: If a child is missing
            PathNotFoundError: If the mapping names an unknown child
            TypeMismatchError: If a nested group gets a non-mapping, or a
                strictly typed control gets a value of the wrong type
        """
        self._check_alive()
        self._check_value(value, complete=True)
        self._commit(value, emit_event)

    def patch_value(self, value: Mapping[str, Any], emit_event: bool = True) -> None:
        """Update only the children named in the mapping; unknown names are ignored."""
        self._check_alive()
        self._check_value(value, complete=False)
        self._commit(value, emit_event)

    def reset(self, value: Optional[Mapping[str, Any]] = None, emit_event: bool = True) -> None:
        """Reset every child (to the given values where provided)."""
        self._check_alive()
        value = value or {}
        for name, control in self._controls.items():
            if name in value:
                control.reset(value[name], emit_event=False)
            else:
                control.reset(emit_event=False)
        self._run_validators()
        self._update_ancestors()
        if emit_event:
            for node in list(self.walk())[1:]:
                node._emit_own()
            self._emit_own()
            self._emit_ancestors()

    def _commit(self, value: Mapping[str, Any], emit_event: bool) -> None:
        changed = self._apply(value)
        self._run_validators()
        self._update_ancestors()
        logger.debug(
            f"Group '{self.path or '<root>'}' updated {len(changed)} node(s) ({self.status})"
        )
        if emit_event:
            for node in changed:
                node._emit_own()
            self._emit_own()
            self._emit_ancestors()

    def _check_value(self, value: Any, complete: bool) -> None:
        where = self.path or self.name or "<root>"
        if not isinstance(value, Mapping):
            raise TypeMismatchError(where, "mapping", type(value).__name__)
        if complete:
            missing = [name for name in self._controls if name not in value]
            if missing:
                raise IncompleteValueError(self.path, missing)
            for name in value:
                if name not in self._controls:
                    raise PathNotFoundError(f"{self.path}.{name}" if self.path else name)
        for name, child_value in value.items():
            child = self._controls.get(name)
            if child is None:
                continue
            if isinstance(child, FormGroup):
                child._check_value(child_value, complete)
            else:
                child._ensure_type(child_value)

    def _apply(self, value: Mapping[str, Any]) -> List[AbstractControl]:
        changed: List[AbstractControl] = []
        for name, child in self._controls.items():
            if name not in value:
                continue
            if isinstance(child, FormGroup):
                changed.extend(child._apply(value[name]))
                child._run_validators()
            else:
                child._assign(value[name])
            changed.append(child)
        return changed

    # -- flags -------------------------------------------------------------

    def mark_touched(self) -> None:
        for control in self._controls.values():
            control.mark_touched()

    def mark_untouched(self) -> None:
        for control in self._controls.values():
            control.mark_untouched()

    def mark_dirty(self) -> None:
        for control in self._controls.values():
            control.mark_dirty()

    def mark_pristine(self) -> None:
        for control in self._controls.values():
            control.mark_pristine()

    def destroy(self) -> None:
        if self._destroyed:
            return
        super().destroy()
        for control in self._controls.values():
            control.destroy()

    def snapshot(self) -> Dict[str, Any]:
        state = super().snapshot()
        state["controls"] = {
            name: control.snapshot() for name, control in self._controls.items()
        }
        return state
