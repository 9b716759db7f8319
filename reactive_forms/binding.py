"""
Dynamic validator binding.

A binding lets one control (the trigger) decide which validators another
control (the target) carries. The classic case is a notification selector
making the phone number required when "text" is chosen.

The binding owns one named validator slot on the target and nothing else,
so validators assigned elsewhere survive every transition. After each
transition the target is revalidated before the trigger's notification
returns.
"""

import logging
from typing import Any, Callable, List, Optional, Union

from .model import AbstractControl
from .pipeline import Validator
from .validators import required

logger = logging.getLogger(__name__)

UNCONSTRAINED = "unconstrained"
CONSTRAINED = "constrained"


class ValidatorBinding:
    """
    Drive a slot of ``target``'s validators from ``trigger``'s value.

    Args:
        trigger: Control whose value changes drive the binding
        target: Control whose validators are assigned or cleared
        when: Sentinel value, or a predicate on the trigger's value, that
            selects the constrained state
        validators: Validators assigned while constrained (default: required)
        slot: Validator slot owned on the target
            (default: "binding:<trigger path>")
        immediate: Apply the trigger's current value right away instead of
            waiting for its first change
    """

    def __init__(
        self,
        trigger: AbstractControl,
        target: AbstractControl,
        when: Union[Any, Callable[[Any], bool]],
        validators: Optional[List[Validator]] = None,
        slot: Optional[str] = None,
        immediate: bool = False,
    ):
        self.trigger = trigger
        self.target = target
        if callable(when):
            self._predicate = when
        else:
            self._predicate = lambda value: value == when
        self.validators = list(validators) if validators is not None else [required]
        self.slot = slot or f"binding:{trigger.path or trigger.name}"
        self.state = UNCONSTRAINED
        self._subscription = trigger.value_changes.subscribe(self._on_trigger)
        if immediate:
            self._on_trigger(trigger.value)

    @property
    def active(self) -> bool:
        return not self._subscription.closed

    def _on_trigger(self, value: Any) -> None:
        if self.target.destroyed:
            # Target was removed from its group; the binding goes with it
            self._subscription.unsubscribe()
            self.state = UNCONSTRAINED
            logger.debug(f"Binding {self.slot} released: target was destroyed")
            return
        if self._predicate(value):
            self.target.set_validators(self.validators, slot=self.slot)
            self.state = CONSTRAINED
        else:
            self.target.clear_validators(slot=self.slot)
            self.state = UNCONSTRAINED
        self.target.revalidate()
        logger.debug(
            f"Binding {self.slot} on '{self.target.path}' is {self.state} "
            f"(trigger value {value!r}, target {self.target.status})"
        )

    def release(self) -> None:
        """Stop reacting and hand the slot back, revalidating a live target."""
        if not self.active:
            return
        self._subscription.unsubscribe()
        if not self.target.destroyed:
            self.target.clear_validators(slot=self.slot)
            self.target.revalidate()
        self.state = UNCONSTRAINED


def bind_validators(
    trigger: AbstractControl,
    target: AbstractControl,
    when: Union[Any, Callable[[Any], bool]],
    validators: Optional[List[Validator]] = None,
    slot: Optional[str] = None,
    immediate: bool = False,
) -> ValidatorBinding:
    """Create a ValidatorBinding; see its docstring."""
    return ValidatorBinding(trigger, target, when, validators, slot, immediate)
