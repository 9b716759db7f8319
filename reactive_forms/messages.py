"""
User-facing validation messages.

Validity and message visibility are decoupled: a control that was never
touched and never edited shows no message even when it is invalid.
"""

import logging
from collections.abc import Mapping
from typing import Callable, Dict, Iterator, List, Optional

from .model import AbstractControl

logger = logging.getLogger(__name__)


class MessageSet(Mapping):
    """Read-only mapping of error kind to message text, owned by one consumer."""

    def __init__(self, messages: Optional[Mapping] = None):
        self._messages: Dict[str, str] = dict(messages or {})

    def __getitem__(self, kind: str) -> str:
        return self._messages[kind]

    def __iter__(self) -> Iterator[str]:
        return iter(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __repr__(self) -> str:
        return f"MessageSet({self._messages!r})"

    def merged(self, other: Optional[Mapping]) -> "MessageSet":
        """A new set where ``other`` overrides this one."""
        combined = dict(self._messages)
        combined.update(other or {})
        return MessageSet(combined)

    def for_errors(self, errors: Mapping) -> List[str]:
        """Messages for the given error kinds, in error order; unknown kinds are skipped."""
        return [self._messages[kind] for kind in errors if kind in self._messages]


def derive_message(
    control: AbstractControl,
    messages: Mapping,
    first_only: bool = False,
    separator: str = " ",
) -> str:
    """
    Message text for a control's own errors.

    Args:
        control: Control or group whose errors are described
        messages: Error kind to text
        first_only: Return only the first matching message
        separator: Joins several messages

    Returns:
        The message, or an empty string when the control is neither touched
        nor dirty, or has no error with a known message
    """
    if not (control.touched or control.dirty):
        return ""
    if not isinstance(messages, MessageSet):
        messages = MessageSet(messages)
    texts = messages.for_errors(control.errors)
    if not texts:
        return ""
    if first_only:
        return texts[0]
    return separator.join(texts)


class MessageWatcher:
    """
    Keeps a control's message current as its value changes.

    With a debounce the message is only recomputed once the user pauses, so
    it does not flicker while they type.
    """

    def __init__(
        self,
        control: AbstractControl,
        messages: Mapping,
        debounce: Optional[float] = None,
        on_message: Optional[Callable[[str], None]] = None,
        scheduler=None,
    ):
        self.control = control
        self.messages = messages if isinstance(messages, MessageSet) else MessageSet(messages)
        self.on_message = on_message
        self.message = ""
        self._subscription = control.value_changes.subscribe(
            self._refresh, debounce=debounce, scheduler=scheduler
        )

    @property
    def pending(self) -> bool:
        return self._subscription.pending

    def _refresh(self, _value) -> None:
        message = derive_message(self.control, self.messages)
        if message != self.message:
            logger.debug(f"Message for '{self.control.path}': {message!r}")
        self.message = message
        if self.on_message is not None:
            self.on_message(message)

    def release(self) -> None:
        self._subscription.unsubscribe()
