"""
Form: the owner of a control tree and of everything attached to it.

Bindings and message watchers hold subscriptions into the tree. The Form
keeps track of them so destroy() can release every one of them, cancelling
pending debounced reactions, before tearing the tree down.
"""

import logging
from collections.abc import Mapping
from typing import Any, Callable, Dict, List, Optional, Union

from .binding import ValidatorBinding
from .model import AbstractControl, FormGroup
from .messages import MessageSet, MessageWatcher, derive_message
from .pipeline import Validator

logger = logging.getLogger(__name__)


class Form:
    """
    A root FormGroup together with its bindings, watchers and messages.

    Args:
        group: Root of the control tree
        messages: Error kind to message text used for this form
        name: Optional label used in logs
        message_debounce: Default quiet period for watch_messages()
    """

    def __init__(
        self,
        group: FormGroup,
        messages: Optional[Mapping] = None,
        name: Optional[str] = None,
        message_debounce: Optional[float] = None,
    ):
        self.group = group
        self.name = name or "form"
        self.messages = messages if isinstance(messages, MessageSet) else MessageSet(messages)
        self.message_debounce = message_debounce
        self.bindings: List[ValidatorBinding] = []
        self.watchers: List[MessageWatcher] = []

    # Query surface, delegated to the root group

    def get(self, path: str) -> AbstractControl:
        return self.group.get(path)

    @property
    def value(self) -> Dict[str, Any]:
        return self.group.value

    @property
    def valid(self) -> bool:
        return self.group.valid

    @property
    def status(self) -> str:
        return self.group.status

    @property
    def destroyed(self) -> bool:
        return self.group.destroyed

    def _resolve(self, target: Union[str, AbstractControl]) -> AbstractControl:
        return self.group.get(target) if isinstance(target, str) else target

    def bind(
        self,
        trigger: Union[str, AbstractControl],
        target: Union[str, AbstractControl],
        when: Union[Any, Callable[[Any], bool]],
        validators: Optional[List[Validator]] = None,
        slot: Optional[str] = None,
        immediate: bool = False,
    ) -> ValidatorBinding:
        """Attach a ValidatorBinding owned by this form."""
        binding = ValidatorBinding(
            self._resolve(trigger),
            self._resolve(target),
            when,
            validators=validators,
            slot=slot,
            immediate=immediate,
        )
        self.bindings.append(binding)
        return binding

    def watch_messages(
        self,
        path: Union[str, AbstractControl],
        debounce: Optional[float] = None,
        on_message: Optional[Callable[[str], None]] = None,
    ) -> MessageWatcher:
        """Attach a MessageWatcher owned by this form (default debounce: message_debounce)."""
        watcher = MessageWatcher(
            self._resolve(path),
            self.messages,
            debounce=self.message_debounce if debounce is None else debounce,
            on_message=on_message,
        )
        self.watchers.append(watcher)
        return watcher

    def message_for(self, path: Union[str, AbstractControl]) -> str:
        return derive_message(self._resolve(path), self.messages)

    def messages_by_path(self) -> Dict[str, str]:
        """Every non-empty message in the tree, keyed by control path ("" is the root)."""
        result = {}
        for node in self.group.walk():
            message = derive_message(node, self.messages)
            if message:
                result[node.path] = message
        return result

    def destroy(self) -> None:
        """Release bindings and watchers, then destroy the control tree."""
        if self.group.destroyed:
            return
        for watcher in self.watchers:
            watcher.release()
        for binding in self.bindings:
            binding.release()
        self.watchers.clear()
        self.bindings.clear()
        self.group.destroy()
        logger.info(f"Form '{self.name}' destroyed")

    def __enter__(self) -> "Form":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.destroy()
