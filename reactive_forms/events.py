"""
Change notification for controls and groups.

Every node owns two EventStreams, ``value_changes`` and ``status_changes``.
Emission is synchronous. A subscription may be debounced: it then holds
the latest value and re-arms a single timer per event, firing once the
stream has been quiet for the configured interval (trailing edge).
"""

import logging
from typing import Any, Callable, List, Optional

from .errors import FormError

logger = logging.getLogger(__name__)

Reaction = Callable[[Any], None]


class Subscription:
    """A standing registration of a reaction on one EventStream."""

    def __init__(
        self,
        stream: "EventStream",
        reaction: Reaction,
        debounce: Optional[float] = None,
        scheduler=None,
    ):
        self._stream = stream
        self._reaction = reaction
        self.debounce = debounce
        self._scheduler = scheduler
        self._timer = None
        self._latest: Any = None
        self.closed = False

    @property
    def pending(self) -> bool:
        """True while a debounced reaction is waiting for its quiet period."""
        return self._timer is not None

    def _deliver(self, value: Any) -> None:
        if self.closed:
            return
        if self.debounce is None:
            self._reaction(value)
            return
        self._latest = value
        if self._timer is not None:
            self._timer.cancel()
        self._timer = self._scheduler.call_later(self.debounce, self._fire)

    def _fire(self) -> None:
        self._timer = None
        if self.closed:
            return
        value, self._latest = self._latest, None
        self._reaction(value)

    def unsubscribe(self) -> None:
        """Stop reacting; a pending debounced reaction is cancelled."""
        if self.closed:
            return
        self.closed = True
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._stream._remove(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.unsubscribe()


class EventStream:
    """Synchronous, push-based stream of one kind of change on a node."""

    def __init__(self, owner, kind: str):
        self.owner = owner
        self.kind = kind
        self._subscriptions: List[Subscription] = []

    def subscribe(
        self,
        reaction: Reaction,
        debounce: Optional[float] = None,
        scheduler=None,
    ) -> Subscription:
        """
        Register a reaction for every event on this stream.

        Args:
            reaction: Called with the new value (or status)
            debounce: Optional quiet period in seconds
            scheduler: Timer source for debouncing; defaults to the owner's

        Returns:
            Subscription to release with unsubscribe()

        Raises:
            FormError: If the owner was destroyed, or a debounce is requested
                and no scheduler is available
        """
        if self.owner.destroyed:
            raise FormError(f"Cannot subscribe to destroyed control '{self.owner.path}'")
        if debounce is not None:
            if debounce < 0:
                raise ValueError(f"Debounce must not be negative, got {debounce}")
            if scheduler is None:
                scheduler = self.owner.scheduler
            if scheduler is None:
                raise FormError(
                    f"Debounced subscription on '{self.owner.path}' needs a scheduler"
                )
        subscription = Subscription(self, reaction, debounce, scheduler)
        self._subscriptions.append(subscription)
        return subscription

    def emit(self, value: Any) -> None:
        # Reactions may subscribe or unsubscribe while we iterate
        for subscription in list(self._subscriptions):
            subscription._deliver(value)

    def close(self) -> None:
        """Release every subscription, cancelling pending timers."""
        for subscription in list(self._subscriptions):
            subscription.unsubscribe()

    def _remove(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def __len__(self) -> int:
        return len(self._subscriptions)
