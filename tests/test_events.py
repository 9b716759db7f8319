"""
Tests for change notification, debouncing and schedulers.

Debounce timing is driven by a ManualClock so the tests never sleep.
"""
import asyncio

import pytest

from reactive_forms import (
    AsyncioScheduler,
    FormControl,
    FormError,
    FormGroup,
    ManualClock,
    TimerQueue,
)
from reactive_forms.validators import required


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def timers(clock):
    return TimerQueue(clock=clock)


@pytest.fixture
def form(timers):
    return FormGroup(
        {
            "contact": FormGroup({"email": FormControl("", [required])}),
            "phone": FormControl(""),
        },
        scheduler=timers,
    )


class TestNotification:
    """Test synchronous notification order and content."""

    def test_control_then_ancestors(self, form):
        """Test that the control notifies before each ancestor."""
        events = []
        form.get("contact.email").subscribe(lambda v: events.append(("email", v)))
        form.get("contact").subscribe(lambda v: events.append(("contact", v)))
        form.subscribe(lambda v: events.append(("root", v["contact"]["email"])))

        form.get("contact.email").set_value("a@x.com")

        assert events == [
            ("email", "a@x.com"),
            ("contact", {"email": "a@x.com"}),
            ("root", "a@x.com"),
        ]

    def test_validation_resolved_before_notification(self, form):
        """Test that subscribers observe final error state for the whole tree."""
        seen = []
        email = form.get("contact.email")
        email.subscribe(lambda v: seen.append((email.valid, form.valid)))
        email.set_value("a@x.com")
        assert seen == [(True, True)]

    def test_status_changes(self, form):
        """Test that status changes follow value changes."""
        statuses = []
        form.get("contact.email").status_changes.subscribe(statuses.append)
        form.get("contact.email").set_value("a@x.com")
        form.get("contact.email").set_value("")
        assert statuses == ["VALID", "INVALID"]

    def test_group_update_notifies_each_changed_child_once(self, form):
        """Test notification for a patch: changed children, then the group chain."""
        events = []
        form.get("contact.email").subscribe(lambda v: events.append("email"))
        form.get("phone").subscribe(lambda v: events.append("phone"))
        form.get("contact").subscribe(lambda v: events.append("contact"))
        form.subscribe(lambda v: events.append("root"))

        form.patch_value({"contact": {"email": "a@x.com"}})

        assert events == ["email", "contact", "root"]

    def test_emit_event_false(self, form):
        """Test that silent updates still validate but notify nobody."""
        events = []
        form.subscribe(events.append)
        form.get("contact.email").set_value("a@x.com", emit_event=False)
        assert events == []
        assert form.valid

    def test_unsubscribe(self, form):
        """Test that a released subscription stops reacting."""
        events = []
        subscription = form.get("phone").subscribe(events.append)
        form.get("phone").set_value("1")
        subscription.unsubscribe()
        form.get("phone").set_value("2")
        assert events == ["1"]
        assert subscription.closed

    def test_subscription_context_manager(self, form):
        events = []
        with form.get("phone").subscribe(events.append):
            form.get("phone").set_value("1")
        form.get("phone").set_value("2")
        assert events == ["1"]


class TestDebounce:
    """Test trailing-edge debouncing."""

    def test_burst_fires_once_with_last_value(self, form, clock, timers):
        """Test three changes 100ms apart with a 1s debounce."""
        fired = []
        phone = form.get("phone")
        phone.subscribe(lambda v: fired.append((clock(), v)), debounce=1.0)

        for value in ("5", "55", "555"):
            phone.set_value(value)
            clock.advance(0.1)
            timers.run_due()

        assert fired == []
        clock.advance(0.8)
        timers.run_due()
        assert fired == []
        clock.advance(0.1)
        timers.run_due()
        assert [value for _, value in fired] == ["555"]
        assert fired[0][0] == pytest.approx(1.2)

    def test_continuous_changes_never_fire(self, form, clock, timers):
        """Test that a stream faster than the interval keeps suppressing."""
        fired = []
        phone = form.get("phone")
        phone.subscribe(fired.append, debounce=1.0)
        for index in range(20):
            phone.set_value(str(index))
            clock.advance(0.5)
            timers.run_due()
        assert fired == []
        clock.advance(1.0)
        timers.run_due()
        assert fired == ["19"]

    def test_one_reaction_per_quiet_period(self, form, clock, timers):
        fired = []
        phone = form.get("phone")
        phone.subscribe(fired.append, debounce=1.0)
        phone.set_value("a")
        clock.advance(1.0)
        timers.run_due()
        phone.set_value("b")
        clock.advance(1.0)
        timers.run_due()
        assert fired == ["a", "b"]

    def test_validation_is_not_delayed(self, form):
        """Test that debouncing only delays the reaction."""
        email = form.get("contact.email")
        email.subscribe(lambda v: None, debounce=1.0)
        email.set_value("a@x.com")
        assert email.valid

    def test_unsubscribe_cancels_pending(self, form, clock, timers):
        """Test that releasing a subscription cancels its pending timer."""
        fired = []
        subscription = form.get("phone").subscribe(fired.append, debounce=1.0)
        form.get("phone").set_value("1")
        assert subscription.pending
        subscription.unsubscribe()
        clock.advance(2.0)
        timers.run_due()
        assert fired == []
        assert len(timers) == 0

    def test_destroy_cancels_pending(self, form, clock, timers):
        """Test that no reaction fires after teardown."""
        fired = []
        form.get("phone").subscribe(fired.append, debounce=1.0)
        form.subscribe(fired.append, debounce=1.0)
        form.get("phone").set_value("1")
        form.destroy()
        clock.advance(2.0)
        assert timers.run_due() == 0
        assert fired == []

    def test_scheduler_inherited_from_root(self, form, timers):
        assert form.get("contact.email").scheduler is timers

    def test_no_scheduler(self):
        """Test that debouncing without a scheduler is a usage error."""
        control = FormControl("")
        with pytest.raises(FormError):
            control.subscribe(lambda v: None, debounce=1.0)

    def test_explicit_scheduler(self, clock, timers):
        fired = []
        control = FormControl("")
        assert len(timers) == 0
        control.subscribe(fired.append, debounce=0.5, scheduler=timers)
        control.set_value("x")
        clock.advance(0.5)
        timers.run_due()
        assert fired == ["x"]

    def test_negative_debounce(self, form):
        with pytest.raises(ValueError):
            form.subscribe(lambda v: None, debounce=-1)


class TestTimerQueue:
    """Test the cooperative timer queue."""

    def test_runs_in_deadline_order(self, clock, timers):
        order = []
        timers.call_later(2.0, order.append, "late")
        timers.call_later(1.0, order.append, "early")
        clock.advance(3.0)
        assert timers.run_due() == 2
        assert order == ["early", "late"]

    def test_cancelled_timers_are_skipped(self, clock, timers):
        order = []
        handle = timers.call_later(1.0, order.append, "x")
        handle.cancel()
        assert timers.next_deadline() is None
        clock.advance(1.0)
        assert timers.run_due() == 0

    def test_next_deadline(self, clock, timers):
        timers.call_later(1.5, lambda: None)
        assert timers.next_deadline() == pytest.approx(1.5)

    def test_clear(self, timers):
        timers.call_later(1.0, lambda: None)
        timers.clear()
        assert len(timers) == 0

    def test_manual_clock_cannot_go_back(self, clock):
        with pytest.raises(ValueError):
            clock.advance(-1)


class TestAsyncioScheduler:
    """Test debouncing on an asyncio event loop."""

    def test_debounce_on_event_loop(self):
        fired = []

        async def scenario():
            control = FormControl("", scheduler=AsyncioScheduler())
            control.subscribe(fired.append, debounce=0.05)
            for value in ("a", "ab", "abc"):
                control.set_value(value)
                await asyncio.sleep(0.01)
            assert fired == []
            await asyncio.sleep(0.2)

        asyncio.run(scenario())
        assert fired == ["abc"]
