"""
Tests for CustomerForm

The customer form end to end: field validation, the notification -> phone
binding, the debounced email message and the test-data/save helpers.
"""
import logging

import pytest

from reactive_forms import CustomerForm, ManualClock, TimerQueue


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def timers(clock):
    return TimerQueue(clock=clock)


@pytest.fixture
def customer(timers):
    form = CustomerForm(scheduler=timers)
    yield form
    form.destroy()


class TestInitialState:
    """Test the form as first built."""

    def test_uses_given_scheduler(self, customer, timers):
        """Test that an empty caller-supplied queue is kept, not replaced."""
        assert len(timers) == 0
        assert customer.scheduler is timers
        assert customer.get("emailGroup.email").scheduler is timers

    def test_values(self, customer):
        assert customer.value == {
            "firstName": "",
            "lastName": "",
            "emailGroup": {"email": "", "confirmEmail": ""},
            "phone": "",
            "rating": None,
            "notification": "email",
            "sendCatalog": True,
        }

    def test_required_fields_make_form_invalid(self, customer):
        assert customer.valid is False
        assert customer.get("firstName").errors == {"required": True}
        assert customer.get("phone").valid
        assert customer.get("rating").valid

    def test_no_messages_before_interaction(self, customer):
        assert customer.email_message == ""
        assert customer.messages_by_path() == {}


class TestFields:
    """Test individual field rules."""

    def test_first_name_length(self, customer):
        customer.get("firstName").set_value("Al")
        assert set(customer.get("firstName").errors) == {"min_length"}

    def test_rating(self, customer):
        rating = customer.get("rating")
        rating.set_value(3)
        assert rating.valid
        rating.set_value(7)
        assert rating.errors == {"range": True}
        rating.set_value(None)
        assert rating.valid

    def test_rating_type(self, customer):
        """Test that text in the numeric rating field is reported, not stored silently."""
        rating = customer.get("rating")
        rating.set_value("three")
        assert "type" in rating.errors

    def test_email_confirmation(self, customer):
        group = customer.get("emailGroup")
        group.set_value({"email": "jack@torchwood.com", "confirmEmail": "jack@torchwod.com"})
        group.mark_touched()
        group.revalidate()
        assert group.errors == {"match": True}

        group.get("confirmEmail").set_value("jack@torchwood.com")
        assert group.errors == {}


class TestNotificationBinding:
    """Test that texting requires a phone number."""

    def test_text_requires_phone(self, customer):
        customer.set_notification("text")
        assert customer.get("phone").errors == {"required": True}

    def test_back_to_email(self, customer):
        customer.set_notification("text")
        customer.set_notification("email")
        assert customer.get("phone").valid

    def test_phone_filled(self, customer):
        customer.set_notification("text")
        customer.get("phone").set_value("555-1234")
        assert customer.get("phone").valid


class TestEmailMessage:
    """Test the debounced email message."""

    def test_message_waits_for_quiet_period(self, customer, clock, timers):
        email = customer.get("emailGroup.email")
        for value in ("j", "ja", "jac"):
            email.set_value(value)
            clock.advance(0.1)
            timers.run_due()
        assert customer.email_message == ""

        clock.advance(1.0)
        timers.run_due()
        assert customer.email_message == "Please enter a valid email address."

    def test_message_clears_when_fixed(self, customer, clock, timers):
        email = customer.get("emailGroup.email")
        email.set_value("jack")
        clock.advance(1.0)
        timers.run_due()
        email.set_value("jack@torchwood.com")
        clock.advance(1.0)
        timers.run_due()
        assert customer.email_message == ""

    def test_cleared_email(self, customer, clock, timers):
        email = customer.get("emailGroup.email")
        email.set_value("jack")
        email.set_value("")
        clock.advance(1.0)
        timers.run_due()
        assert customer.email_message == "Please enter your email address."

    def test_destroy_cancels_pending_message(self, customer, clock, timers):
        """Test that a torn-down form never delivers a late message."""
        customer.get("emailGroup.email").set_value("jack")
        customer.destroy()
        clock.advance(2.0)
        assert timers.run_due() == 0
        assert customer.email_message == ""
        assert customer.destroyed


class TestHelpers:
    """Test populate_test_data and save."""

    def test_populate_test_data(self, customer):
        customer.get("phone").set_value("555-1234")
        customer.populate_test_data()

        value = customer.value
        assert value["firstName"] == "Jack"
        assert value["lastName"] == "Harkness"
        assert value["emailGroup"] == {"email": "jack@torchwood.com", "confirmEmail": ""}
        assert value["sendCatalog"] is False
        assert value["phone"] == "555-1234"
        assert value["notification"] == "email"

    def test_populated_form_still_needs_confirmation(self, customer):
        customer.populate_test_data()
        assert customer.valid is False
        assert customer.get("emailGroup.confirmEmail").errors == {"required": True}

    def test_save(self, customer, caplog):
        customer.populate_test_data()
        with caplog.at_level(logging.INFO, logger="reactive_forms.customer"):
            saved = customer.save()
        assert saved == customer.value
        assert "Saved:" in caplog.text
        assert '"firstName": "Jack"' in caplog.text
