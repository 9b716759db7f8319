"""
The customer sign-up form.

Built in code with FormBuilder (the bundled ``definitions/customer.yaml``
describes the same form declaratively). Besides the field validators it
wires up two reactions:

- choosing "text" as the notification channel makes the phone required,
- the email message is recomputed once the user stops typing for a second.
"""

import json
import logging
from typing import Any, Dict, Optional

from .form import Form
from .form_builder import FormBuilder
from .scheduler import TimerQueue
from .validators import email, email_matcher, max_length, min_length, range_validator, required

logger = logging.getLogger(__name__)

EMAIL_MESSAGES = {
    "required": "Please enter your email address.",
    "email": "Please enter a valid email address.",
}


class CustomerForm(Form):
    """
    Customer form with its notification binding and email message watcher.

    Args:
        scheduler: Timer source for the email message debounce (default: a
            TimerQueue on the monotonic clock, pumped by the caller)
        message_debounce: Quiet period before the email message updates
    """

    def __init__(self, scheduler=None, message_debounce: Optional[float] = 1.0):
        self.scheduler = scheduler if scheduler is not None else TimerQueue()
        fb = FormBuilder(scheduler=self.scheduler)
        group = fb.group({
            "firstName": ["", [required, min_length(3)]],
            "lastName": ["", [required, max_length(50)]],
            "emailGroup": fb.group(
                {
                    "email": ["", [required, email]],
                    "confirmEmail": ["", [required]],
                },
                validators=[email_matcher],
            ),
            "phone": "",
            # None is a better blank than "" for a numeric field
            "rating": fb.control(None, [range_validator(1, 5)], value_type="number"),
            "notification": "email",
            "sendCatalog": True,
        })
        super().__init__(
            group,
            messages=EMAIL_MESSAGES,
            name="customer",
            message_debounce=message_debounce,
        )
        self.bind("notification", "phone", when="text", validators=[required])
        self.email_watcher = self.watch_messages("emailGroup.email")

    @property
    def email_message(self) -> str:
        return self.email_watcher.message

    def set_notification(self, notify_via: str) -> None:
        """Select the notification channel ("email" or "text")."""
        self.get("notification").set_value(notify_via)

    def populate_test_data(self) -> None:
        """Fill in a handful of fields; the rest keep their current state."""
        self.group.patch_value({
            "firstName": "Jack",
            "lastName": "Harkness",
            "emailGroup": {"email": "jack@torchwood.com"},
            "sendCatalog": False,
        })

    def save(self) -> Dict[str, Any]:
        """Return the current value; persisting it is the caller's business."""
        value = self.value
        logger.info(f"Saved: {json.dumps(value)}")
        return value
