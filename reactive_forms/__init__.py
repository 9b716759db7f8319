"""
reactive-forms-lib: reactive form model with a pluggable validation pipeline

This library provides:
- Controls and (nested) groups with synchronous validation
- Cross-field group validators
- Validators bound at runtime to other controls' values
- Change subscriptions with optional debouncing
- Declarative YAML form definitions checked against a JSON schema
- A JSON-RPC server for driving forms from other processes

Example:
    from reactive_forms import FormBuilder, TimerQueue, validators

    fb = FormBuilder(scheduler=TimerQueue())
    form = fb.group({
        "name": ["", [validators.required]],
        "rating": [None, [validators.range_validator(1, 5)]],
    })
    form.get("rating").set_value(7)
    form.valid  # False
"""

from .api import FormService
from .binding import ValidatorBinding, bind_validators
from .config_loader import ConfigLoader
from .customer import CustomerForm
from .definition_loader import DefinitionLoader
from .errors import (
    DefinitionError,
    FormError,
    IncompleteValueError,
    PathNotFoundError,
    TypeMismatchError,
    UnknownFormError,
    UnknownValidatorError,
)
from .events import EventStream, Subscription
from .form import Form
from .form_builder import FormBuilder
from .messages import MessageSet, MessageWatcher, derive_message
from .model import INVALID, VALID, AbstractControl, FormControl, FormGroup
from .pipeline import apply_validators, compose
from .scheduler import AsyncioScheduler, ManualClock, TimerQueue
from .validator_registry import ValidatorRegistry
from . import validators

__version__ = "0.1.0"
__all__ = [
    "AbstractControl",
    "AsyncioScheduler",
    "ConfigLoader",
    "CustomerForm",
    "DefinitionError",
    "DefinitionLoader",
    "EventStream",
    "Form",
    "FormBuilder",
    "FormControl",
    "FormError",
    "FormGroup",
    "FormService",
    "IncompleteValueError",
    "INVALID",
    "ManualClock",
    "MessageSet",
    "MessageWatcher",
    "PathNotFoundError",
    "Subscription",
    "TimerQueue",
    "TypeMismatchError",
    "UnknownFormError",
    "UnknownValidatorError",
    "VALID",
    "ValidatorBinding",
    "ValidatorRegistry",
    "apply_validators",
    "bind_validators",
    "compose",
    "derive_message",
    "validators",
]
