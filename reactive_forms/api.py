"""
Public API for reactive-forms-lib

This is the "front door" for callers that work with forms by id, such as
the JSON-RPC server: every method takes plain data and returns plain data.
"""

import itertools
import logging
from typing import Any, Dict, List, Optional

from .config_loader import ConfigLoader
from .definition_loader import DefinitionLoader
from .errors import DefinitionError, UnknownFormError
from .form import Form
from .model import AbstractControl
from .scheduler import TimerQueue
from .validator_registry import ValidatorRegistry

logger = logging.getLogger(__name__)


class FormService:
    """
    Manages live forms built from declarative definitions.

    Example:
        from reactive_forms import FormService

        service = FormService()
        form_id = service.create_form("customer")
        service.set_value(form_id, "notification", "text")
        state = service.get_state(form_id, "phone")
        assert state["errors"] == {"required": True}

    Debounced reactions run on the service's scheduler. With the default
    TimerQueue the owner calls run_pending() to fire them; the JSON-RPC
    server does so before every request.
    """

    def __init__(self, config_path: Optional[str] = None, scheduler=None):
        """
        Initialize the service.

        Args:
            config_path: Optional YAML file overriding the bundled defaults
            scheduler: Timer source for debounced reactions (default: TimerQueue)
        """
        self.config_loader = ConfigLoader(config_path)
        self.registry = ValidatorRegistry.with_builtins()
        self.definition_loader = DefinitionLoader(self.config_loader, self.registry)
        self.scheduler = scheduler if scheduler is not None else TimerQueue()
        self._forms: Dict[str, Form] = {}
        self._ids = itertools.count(1)

    # Lifecycle

    def create_form(
        self,
        source: Optional[str] = None,
        definition: Optional[Dict[str, Any]] = None,
        form_id: Optional[str] = None,
    ) -> str:
        """
        Build a form from a definition source or an inline definition.

        Args:
            source: Bundled definition name, path or URI
            definition: Inline definition dict (instead of source)
            form_id: Id to register the form under (default: generated)

        Returns:
            The form id

        Raises:
            DefinitionError: If neither or both of source/definition are
                given, the id is taken, or the definition is invalid
        """
        if (source is None) == (definition is None):
            raise DefinitionError("Provide exactly one of source or definition")
        if form_id is not None and form_id in self._forms:
            raise DefinitionError(f"Form id already in use: {form_id}")

        if source is not None:
            definition = self.definition_loader.load(source)
        form = self.definition_loader.build(definition, scheduler=self.scheduler)

        if form_id is None:
            form_id = f"{form.name}-{next(self._ids)}"
            while form_id in self._forms:
                form_id = f"{form.name}-{next(self._ids)}"
        self._forms[form_id] = form
        logger.info(f"Created form {form_id}")
        return form_id

    def get_form(self, form_id: str) -> Form:
        try:
            return self._forms[form_id]
        except KeyError:
            raise UnknownFormError(form_id) from None

    def list_forms(self) -> List[str]:
        return list(self._forms)

    def destroy_form(self, form_id: str) -> None:
        """Destroy a form, cancelling its pending debounced reactions."""
        form = self.get_form(form_id)
        del self._forms[form_id]
        form.destroy()
        logger.info(f"Destroyed form {form_id}")

    def close(self) -> None:
        """Destroy every form."""
        for form_id in list(self._forms):
            self.destroy_form(form_id)

    # Queries

    def _node(self, form_id: str, path: Optional[str]) -> AbstractControl:
        form = self.get_form(form_id)
        return form.get(path) if path else form.group

    def get_state(self, form_id: str, path: Optional[str] = None) -> Dict[str, Any]:
        """
        Snapshot of a form, or of one control or group inside it.

        Returns:
            Dict with path, value, status, valid, errors, touched, dirty
            (and controls, recursively, for groups)
        """
        return self._node(form_id, path).snapshot()

    def get_messages(self, form_id: str) -> Dict[str, str]:
        """Visible messages (touched or dirty controls only), keyed by control path."""
        return self.get_form(form_id).messages_by_path()

    def list_validators(self) -> List[str]:
        return self.registry.names()

    # Mutations

    def set_value(self, form_id: str, path: Optional[str], value: Any) -> Dict[str, Any]:
        """Strict set_value on a control or group; returns the root state."""
        self._node(form_id, path).set_value(value)
        return self.get_state(form_id)

    def patch_value(self, form_id: str, path: Optional[str], value: Any) -> Dict[str, Any]:
        """Partial update of a control or group; returns the root state."""
        self._node(form_id, path).patch_value(value)
        return self.get_state(form_id)

    def mark_touched(self, form_id: str, path: Optional[str] = None) -> Dict[str, Any]:
        self._node(form_id, path).mark_touched()
        return self.get_state(form_id, path)

    def mark_dirty(self, form_id: str, path: Optional[str] = None) -> Dict[str, Any]:
        self._node(form_id, path).mark_dirty()
        return self.get_state(form_id, path)

    def revalidate(self, form_id: str, path: Optional[str] = None) -> Dict[str, Any]:
        self._node(form_id, path).revalidate()
        return self.get_state(form_id, path)

    def run_pending(self) -> int:
        """Fire debounced reactions whose quiet period has elapsed."""
        run_due = getattr(self.scheduler, "run_due", None)
        return run_due() if run_due is not None else 0
