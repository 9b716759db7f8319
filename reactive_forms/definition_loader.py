"""Declarative form definitions: loading, schema validation and building."""

import hashlib
import json
import logging
import urllib.parse
from pathlib import Path
from typing import Any, Dict, Optional
from importlib.resources import files

import requests
import yaml
from jsonschema import Draft7Validator
from jsonschema.exceptions import best_match

from .config_loader import ConfigLoader
from .errors import DefinitionError, PathNotFoundError
from .form import Form
from .form_builder import FormBuilder
from .messages import MessageSet
from .model import INFER_TYPE, AbstractControl, FormGroup
from .validator_registry import ValidatorRegistry

logger = logging.getLogger(__name__)


class DefinitionLoader:
    """
    Loads YAML form definitions and turns them into Forms.

    Sources, in resolution order:
    - ``http://`` / ``https://`` URIs, fetched with requests and cached on
      disk (keyed by SHA-256 of the URI)
    - ``file://`` URIs
    - existing filesystem paths
    - names of definitions bundled with the package (e.g. ``"customer"``)

    Every definition is checked against the bundled
    form-definition.schema.json before it is built.
    """

    def __init__(
        self,
        config_loader: Optional[ConfigLoader] = None,
        registry: Optional[ValidatorRegistry] = None,
    ):
        self.config_loader = config_loader or ConfigLoader()
        self.registry = registry or ValidatorRegistry.with_builtins()
        schema_file = files('reactive_forms').joinpath('form-definition.schema.json')
        with schema_file.open('r') as f:
            self.schema = json.load(f)
        self._schema_validator = Draft7Validator(self.schema)

    # Loading

    def load(self, source: str, refresh: bool = False) -> Dict[str, Any]:
        """
        Load and validate a definition.

        Args:
            source: URI, path or bundled definition name
            refresh: Re-fetch remote definitions even when cached

        Returns:
            The definition as a dict

        Raises:
            DefinitionError: If the source cannot be found, fetched or parsed,
                or the document violates the schema
        """
        parsed = urllib.parse.urlparse(source)

        if parsed.scheme in ('http', 'https'):
            definition = self._parse(self._fetch_cached(source, refresh), source)
        elif parsed.scheme == 'file':
            definition = self._load_file(Path(urllib.parse.unquote(parsed.path)))
        elif Path(source).exists():
            definition = self._load_file(Path(source))
        else:
            definition = self._load_bundled(source)

        self.validate(definition)
        return definition

    def _load_file(self, path: Path) -> Dict[str, Any]:
        try:
            content = path.read_text()
        except OSError as e:
            raise DefinitionError(f"Cannot read form definition {path}: {e}")
        return self._parse(content, str(path))

    def _load_bundled(self, name: str) -> Dict[str, Any]:
        resource = files('reactive_forms').joinpath('definitions').joinpath(f"{name}.yaml")
        if '/' in name or not resource.is_file():
            raise DefinitionError(f"Form definition not found: {name}")
        return self._parse(resource.read_text(), name)

    def _fetch_cached(self, uri: str, refresh: bool) -> str:
        cache_dir = self.config_loader.cache_dir
        cache_key = hashlib.sha256(uri.encode()).hexdigest()
        cache_path = cache_dir / f"definition_{cache_key}.yaml"

        if cache_path.exists() and not refresh:
            logger.debug(f"Using cached definition for {uri}")
            return cache_path.read_text()

        content = self._fetch_uri(uri)
        cache_dir.mkdir(parents=True, exist_ok=True)
        cache_path.write_text(content)
        logger.info(f"Fetched form definition from {uri}")
        return content

    def _fetch_uri(self, uri: str) -> str:
        """Fetch content from HTTP/HTTPS URI."""
        try:
            response = requests.get(uri, timeout=self.config_loader.get_http_timeout())
            response.raise_for_status()
        except requests.RequestException as e:
            raise DefinitionError(f"Failed to fetch form definition from {uri}: {e}")
        return response.text

    def _parse(self, content: str, source: str) -> Dict[str, Any]:
        try:
            definition = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise DefinitionError(f"Form definition {source} is not valid YAML: {e}")
        if not isinstance(definition, dict):
            raise DefinitionError(f"Form definition {source} must be a mapping")
        return definition

    def validate(self, definition: Dict[str, Any]) -> None:
        """
        Check a definition against the bundled JSON schema.

        Raises:
            DefinitionError: Naming the location of the most relevant violation
        """
        error = best_match(self._schema_validator.iter_errors(definition))
        if error is None:
            return
        location = " -> ".join(str(p) for p in error.absolute_path) or "root"
        raise DefinitionError(f"Invalid form definition at {location}: {error.message}")

    # Building

    def build(
        self,
        definition: Dict[str, Any],
        scheduler=None,
        strict_types: Optional[bool] = None,
    ) -> Form:
        """
        Build a Form from a definition.

        Args:
            definition: Definition dict (validated again here)
            scheduler: Timer source for debounced subscriptions
            strict_types: Overrides the configured strict_types setting

        Returns:
            A Form with its controls, bindings and messages in place

        Raises:
            DefinitionError: If the definition is invalid, names unknown
                validators, or binds controls that do not exist
        """
        self.validate(definition)
        if strict_types is None:
            strict_types = self.config_loader.get_strict_types()
        builder = FormBuilder(
            scheduler=scheduler, strict_types=strict_types, registry=self.registry
        )
        group = self._build_group(builder, definition)

        messages = MessageSet(self.config_loader.get_messages()).merged(
            definition.get("messages")
        )
        form = Form(
            group,
            messages=messages,
            name=definition.get("name"),
            message_debounce=self.config_loader.get_message_debounce(),
        )

        for spec in definition.get("bindings", []):
            try:
                trigger = group.get(spec["trigger"])
                target = group.get(spec["target"])
            except PathNotFoundError as e:
                form.destroy()
                raise DefinitionError(f"Binding refers to a missing control: {e}")
            form.bind(
                trigger,
                target,
                spec["when"],
                validators=self.registry.resolve_all(spec.get("validators", ["required"])),
                slot=spec.get("slot"),
                immediate=spec.get("immediate", False),
            )

        logger.info(
            f"Built form '{form.name}' with {sum(1 for _ in group.walk()) - 1} node(s) "
            f"and {len(form.bindings)} binding(s)"
        )
        return form

    def load_form(self, source: str, scheduler=None, refresh: bool = False) -> Form:
        """Load a definition and build it."""
        return self.build(self.load(source, refresh=refresh), scheduler=scheduler)

    def _build_group(self, builder: FormBuilder, spec: Dict[str, Any]) -> FormGroup:
        controls = {
            name: self._build_node(builder, node)
            for name, node in spec["controls"].items()
        }
        return builder.group(controls, validators=spec.get("validators"))

    def _build_node(self, builder: FormBuilder, node: Any) -> AbstractControl:
        if isinstance(node, dict) and "controls" in node:
            return self._build_group(builder, node)
        if isinstance(node, dict):
            return builder.control(
                node["value"],
                node.get("validators"),
                node.get("type", INFER_TYPE),
            )
        return builder.control(node)
