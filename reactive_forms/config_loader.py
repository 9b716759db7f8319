"""Library settings: bundled defaults.yaml overlaid with an optional user file."""

import copy
import os
import yaml
from pathlib import Path
from typing import Any, Dict, Optional
from importlib.resources import files


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigLoader:
    """Handles settings: bundled defaults plus an optional override file."""

    def __init__(self, config_path: Optional[str] = None):
        """
        Load bundled defaults.yaml, then merge ``config_path`` over it.

        Args:
            config_path: Optional YAML file overriding any subset of the defaults

        Raises:
            ValueError: If the override file is not a YAML mapping
        """
        defaults_file = files('reactive_forms').joinpath('defaults.yaml')
        with defaults_file.open('r') as f:
            self.defaults = yaml.safe_load(f) or {}

        self.config_path = config_path
        if config_path:
            override = self._load_yaml(config_path)
            if not isinstance(override, dict):
                raise ValueError(f"Config file {config_path} must contain a mapping")
            self.config = _deep_merge(self.defaults, override)
        else:
            self.config = copy.deepcopy(self.defaults)

    def _load_yaml(self, path: str) -> Any:
        """Load YAML file from disk."""
        with open(path) as f:
            return yaml.safe_load(f) or {}

    def get(self, key: str, default: Any = None) -> Any:
        return self.config.get(key, default)

    def get_message_debounce(self) -> Optional[float]:
        """Quiet period for message watchers, in seconds (None disables debouncing)."""
        value = self.config.get('message_debounce_seconds')
        return None if value is None else float(value)

    def get_strict_types(self) -> bool:
        return bool(self.config.get('strict_types', False))

    def get_messages(self) -> Dict[str, str]:
        return dict(self.config.get('messages') or {})

    def get_http_timeout(self) -> float:
        return float(self.config.get('http_timeout_seconds', 10))

    @property
    def cache_dir(self) -> Path:
        """Cache directory for fetched definitions (not created until needed)."""
        location = self.config.get('definition_cache_dir', '~/.cache/reactive-forms-lib')
        return Path(os.path.expanduser(location))
