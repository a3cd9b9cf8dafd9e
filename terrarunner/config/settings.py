"""
Settings management for terrarunner.

Handles loading and accessing runner configuration.
"""

import copy
import json
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional
import logging

from .defaults import DEFAULT_SETTINGS, ENV_OVERRIDES

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class Settings:
    """
    Runner settings manager.

    Values come from three layers, later ones winning:
    DEFAULT_SETTINGS, a JSON settings file, then environment overrides
    (see ENV_OVERRIDES).

    File lookup order:
        1. ``config_file`` argument
        2. ``TERRARUNNER_CONFIG`` environment variable
        3. Linux/macOS: ~/.config/terrarunner/settings.json
           Windows: %APPDATA%\\terrarunner\\settings.json
    """

    def __init__(
        self,
        config_file: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self._environ = os.environ if environ is None else environ
        if config_file:
            self.config_file = Path(config_file)
        elif self._environ.get("TERRARUNNER_CONFIG"):
            self.config_file = Path(self._environ["TERRARUNNER_CONFIG"])
        else:
            self.config_file = self._get_config_dir(self._environ) / "settings.json"
        self._settings: Dict[str, Any] = {}
        self.load()

    @staticmethod
    def _get_config_dir(environ: Mapping[str, str]) -> Path:
        """Get platform-specific configuration directory."""
        if os.name == 'nt':  # Windows
            base = environ.get('APPDATA', os.path.expanduser('~'))
        else:  # Linux/macOS
            base = environ.get('XDG_CONFIG_HOME', os.path.expanduser('~/.config'))
        return Path(base) / 'terrarunner'

    def load(self):
        """
        Load settings from file, then apply environment overrides.

        If the file doesn't exist or is invalid, the defaults are used.
        """
        self._settings = copy.deepcopy(DEFAULT_SETTINGS)

        if not self.config_file.exists():
            logger.info("No config file found, using defaults")
        else:
            try:
                with open(self.config_file, 'r') as f:
                    loaded_settings = json.load(f)

                if isinstance(loaded_settings, dict):
                    self._deep_update(self._settings, loaded_settings)
                    logger.info(f"Loaded settings from {self.config_file}")
                else:
                    logger.error(
                        f"Settings file {self.config_file} is not a JSON object, using defaults"
                    )

            except (json.JSONDecodeError, IOError) as e:
                logger.error(f"Failed to load settings: {e}, using defaults")

        self._apply_env_overrides()

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get setting value.

        Supports nested keys with dot notation: "terraform.log_level"

        Args:
            key: Setting key (use dots for nested values)
            default: Default value if key not found

        Returns:
            Setting value or default
        """
        keys = key.split('.')
        value = self._settings

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def set(self, key: str, value: Any):
        """
        Set setting value.

        Supports nested keys with dot notation: "terraform.log_level"
        """
        keys = key.split('.')
        target = self._settings

        for k in keys[:-1]:
            if k not in target or not isinstance(target[k], dict):
                target[k] = {}
            target = target[k]

        target[keys[-1]] = value

    @property
    def terraform_binary_location(self) -> str:
        return self.get("terraform.binary_location", "") or ""

    @property
    def default_executor(self) -> str:
        return self.get("terraform.default_executor", "terraform") or "terraform"

    @property
    def terraform_log_level(self) -> str:
        return self.get("terraform.log_level", "INFO")

    @property
    def log_terraform_output(self) -> bool:
        return bool(self.get("log.terraform_stdout_stderr", True))

    @property
    def allowed_workspace_roots(self) -> List[str]:
        return list(self.get("security.allowed_workspace_roots", []) or [])

    def _apply_env_overrides(self):
        for env_name, (key, kind) in ENV_OVERRIDES.items():
            raw = self._environ.get(env_name)
            if raw is None:
                continue

            if kind == "bool":
                lowered = raw.strip().lower()
                if lowered in _TRUE_VALUES:
                    value: Any = True
                elif lowered in _FALSE_VALUES:
                    value = False
                else:
                    logger.warning(f"Ignoring {env_name}={raw!r}: not a boolean")
                    continue
            elif kind == "paths":
                value = [p for p in raw.split(os.pathsep) if p]
            else:
                value = raw

            logger.debug(f"Setting {key} from environment variable {env_name}")
            self.set(key, value)

    @staticmethod
    def _deep_update(base: dict, updates: dict):
        """
        Recursively update base dict with values from updates dict.

        Args:
            base: Dictionary to update
            updates: Dictionary with new values
        """
        for key, value in updates.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                Settings._deep_update(base[key], value)
            else:
                base[key] = value
