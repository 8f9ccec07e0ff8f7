# src/template_auditor/managers/config_manager.py
import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from template_auditor.rules.core import RuleConfig
from template_auditor.utils.path_utils import PathUtils

logger = logging.getLogger(__name__)


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = copy.deepcopy(value)
    return base


def _split_key(key_path: str, known: Dict[str, Any]) -> List[str]:
    """
    Splits 'rules.Accessibility.IframeHasTitle.enabled' into its keys.
    Rule ids contain dots themselves, so an existing key wins over a plain split.
    """
    parts = key_path.split(".")
    keys: List[str] = []
    section: Any = known
    i = 0
    while i < len(parts):
        # Longest existing key first, then fall back to a single part.
        for j in range(len(parts), i, -1):
            candidate = ".".join(parts[i:j])
            if isinstance(section, dict) and candidate in section:
                break
        else:
            j = i + 1
            candidate = parts[i]
        keys.append(candidate)
        section = section.get(candidate) if isinstance(section, dict) else None
        i = j
    return keys


class ConfigManager:
    """
    Singleton holding the auditor's settings.

    The packaged settings.json is the baseline; a user file given with --config is
    merged over it, and single values can be changed in memory for one run.
    """
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(ConfigManager, cls).__new__(cls)
            cls._instance._initialize()
        return cls._instance

    def _initialize(self):
        self._config: Dict[str, Any] = {}
        self.reset()

    def get_all(self) -> Dict[str, Any]:
        return self._config

    def get_nested(self, key_path: str, default: Optional[Any] = None) -> Any:
        """
        Looks up a dotted key, e.g. 'audit.workers' or
        'rules.Accessibility.IframeHasTitle.enabled'.
        """
        current: Any = self._config
        for key in _split_key(key_path, self._config):
            if not isinstance(current, dict) or key not in current:
                return default
            current = current[key]
        return default if current is None else current

    def set_nested(self, key_path: str, value: Any) -> bool:
        """
        Changes one setting in memory. The new value takes the type of the value it
        replaces where that conversion works ('4' becomes 4 for 'audit.workers').
        """
        *parents, leaf = _split_key(key_path, self._config)
        section = self._config
        for key in parents:
            section = section.setdefault(key, {})
            if not isinstance(section, dict):
                logger.error("Cannot set %s: '%s' holds a value, not a section.", key_path, key)
                return False

        previous = section.get(leaf)
        if previous is not None and not isinstance(value, type(previous)):
            try:
                value = type(previous)(value)
            except (ValueError, TypeError):
                logger.warning("Keeping %s as given; it does not convert to %s.", key_path, type(previous).__name__)

        section[leaf] = value
        logger.info("Setting changed: %s = %s", key_path, value)
        return True

    def load_file(self, path: Union[str, Path]) -> bool:
        """Merges a user JSON settings file over the current configuration."""
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                override = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Failed to load settings from %s: %s", path, e)
            return False

        if not isinstance(override, dict):
            logger.error("Settings file %s must contain a JSON object.", path)
            return False

        _deep_merge(self._config, override)
        logger.info("Configuration merged from %s.", path)
        return True

    def get_rule_configs(self) -> Dict[str, RuleConfig]:
        """Validates the 'rules' section into RuleConfig objects keyed by rule id."""
        configs: Dict[str, RuleConfig] = {}
        for rule_id, raw in (self._config.get("rules") or {}).items():
            try:
                configs[rule_id] = RuleConfig.model_validate(raw or {})
            except ValidationError as e:
                logger.error("Invalid configuration for rule %s, using defaults: %s", rule_id, e)
                configs[rule_id] = RuleConfig()
        return configs

    def reset(self):
        """Reloads the packaged settings.json, dropping merged files and in-memory changes."""
        settings_file = PathUtils.get_settings_file()
        if not settings_file.exists():
            logger.warning("No settings file at %s; running with built-in defaults.", settings_file)
            self._config = {}
            return
        try:
            with open(settings_file, "r", encoding="utf-8") as f:
                self._config = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Could not read %s: %s", settings_file, e, exc_info=True)
            self._config = {}
            return
        logger.debug("Settings loaded from %s.", settings_file)


# Shared by the CLI and the controller.
config_manager = ConfigManager()
