# tests/core/test_config_management.py
import json

import pytest

from template_auditor.managers.config_manager import ConfigManager
from template_auditor.rules.core import RuleConfig
from template_auditor.utils.path_utils import PathUtils

# A small, predictable configuration for the tests
MOCK_SETTINGS_CONTENT = {
    "debug": {
        "level": "WARNING"
    },
    "audit": {
        "workers": 2,
        "extensions": [".html"]
    },
    "rules": {
        "Accessibility.IframeHasTitle": {"enabled": False},
        "Accessibility.NoTitleAttribute": {"enabled": "not-a-bool"}
    }
}


@pytest.fixture
def manager(tmp_path, monkeypatch):
    """
    Sets up an isolated environment for the ConfigManager:
    - Creates a temporary package root with a fake 'settings.json'.
    - Monkeypatches PathUtils to point at it.
    The packaged settings are restored afterwards, since the manager is a singleton.
    """
    package_root = tmp_path / "template_auditor"
    package_root.mkdir()
    (package_root / "settings.json").write_text(json.dumps(MOCK_SETTINGS_CONTENT))

    monkeypatch.setattr(PathUtils, 'get_package_root', lambda: package_root)

    instance = ConfigManager()
    instance.reset()  # Force a reload from our fake file
    yield instance

    monkeypatch.undo()
    instance.reset()


def test_config_manager_is_a_singleton(manager):
    assert ConfigManager() is manager


def test_config_manager_load(manager):
    config = manager.get_all()
    assert config["debug"]["level"] == "WARNING"
    assert config["audit"]["workers"] == 2


def test_config_manager_get_nested(manager):
    assert manager.get_nested("audit.extensions") == [".html"]
    assert manager.get_nested("non.existent.key", "default") == "default"
    assert manager.get_nested("debug.level.deeper", "default") == "default"


def test_config_manager_set_nested(manager):
    # Changing an existing value
    manager.set_nested("debug.level", "INFO")
    assert manager.get_nested("debug.level") == "INFO"

    # Adding a new key
    manager.set_nested("new_feature.enabled", True)
    assert manager.get_nested("new_feature.enabled") is True

    # The original value is an int, so the string '4' is cast to an int.
    manager.set_nested("audit.workers", "4")
    assert manager.get_nested("audit.workers") == 4
    assert isinstance(manager.get_nested("audit.workers"), int)


def test_dotted_rule_ids_are_addressable(manager):
    assert manager.get_nested("rules.Accessibility.IframeHasTitle.enabled") is False

    manager.set_nested("rules.Accessibility.IframeHasTitle.enabled", True)

    assert manager.get_rule_configs()["Accessibility.IframeHasTitle"].enabled is True


def test_config_manager_set_nested_through_a_leaf_fails(manager):
    assert manager.set_nested("debug.level.deeper", 1) is False


def test_config_manager_reset(manager):
    manager.set_nested("debug.level", "DEBUG")
    assert manager.get_nested("debug.level") == "DEBUG"

    manager.reset()

    assert manager.get_nested("debug.level") == "WARNING"


def test_load_file_deep_merges_user_settings(manager, tmp_path):
    user_file = tmp_path / "user.json"
    user_file.write_text(json.dumps({"audit": {"workers": 8}}))

    assert manager.load_file(user_file) is True
    assert manager.get_nested("audit.workers") == 8
    assert manager.get_nested("audit.extensions") == [".html"]


@pytest.mark.parametrize("content", ["{not json", "[1, 2]"])
def test_load_file_rejects_bad_files(manager, tmp_path, content):
    user_file = tmp_path / "bad.json"
    user_file.write_text(content)

    assert manager.load_file(user_file) is False
    assert manager.get_nested("audit.workers") == 2


def test_load_file_missing(manager, tmp_path):
    assert manager.load_file(tmp_path / "missing.json") is False


def test_get_rule_configs(manager):
    configs = manager.get_rule_configs()

    assert configs["Accessibility.IframeHasTitle"] == RuleConfig(enabled=False)
    # Invalid blocks fall back to the defaults
    assert configs["Accessibility.NoTitleAttribute"] == RuleConfig()
    assert "Accessibility.AvoidGenericLinkTextCounter" not in configs


def test_missing_settings_file_gives_empty_config(tmp_path, monkeypatch):
    monkeypatch.setattr(PathUtils, 'get_package_root', lambda: tmp_path / "nowhere")
    instance = ConfigManager()
    instance.reset()
    try:
        assert instance.get_all() == {}
        assert instance.get_rule_configs() == {}
    finally:
        monkeypatch.undo()
        instance.reset()


def test_packaged_settings_enable_every_rule():
    instance = ConfigManager()
    instance.reset()

    configs = instance.get_rule_configs()
    assert all(config.enabled for config in configs.values())
    assert configs["Accessibility.AvoidGenericLinkTextCounter"].counter_enabled is True
    assert instance.get_nested("debug.level") == "WARNING"
