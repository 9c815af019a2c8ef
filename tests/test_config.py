import logging

import pytest

from wcagscan.core.config import DEFAULT_AXE_RULES, ScanConfig, load_config
from wcagscan.core.errors import ConfigLoadError
from wcagscan.core.log import LogWithTqdm, configure_logging
from wcagscan.scanners.axe import axe_options


# --- defaults and environment ---

def test_defaults():
    config = ScanConfig()
    assert config.settle_ms == 8000
    assert config.content_wait_ms == 30000
    assert config.min_target_size == 24
    assert config.lighthouse_max_wait_ms == 45000
    assert config.wave_api_key is None


def test_from_env_reads_supported_variables():
    env = {
        "A11Y_SETTLE_MS": "15000",
        "A11Y_CONTENT_WAIT_MS": "5000",
        "LIGHTHOUSE_MAX_WAIT_MS": "60000",
        "WAVE_API_KEY": " secret ",
        "LIGHTHOUSE_BIN": "/opt/lh/bin/lighthouse",
    }
    config = ScanConfig.from_env(env)
    assert config.settle_ms == 15000
    assert config.content_wait_ms == 5000
    assert config.lighthouse_max_wait_ms == 60000
    assert config.wave_api_key == "secret"
    assert config.lighthouse_bin == "/opt/lh/bin/lighthouse"


def test_env_negative_clamps_to_zero_and_garbage_is_zero():
    config = ScanConfig.from_env({"A11Y_SETTLE_MS": "-5", "A11Y_CONTENT_WAIT_MS": "soon"})
    assert config.settle_ms == 0
    assert config.content_wait_ms == 0


def test_empty_environment_keeps_defaults():
    assert ScanConfig.from_env({}) == ScanConfig()


# --- YAML overlay ---

def test_load_config_file_then_env(tmp_path):
    path = tmp_path / "scan.yaml"
    path.write_text("settle_ms: 1000\nheadless: false\naxe_rules: []\naxe_tags: [wcag2a, wcag22aa]\n")
    config = load_config(path, environ={"A11Y_SETTLE_MS": "2500"})
    assert config.settle_ms == 2500
    assert config.headless is False
    assert config.axe_rules == ()
    assert config.axe_tags == ("wcag2a", "wcag22aa")


def test_empty_config_file_is_defaults(tmp_path):
    path = tmp_path / "scan.yaml"
    path.write_text("")
    assert load_config(path, environ={}) == ScanConfig()


def test_unknown_keys_are_rejected(tmp_path):
    path = tmp_path / "scan.yaml"
    path.write_text("settle_ms: 1\nsettle: 2\nwave_key: x\n")
    with pytest.raises(ConfigLoadError, match="unknown config keys: settle, wave_key"):
        load_config(path, environ={})


def test_invalid_yaml_is_rejected(tmp_path):
    path = tmp_path / "scan.yaml"
    path.write_text("settle_ms: [1, 2\n")
    with pytest.raises(ConfigLoadError, match="invalid YAML"):
        load_config(path, environ={})


def test_non_mapping_is_rejected(tmp_path):
    path = tmp_path / "scan.yaml"
    path.write_text("- settle_ms\n")
    with pytest.raises(ConfigLoadError, match="mapping"):
        load_config(path, environ={})


def test_list_fields_must_be_lists(tmp_path):
    path = tmp_path / "scan.yaml"
    path.write_text("axe_rules: image-alt\n")
    with pytest.raises(ConfigLoadError, match="'axe_rules' must be a list"):
        load_config(path, environ={})


def test_missing_file_is_rejected(tmp_path):
    with pytest.raises(ConfigLoadError, match="cannot read"):
        load_config(tmp_path / "nope.yaml", environ={})


# --- axe options ---

def test_axe_runs_rule_list_by_default():
    assert axe_options(ScanConfig()) == {"runOnly": {"type": "rule", "values": list(DEFAULT_AXE_RULES)}}


def test_axe_runs_by_tags_without_rule_list():
    options = axe_options(ScanConfig(axe_rules=()))
    assert options["runOnly"]["type"] == "tag"
    assert "wcag22aa" in options["runOnly"]["values"]


# --- logging ---

def test_configure_logging_installs_tqdm_handler():
    root = logging.getLogger()
    saved = root.handlers[:], root.level
    try:
        configure_logging("DEBUG", {"playwright": "ERROR"})
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0], LogWithTqdm)
        assert root.level == logging.DEBUG
        assert logging.getLogger("urllib3").level == logging.WARNING
        assert logging.getLogger("playwright").level == logging.ERROR
    finally:
        root.handlers[:] = saved[0]
        root.setLevel(saved[1])
