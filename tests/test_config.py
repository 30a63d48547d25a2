"""
Tests for YAML configuration loading.
"""
import pytest

from tkan import config as config_module
from tkan.config import Config
from tkan.errors import ConfigError


@pytest.fixture(autouse=True)
def isolated(monkeypatch, tmp_path):
    """No user config and no $TKAN_CONFIG leaking into tests."""
    monkeypatch.delenv("TKAN_CONFIG", raising=False)
    monkeypatch.setattr(config_module, "CONFIG_PATH", tmp_path / "absent" / "config.yaml")


def test_defaults_when_no_file():
    cfg = Config.load()
    assert cfg.drag_delay_ms == 150
    assert cfg.drag_delay == pytest.approx(0.15)
    assert cfg.drag_distance_sq == 4
    assert cfg.show_archive is False
    assert "~" not in cfg.log_file


def test_explicit_file_overrides(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("drag_delay_ms: 300\nshow_details: false\nlog_file: ~/tkan-test.log\n")
    cfg = Config.load(str(path))
    assert cfg.drag_delay == pytest.approx(0.3)
    assert cfg.show_details is False
    assert cfg.log_file.endswith("tkan-test.log")
    assert not cfg.log_file.startswith("~")


def test_unknown_keys_ignored(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("scan_depth: 5\ntheme: solarized\n")
    cfg = Config.load(str(path))
    assert cfg.scan_depth == 5
    assert not hasattr(cfg, "theme")


def test_env_var_names_config(tmp_path, monkeypatch):
    path = tmp_path / "env.yaml"
    path.write_text("request_timeout: 3\n")
    monkeypatch.setenv("TKAN_CONFIG", str(path))
    assert Config.load().request_timeout == 3


def test_explicit_missing_file_is_an_error(tmp_path):
    with pytest.raises(ConfigError):
        Config.load(str(tmp_path / "nope.yaml"))


def test_explicit_bad_yaml_is_an_error(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("drag_delay_ms: [1, 2\n")
    with pytest.raises(ConfigError):
        Config.load(str(path))


def test_explicit_non_mapping_is_an_error(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("- just\n- a list\n")
    with pytest.raises(ConfigError):
        Config.load(str(path))


def test_broken_default_file_falls_back(tmp_path, monkeypatch):
    default = tmp_path / "config.yaml"
    default.write_text("- not a mapping\n")
    monkeypatch.setattr(config_module, "CONFIG_PATH", default)
    cfg = Config.load()
    assert cfg.drag_delay_ms == 150


def test_github_token_lookup(monkeypatch):
    cfg = Config()
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.delenv("GH_TOKEN", raising=False)
    assert cfg.github_token() is None

    monkeypatch.setenv("GH_TOKEN", "gh-cli-token")
    assert cfg.github_token() == "gh-cli-token"

    monkeypatch.setenv("GITHUB_TOKEN", "primary")
    assert cfg.github_token() == "primary"

    cfg.github_token_env = "MY_TOKEN"
    monkeypatch.setenv("MY_TOKEN", "custom")
    assert cfg.github_token() == "custom"


# ── value types ──────────────────────────────────────────────────────────────


def test_explicit_wrong_type_is_an_error(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("drag_delay_ms: fast\nscan_depth: deep\n")
    with pytest.raises(ConfigError, match="drag_delay_ms"):
        Config.load(str(path))


@pytest.mark.parametrize("line", [
    "show_details: 'no'",
    "scan_depth: 2.5",
    "drag_distance_sq: -1",
    "drag_delay_ms: true",
    "board_file: 42",
])
def test_explicit_bad_values_are_errors(tmp_path, line):
    path = tmp_path / "config.yaml"
    path.write_text(line + "\n")
    with pytest.raises(ConfigError):
        Config.load(str(path))


def test_numbers_are_coerced(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("request_timeout: 3\nscan_depth: 4.0\n")
    cfg = Config.load(str(path))
    assert cfg.request_timeout == 3.0 and isinstance(cfg.request_timeout, float)
    assert cfg.scan_depth == 4 and isinstance(cfg.scan_depth, int)


def test_default_file_wrong_type_falls_back_per_key(tmp_path, monkeypatch, caplog):
    default = tmp_path / "config.yaml"
    default.write_text("drag_delay_ms: fast\nscan_depth: 5\n")
    monkeypatch.setattr(config_module, "CONFIG_PATH", default)
    cfg = Config.load()
    assert cfg.drag_delay_ms == 150
    assert cfg.drag_delay == pytest.approx(0.15)
    assert cfg.scan_depth == 5
    assert "drag_delay_ms" in caplog.text
