"""Tests for settings resolution."""

import pytest

from repokeeper import config
from repokeeper.config import Settings, load_settings
from repokeeper.exceptions import ConfigError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for var in ("GITHUB_TOKEN", "GH_TOKEN", "REPOKEEPER_API_URL", "REPOKEEPER_TIMEOUT"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(config, "DEFAULT_CONFIG_PATH", tmp_path / "missing.yaml")


def _write(tmp_path, text):
    path = tmp_path / "config.yaml"
    path.write_text(text)
    return path


def test_defaults():
    settings = load_settings()
    assert settings == Settings()
    assert settings.api_url == "https://api.github.com"
    assert settings.license_key == "gpl-3.0"
    assert settings.config_path is None


def test_token_from_env(monkeypatch):
    monkeypatch.setenv("GH_TOKEN", "gh-token")
    assert load_settings().token == "gh-token"

    monkeypatch.setenv("GITHUB_TOKEN", "github-token")
    assert load_settings().token == "github-token"


def test_config_file(tmp_path):
    path = _write(
        tmp_path,
        "api_url: https://github.example.com/api/v3/\n"
        "timeout: 12\n"
        "license:\n"
        "  key: mit\n"
        "  message: Add MIT license\n",
    )
    settings = load_settings(path)
    assert settings.api_url == "https://github.example.com/api/v3"
    assert settings.timeout == 12.0
    assert settings.license_key == "mit"
    assert settings.license_message == "Add MIT license"
    assert settings.config_path == path


def test_env_overrides_file_and_arguments_override_env(tmp_path, monkeypatch):
    path = _write(tmp_path, "token: from-file\ntimeout: 5\n")
    monkeypatch.setenv("GITHUB_TOKEN", "from-env")
    monkeypatch.setenv("REPOKEEPER_TIMEOUT", "7")

    settings = load_settings(path)
    assert settings.token == "from-env"
    assert settings.timeout == 7.0

    assert load_settings(path, token="from-arg", timeout=None).token == "from-arg"


def test_empty_config_file(tmp_path):
    assert load_settings(_write(tmp_path, "")) == Settings()


def test_unknown_setting_is_rejected(tmp_path):
    with pytest.raises(ConfigError, match="unknown setting"):
        load_settings(_write(tmp_path, "tokn: abc\n"))


def test_invalid_yaml(tmp_path):
    with pytest.raises(ConfigError, match="Invalid YAML"):
        load_settings(_write(tmp_path, "token: [unclosed\n"))


def test_non_mapping_config(tmp_path):
    with pytest.raises(ConfigError):
        load_settings(_write(tmp_path, "- a\n- b\n"))


def test_bad_timeout(monkeypatch):
    monkeypatch.setenv("REPOKEEPER_TIMEOUT", "soon")
    with pytest.raises(ConfigError, match="timeout"):
        load_settings()

    monkeypatch.setenv("REPOKEEPER_TIMEOUT", "0")
    with pytest.raises(ConfigError, match="positive"):
        load_settings()


def test_missing_explicit_config_file(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_settings(tmp_path / "nope.yaml")


def test_require_token():
    with pytest.raises(ConfigError):
        Settings().require_token()
    assert Settings(token="abc").require_token() == "abc"
