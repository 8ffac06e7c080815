"""
Tests for settings loading and validation.
"""
import pytest
from pydantic import ValidationError
from repo_context import config
from repo_context.config import Settings, get_settings, reload_settings
from repo_context.errors import ConfigurationError


def test_defaults(settings):
    assert settings.SELECTION_CACHE_TTL_S == 86400
    assert settings.CONTENT_CACHE_TTL_S == 3600
    assert settings.METADATA_CACHE_TTL_S == 900
    assert settings.MAX_BYPASS_FILES == 10
    assert settings.MAX_SELECTED_FILES == 30
    assert settings.context_budget == 110000


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("MODEL_CONTEXT_WINDOW", "32000")
    monkeypatch.setenv("RESERVED_TOKENS", "4000")

    settings = Settings(_env_file=None)
    assert settings.context_budget == 28000


@pytest.mark.parametrize("field,value", [
    ("MODEL_CONTEXT_WINDOW", 0),
    ("SELECTION_CACHE_TTL_S", -1),
    ("MIN_SCORE", -5),
])
def test_invalid_values(field, value):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **{field: value})


def test_reserved_must_fit_window():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, MODEL_CONTEXT_WINDOW=1000, RESERVED_TOKENS=1000)


def test_invalid_environment_raises_configuration_error(monkeypatch):
    monkeypatch.setenv("MAX_BYPASS_FILES", "0")
    monkeypatch.setattr(config, "_settings", None)

    with pytest.raises(ConfigurationError):
        get_settings()


def test_get_settings_is_singleton(monkeypatch):
    monkeypatch.setattr(config, "_settings", None)
    monkeypatch.setenv("MIN_SCORE", "12")

    first = get_settings()
    assert get_settings() is first
    assert first.MIN_SCORE == 12

    monkeypatch.setenv("MIN_SCORE", "15")
    assert reload_settings().MIN_SCORE == 15
