"""Tests for environment-driven settings."""

import pytest

from gearguide.config import BASE_DIR, load_settings
from gearguide.errors import ConfigError

ENV_VARS = [
    "GEMINI_API_KEY",
    "GEMINI_MODEL",
    "LLM_TEMPERATURE",
    "LLM_MAX_OUTPUT_TOKENS",
    "LLM_TIMEOUT_SEC",
    "GROUNDING_PROMPT_VERSION",
    "ORDERS_PATH",
    "PRODUCTS_PATH",
    "PROMO_TIMEZONE",
    "PROMO_START_HOUR",
    "PROMO_END_HOUR",
    "PROMO_CODE_PREFIX",
    "TRACKING_URL_TEMPLATE",
    "MAX_SESSIONS",
    "LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = load_settings()
    assert settings.gemini_api_key == ""
    assert settings.gemini_model == "gemini-2.5-flash"
    assert settings.temperature == 0.6
    assert settings.promo_timezone == "America/Los_Angeles"
    assert (settings.promo_start_hour, settings.promo_end_hour) == (8, 10)
    assert settings.promo_code_prefix == "EARLY10-"
    assert settings.orders_path == (BASE_DIR / "data" / "orders.json").resolve()
    assert settings.prompts_dir == (BASE_DIR / "prompts").resolve()
    assert "{tracking_number}" in settings.tracking_url_template
    assert settings.log_level == "INFO"


def test_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("LLM_TEMPERATURE", "0.2")
    monkeypatch.setenv("PROMO_TIMEZONE", "America/New_York")
    monkeypatch.setenv("PROMO_START_HOUR", "6")
    monkeypatch.setenv("PROMO_END_HOUR", "9")
    monkeypatch.setenv("ORDERS_PATH", str(tmp_path / "orders.json"))
    monkeypatch.setenv("LOG_LEVEL", "debug")
    settings = load_settings()
    assert settings.temperature == 0.2
    assert settings.promo_timezone == "America/New_York"
    assert (settings.promo_start_hour, settings.promo_end_hour) == (6, 9)
    assert settings.orders_path == tmp_path / "orders.json"
    assert settings.log_level == "DEBUG"


def test_non_numeric_value_raises(monkeypatch):
    monkeypatch.setenv("MAX_SESSIONS", "lots")
    with pytest.raises(ValueError):
        load_settings()


@pytest.mark.parametrize(
    "name, value",
    [
        ("PROMO_START_HOUR", "11"),
        ("PROMO_END_HOUR", "25"),
        ("PROMO_TIMEZONE", "Mars/Olympus_Mons"),
        ("LLM_TEMPERATURE", "3.5"),
        ("TRACKING_URL_TEMPLATE", "https://example.com/track"),
    ],
)
def test_invalid_configuration(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ConfigError):
        load_settings()
