import pytest

from config import DEFAULT_MODEL, ConfigError, load_settings


def test_defaults():
    settings = load_settings({"GEMINI_API_KEY": " key "})
    assert settings.api_key == "key"
    assert settings.model == DEFAULT_MODEL
    assert settings.extraction == "schema"
    assert settings.timeout_ms == 300_000
    assert settings.secret_key


@pytest.mark.parametrize("env", [{}, {"GEMINI_API_KEY": ""}, {"GEMINI_API_KEY": "   "}])
def test_missing_key(env):
    with pytest.raises(ConfigError, match="GEMINI_API_KEY"):
        load_settings(env)


def test_overrides():
    settings = load_settings({
        "GEMINI_API_KEY": "k",
        "GEMINI_MODEL": "gemini-2.5-pro",
        "PROMPT_EXTRACTION": "Fenced",
        "GEMINI_TIMEOUT_MS": "60000",
        "FLASK_SECRET_KEY": "s3cret",
    })
    assert settings.model == "gemini-2.5-pro"
    assert settings.extraction == "fenced"
    assert settings.timeout_ms == 60000
    assert settings.secret_key == "s3cret"


@pytest.mark.parametrize("name,value", [
    ("GEMINI_MODEL", "gpt-4"),
    ("PROMPT_EXTRACTION", "regex"),
    ("GEMINI_TIMEOUT_MS", "soon"),
])
def test_bad_values(name, value):
    with pytest.raises(ConfigError):
        load_settings({"GEMINI_API_KEY": "k", name: value})


def test_bad_timeout_does_not_chain():
    with pytest.raises(ConfigError) as info:
        load_settings({"GEMINI_API_KEY": "k", "GEMINI_TIMEOUT_MS": "soon"})
    assert info.value.__cause__ is None
    assert info.value.__suppress_context__
