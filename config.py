import os
import secrets
from dataclasses import dataclass

AVAILABLE_MODELS = [
    "gemini-3.1-pro-preview",
    "gemini-3-pro-preview",
    "gemini-3-flash-preview",
    "gemini-2.5-pro",
    "gemini-2.5-flash",
    "gemini-2.0-flash",
]

THINKING_MODELS = {
    "gemini-3.1-pro-preview",
    "gemini-3-pro-preview",
    "gemini-3-flash-preview",
}

DEFAULT_MODEL = "gemini-2.5-flash"
EXTRACTIONS = ("schema", "fenced")

MISSING_KEY_MESSAGE = (
    "GEMINI_API_KEY environment variable not set. "
    "Add it to your environment or a .env file and restart the server."
)


class ConfigError(Exception):
    """Raised at startup when the environment cannot run the app."""


@dataclass(frozen=True)
class Settings:
    api_key: str
    model: str = DEFAULT_MODEL
    extraction: str = "schema"
    timeout_ms: int = 300_000
    secret_key: str = ""


def load_settings(environ=None):
    env = os.environ if environ is None else environ

    api_key = (env.get("GEMINI_API_KEY") or "").strip()
    if not api_key:
        raise ConfigError(MISSING_KEY_MESSAGE)

    model = env.get("GEMINI_MODEL", DEFAULT_MODEL).strip()
    if model not in AVAILABLE_MODELS:
        raise ConfigError(f"Unknown model: {model}")

    extraction = env.get("PROMPT_EXTRACTION", "schema").strip().lower()
    if extraction not in EXTRACTIONS:
        raise ConfigError(
            f"Unknown PROMPT_EXTRACTION {extraction!r}, expected one of {', '.join(EXTRACTIONS)}"
        )

    raw_timeout = env.get("GEMINI_TIMEOUT_MS", "300000")
    try:
        timeout_ms = int(raw_timeout)
    except ValueError:
        raise ConfigError(f"GEMINI_TIMEOUT_MS must be an integer, got {raw_timeout!r}") from None

    return Settings(
        api_key=api_key,
        model=model,
        extraction=extraction,
        timeout_ms=timeout_ms,
        secret_key=env.get("FLASK_SECRET_KEY") or secrets.token_hex(32),
    )
