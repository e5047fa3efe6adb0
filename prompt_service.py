import json
import logging
import re
import time

from google import genai
from google.genai import types

from config import THINKING_MODELS
from prompts import (
    FENCED_JSON_SUFFIX,
    FIELD_DESCRIPTIONS,
    JSON_PROMPT,
    MAX_PROMPT_CHARS,
    MODIFY_COLOR_PROMPT,
    MODIFY_STYLE_PROMPT,
    PROMPT_FIELDS,
    TITLE_PROMPT,
    fenced_field_rules,
)

logger = logging.getLogger(__name__)

GENERATE_FAILED = "Failed to generate a valid JSON prompt."
MODIFY_FAILED = "Failed to modify the JSON prompt."

MODIFICATION_PROMPTS = {
    "color": MODIFY_COLOR_PROMPT,
    "style": MODIFY_STYLE_PROMPT,
}

FENCED_JSON_RE = re.compile(r"```json\s*([\s\S]*?)\s*```")


class ValidationError(ValueError):
    """Bad user input, reported before anything is sent."""


class PromptDecodeError(Exception):
    """The model answered but no JSON prompt could be read from it."""


PROMPT_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        name: types.Schema(type=types.Type.STRING, description=FIELD_DESCRIPTIONS[name])
        for name in PROMPT_FIELDS
    },
    required=list(PROMPT_FIELDS),
)


def extract_fenced_json(text):
    """Pull a JSON value out of free text.

    The first ```json fenced block wins; without one the whole text is parsed.
    Returns None when nothing parses.
    """
    if not text:
        return None
    match = FENCED_JSON_RE.search(text)
    candidate = match.group(1) if match else text.strip()
    try:
        return json.loads(candidate)
    except ValueError as e:
        logger.warning("Could not parse JSON from response: %s", e)
        return None


class SchemaExtraction:
    """Declares the seven-field schema and reads the body as JSON."""

    name = "schema"

    def config_kwargs(self):
        return {
            "response_mime_type": "application/json",
            "response_schema": PROMPT_SCHEMA,
        }

    def decorate(self, prompt):
        return prompt

    def extract(self, text):
        try:
            return json.loads(text)
        except (TypeError, ValueError) as e:
            logger.error("Failed to parse JSON from response: %s", e)
            return None


class FencedTextExtraction:
    """Asks for a ```json block in plain text and searches for it."""

    name = "fenced"

    def config_kwargs(self):
        return {}

    def decorate(self, prompt):
        return prompt + FENCED_JSON_SUFFIX.format(fields=fenced_field_rules())

    def extract(self, text):
        return extract_fenced_json(text)


EXTRACTION_STRATEGIES = {
    "schema": SchemaExtraction,
    "fenced": FencedTextExtraction,
}


def build_config(model, extraction=None):
    kwargs = {}
    if model in THINKING_MODELS:
        kwargs["thinking_config"] = types.ThinkingConfig(thinking_level="low")
    if extraction is not None:
        kwargs.update(extraction.config_kwargs())
    if not kwargs:
        return None
    return types.GenerateContentConfig(**kwargs)


def create_client(settings):
    return genai.Client(
        api_key=settings.api_key,
        http_options=types.HttpOptions(timeout=settings.timeout_ms),
    )


class PromptService:
    """Title, JSON prompt and modification calls against one Gemini model."""

    def __init__(self, client, model, extraction="schema"):
        if isinstance(extraction, str):
            try:
                extraction = EXTRACTION_STRATEGIES[extraction]()
            except KeyError:
                raise ValueError(f"Unknown extraction strategy: {extraction}") from None
        self.client = client
        self.model = model
        self.extraction = extraction

    @classmethod
    def from_settings(cls, settings):
        return cls(create_client(settings), settings.model, settings.extraction)

    def _generate(self, operation, prompt, config):
        start = time.time()
        response = self.client.models.generate_content(
            model=self.model,
            contents=prompt,
            config=config,
        )
        elapsed = round(time.time() - start, 1)
        logger.info("%s via %s finished in %ss", operation, self.model, elapsed)
        return response.text or ""

    def _generate_json(self, operation, prompt, failure_message):
        text = self._generate(
            operation,
            self.extraction.decorate(prompt),
            build_config(self.model, self.extraction),
        )
        result = self.extraction.extract(text)
        if not isinstance(result, dict):
            logger.error("%s returned no JSON object (%s strategy)", operation, self.extraction.name)
            raise PromptDecodeError(failure_message)

        length = len(json.dumps(result, indent=2, ensure_ascii=False))
        if length > MAX_PROMPT_CHARS:
            logger.warning("%s produced %d characters, over the %d limit", operation, length, MAX_PROMPT_CHARS)
        return result

    def generate_title(self, theme):
        if not theme or not theme.strip():
            raise ValidationError("Please enter a main element.")
        text = self._generate(
            "title", TITLE_PROMPT.format(theme=theme), build_config(self.model)
        )
        return text.strip()

    def generate_prompt(self, title):
        prompt = JSON_PROMPT.format(limit=MAX_PROMPT_CHARS, title=title)
        return self._generate_json("prompt", prompt, GENERATE_FAILED)

    def modify_prompt(self, current, kind):
        template = MODIFICATION_PROMPTS.get(kind)
        if template is None:
            raise ValidationError(f"Unknown modification: {kind}")
        prompt = template.format(
            limit=MAX_PROMPT_CHARS,
            current=json.dumps(current, separators=(",", ":"), ensure_ascii=False),
        )
        return self._generate_json(f"modify-{kind}", prompt, MODIFY_FAILED)
