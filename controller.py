import enum
import json
import logging
import threading
from urllib.parse import quote

from prompts import MAX_PROMPT_CHARS
from prompt_service import ValidationError

logger = logging.getLogger(__name__)

KEYWORDER_URL = "https://www.mykeyworder.com/"
KEYWORDER_SEARCH_URL = KEYWORDER_URL + "keywords?language=en&tags="

GENERATE_FALLBACK = "Failed to generate content. Please try again."
MODIFY_FALLBACK = "Failed to modify the prompt. Please try again."


class BusyError(Exception):
    """Another action is still waiting on the model."""


class Phase(enum.Enum):
    IDLE = "idle"
    GENERATING_TITLE = "generating-title"
    GENERATING_JSON = "generating-json"
    MODIFYING = "modifying"
    ERROR = "error"
    READY = "ready"


BUSY_PHASES = {Phase.GENERATING_TITLE, Phase.GENERATING_JSON, Phase.MODIFYING}


def keyword_checker_url(title=None):
    # encodeURIComponent leaves !~*'() unescaped
    if not title:
        return KEYWORDER_URL
    return KEYWORDER_SEARCH_URL + quote(title, safe="!~*'()")


def format_prompt(prompt):
    if prompt is None:
        return ""
    return json.dumps(prompt, indent=2, ensure_ascii=False)


class InteractionController:
    """One user's title/prompt state and the actions that change it."""

    def __init__(self, service):
        self.service = service
        self.phase = Phase.IDLE
        self.title = ""
        self.prompt = None
        self.error = ""
        self.checker_visible = False
        self.checker_url = KEYWORDER_URL
        self._lock = threading.Lock()

    @property
    def loading(self):
        return self.phase in BUSY_PHASES

    @property
    def prompt_text(self):
        return format_prompt(self.prompt)

    @property
    def char_count(self):
        return len(self.prompt_text)

    @property
    def over_limit(self):
        return self.char_count > MAX_PROMPT_CHARS

    def _begin(self, phase):
        with self._lock:
            if self.loading:
                raise BusyError("A request is already in progress.")
            self.phase = phase
            self.error = ""

    def _fail(self, err, fallback):
        self.error = str(err) or fallback
        self.phase = Phase.ERROR

    def generate(self, theme):
        if not theme or not theme.strip():
            with self._lock:
                if self.loading:
                    raise BusyError("A request is already in progress.")
                self.error = "Please enter a main element."
                self.phase = Phase.ERROR
            raise ValidationError(self.error)

        self._begin(Phase.GENERATING_TITLE)
        self.title = ""
        self.prompt = None
        self.checker_visible = False
        self.checker_url = KEYWORDER_URL

        try:
            title = self.service.generate_title(theme)
            self.title = title
            self.phase = Phase.GENERATING_JSON
            self.prompt = self.service.generate_prompt(title)
        except Exception as e:
            logger.exception("Generation failed for theme %r", theme)
            self.title = ""
            self.prompt = None
            self._fail(e, GENERATE_FALLBACK)
            raise

        self.phase = Phase.READY

    def modify(self, kind):
        if self.prompt is None:
            return

        self._begin(Phase.MODIFYING)
        try:
            self.prompt = self.service.modify_prompt(self.prompt, kind)
        except Exception as e:
            logger.exception("Modification %r failed", kind)
            self._fail(e, MODIFY_FALLBACK)
            raise

        self.phase = Phase.READY

    def show_keyword_checker(self):
        if not self.title:
            return
        self.checker_url = keyword_checker_url(self.title)
        self.checker_visible = True

    def snapshot(self):
        return {
            "phase": self.phase.value,
            "loading": self.loading,
            "title": self.title,
            "prompt": self.prompt,
            "prompt_text": self.prompt_text,
            "char_count": self.char_count,
            "char_limit": MAX_PROMPT_CHARS,
            "over_limit": self.over_limit,
            "error": self.error,
            "checker_visible": self.checker_visible,
            "checker_url": self.checker_url,
        }
