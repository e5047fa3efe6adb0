from types import SimpleNamespace

import pytest

from prompt_service import PromptService

SAMPLE_PROMPT = {
    "concept": "Christmas trees with reindeer and snowy mountains",
    "composition": "Only a few elements are present, airy spacing",
    "color": "soft, muted, pastel winter tones (muted red, forest green, cream)",
    "background": "bright, harmonious, single vivid tone (light icy blue).",
    "mood": "cozy, festive, calm",
    "style": "Scandinavian, flat shapes, folk motifs, simple forms, limited palette",
    "settings": "--ar 1:1 --v 6 --style raw --q 2 --repeat 2",
}


class FakeModels:
    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = []

    def generate_content(self, model, contents, config=None):
        self.calls.append(SimpleNamespace(model=model, contents=contents, config=config))
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            reply = reply(contents)
        return SimpleNamespace(text=reply)


class FakeClient:
    def __init__(self, *replies):
        self.models = FakeModels(replies)

    @property
    def calls(self):
        return self.models.calls


@pytest.fixture
def sample_prompt():
    return dict(SAMPLE_PROMPT)


@pytest.fixture
def make_service():
    def factory(*replies, extraction="schema", model="gemini-2.5-flash"):
        client = FakeClient(*replies)
        return PromptService(client, model, extraction), client

    return factory
