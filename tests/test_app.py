import json

import pytest

from app import create_app
from config import Settings


@pytest.fixture
def make_client(make_service):
    def factory(*replies, extraction="schema"):
        service, fake = make_service(*replies, extraction=extraction)
        app = create_app(Settings(api_key="test-key", secret_key="test"), service=service)
        app.config["TESTING"] = True
        return app.test_client(), fake

    return factory


def test_index_serves_page(make_client):
    client, _ = make_client()
    res = client.get("/")
    assert res.status_code == 200
    assert b"Microstock Title &amp; Prompt Generator" in res.data


def test_initial_state(make_client):
    client, _ = make_client()
    state = client.get("/api/state").get_json()["state"]
    assert state["phase"] == "idle"
    assert state["title"] == ""


def test_generate_then_modify(make_client, sample_prompt):
    changed = dict(sample_prompt, style="Kawaii, rounded", mood="playful")
    client, fake = make_client(" Title ", json.dumps(sample_prompt), json.dumps(changed))

    res = client.post("/api/generate", json={"theme": "Cat"})
    assert res.status_code == 200
    body = res.get_json()
    assert body["state"]["title"] == "Title"
    assert body["state"]["prompt"] == sample_prompt
    assert body["state"]["prompt_text"] == json.dumps(sample_prompt, indent=2)
    assert "elapsed" in body

    res = client.post("/api/modify", json={"kind": "style"})
    assert res.status_code == 200
    assert res.get_json()["state"]["prompt"] == changed
    assert len(fake.calls) == 3


def test_blank_theme_is_400(make_client):
    client, fake = make_client()
    res = client.post("/api/generate", json={"theme": "  "})
    assert res.status_code == 400
    assert res.get_json()["error"] == "Please enter a main element."
    assert fake.calls == []


def test_decode_error_is_502_with_generic_message(make_client):
    client, _ = make_client("Title", "{broken")
    res = client.post("/api/generate", json={"theme": "Cat"})
    assert res.status_code == 502
    body = res.get_json()
    assert body["error"] == "Failed to generate a valid JSON prompt."
    assert body["state"]["phase"] == "error"


def test_service_error_is_502_verbatim(make_client):
    client, _ = make_client(RuntimeError("API key not valid"))
    res = client.post("/api/generate", json={"theme": "Cat"})
    assert res.status_code == 502
    assert res.get_json()["error"] == "API key not valid"


def test_modify_before_generate_is_noop(make_client):
    client, fake = make_client()
    res = client.post("/api/modify", json={"kind": "color"})
    assert res.status_code == 200
    assert res.get_json()["state"]["prompt"] is None
    assert fake.calls == []


def test_unknown_modification_is_400(make_client, sample_prompt):
    client, _ = make_client("Title", json.dumps(sample_prompt))
    client.post("/api/generate", json={"theme": "Cat"})
    res = client.post("/api/modify", json={"kind": "texture"})
    assert res.status_code == 400


def test_checker_shows_title_url(make_client, sample_prompt):
    client, _ = make_client("Cat Pattern", json.dumps(sample_prompt))
    client.post("/api/generate", json={"theme": "Cat"})

    state = client.post("/api/checker").get_json()["state"]

    assert state["checker_visible"] is True
    assert state["checker_url"] == "https://www.mykeyworder.com/keywords?language=en&tags=Cat%20Pattern"


def test_sessions_are_separate(make_client, sample_prompt):
    client, _ = make_client("Title", json.dumps(sample_prompt))
    client.post("/api/generate", json={"theme": "Cat"})

    other = client.application.test_client()
    assert other.get("/api/state").get_json()["state"]["title"] == ""


def test_missing_key_blocks_every_route(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    app = create_app()
    client = app.test_client()

    page = client.get("/")
    assert page.status_code == 503
    assert b"Configuration Error" in page.data
    assert b"GEMINI_API_KEY" in page.data

    res = client.post("/api/generate", json={"theme": "Cat"})
    assert res.status_code == 503
    assert "GEMINI_API_KEY" in res.get_json()["error"]


def test_state_without_session_stores_nothing(make_client):
    client, _ = make_client()
    app = client.application

    for _ in range(50):
        app.test_client().get("/api/state")

    assert len(app.extensions["controllers"]) == 0


def test_session_store_is_bounded(make_client):
    client, _ = make_client()
    app = client.application
    app.config["MAX_SESSIONS"] = 3

    browsers = [app.test_client() for _ in range(5)]
    for browser in browsers:
        browser.post("/api/generate", json={"theme": ""})

    controllers = app.extensions["controllers"]
    assert len(controllers) == 3

    # the newest session is still known
    res = browsers[-1].post("/api/generate", json={"theme": ""})
    assert res.status_code == 400
    assert len(controllers) == 3


def test_config_error_message_is_escaped(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "k")
    monkeypatch.setenv("GEMINI_MODEL", "<b>'x'</b>")
    page = create_app().test_client().get("/")

    assert page.status_code == 503
    assert b"&lt;b&gt;&#39;x&#39;&lt;/b&gt;" in page.data
    assert b"<b>'x'</b>" not in page.data
