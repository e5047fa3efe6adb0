import logging
import threading
import time
import uuid
from collections import OrderedDict

from dotenv import load_dotenv
from flask import Flask, jsonify, request, session
from markupsafe import escape

from config import ConfigError, load_settings
from controller import BusyError, InteractionController
from prompt_service import PromptDecodeError, PromptService, ValidationError

load_dotenv()

logger = logging.getLogger(__name__)

MAX_SESSIONS = 1000


def create_app(settings=None, service=None):
    app = Flask(__name__)

    config_error = None
    if settings is None:
        try:
            settings = load_settings()
        except ConfigError as e:
            logger.error("Configuration error: %s", e)
            config_error = str(e)

    if config_error is not None:
        app.secret_key = "unconfigured"

        @app.before_request
        def block_unconfigured():
            if request.path.startswith("/api/"):
                return jsonify({"error": config_error}), 503
            return CONFIG_ERROR_PAGE.replace("__MESSAGE__", str(escape(config_error))), 503

        return app

    app.secret_key = settings.secret_key
    if service is None:
        service = PromptService.from_settings(settings)
    app.extensions["prompt_service"] = service
    app.extensions["controllers"] = OrderedDict()
    app.config.setdefault("MAX_SESSIONS", MAX_SESSIONS)
    controllers_lock = threading.Lock()
    logger.info("Using %s with %s extraction", settings.model, settings.extraction)

    def current_controller(create=True):
        controllers = app.extensions["controllers"]
        with controllers_lock:
            sid = session.get("sid")
            if sid in controllers:
                controllers.move_to_end(sid)
                return controllers[sid]
            ctrl = InteractionController(app.extensions["prompt_service"])
            if not create:
                return ctrl
            sid = uuid.uuid4().hex
            session["sid"] = sid
            controllers[sid] = ctrl
            # least recently used sessions go first
            while len(controllers) > app.config["MAX_SESSIONS"]:
                controllers.popitem(last=False)
            return ctrl

    def run_action(action, *args):
        ctrl = current_controller()
        start = time.time()
        try:
            action(ctrl, *args)
        except ValidationError as e:
            return jsonify({"error": str(e), "state": ctrl.snapshot()}), 400
        except BusyError as e:
            return jsonify({"error": str(e), "state": ctrl.snapshot()}), 409
        except PromptDecodeError as e:
            return jsonify({"error": str(e), "state": ctrl.snapshot()}), 502
        except Exception:
            return jsonify({"error": ctrl.error, "state": ctrl.snapshot()}), 502
        elapsed = round(time.time() - start, 1)
        return jsonify({"state": ctrl.snapshot(), "elapsed": elapsed})

    @app.route("/")
    def index():
        return HTML_PAGE

    @app.route("/api/state")
    def state():
        return jsonify({"state": current_controller(create=False).snapshot()})

    @app.route("/api/generate", methods=["POST"])
    def generate():
        data = request.get_json(silent=True) or {}
        return run_action(InteractionController.generate, data.get("theme", ""))

    @app.route("/api/modify", methods=["POST"])
    def modify():
        data = request.get_json(silent=True) or {}
        return run_action(InteractionController.modify, data.get("kind", ""))

    @app.route("/api/checker", methods=["POST"])
    def checker():
        return run_action(InteractionController.show_keyword_checker)

    return app


CONFIG_ERROR_PAGE = r"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>Configuration Error</title>
<style>
  *, *::before, *::after { box-sizing: border-box; margin: 0; padding: 0; }

  body {
    font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
    background: #0f0f0f;
    color: #e0e0e0;
    min-height: 100vh;
    display: flex;
    align-items: center;
    justify-content: center;
    padding: 24px;
  }

  .card {
    max-width: 640px;
    width: 100%;
    background: #1a1111;
    border: 1px solid #ef4444;
    border-radius: 12px;
    padding: 32px;
    text-align: center;
  }

  h1 { color: #fca5a5; font-size: 1.6rem; margin-bottom: 16px; }
  p { color: #bbb; line-height: 1.6; margin-bottom: 8px; }

  .env {
    margin-top: 20px;
    background: #0f0f0f;
    border-radius: 8px;
    padding: 14px;
    text-align: left;
    font-family: 'SF Mono', 'Fira Code', 'Cascadia Code', monospace;
    font-size: 0.8rem;
    color: #e0e0e0;
  }
  .env span { color: #a78bfa; }
</style>
</head>
<body>
  <div class="card">
    <h1>Configuration Error</h1>
    <p>__MESSAGE__</p>
    <p>Set the variable in the server environment (or a <code>.env</code> file next to <code>app.py</code>) and restart.</p>
    <div class="env">
      <div><span>Variable Name:</span> GEMINI_API_KEY</div>
      <div><span>Variable Value:</span> Your-Secret-Gemini-API-Key</div>
    </div>
  </div>
</body>
</html>
"""

HTML_PAGE = r"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>Microstock Title &amp; Prompt Generator</title>
<style>
  *, *::before, *::after { box-sizing: border-box; margin: 0; padding: 0; }

  body {
    font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
    background: #0f0f0f;
    color: #e0e0e0;
    min-height: 100vh;
  }

  header {
    text-align: center;
    padding: 32px 24px 8px;
  }
  header h1 { font-size: 1.8rem; color: #fff; }
  header p { color: #888; font-size: 0.9rem; margin-top: 6px; }

  .split-layout {
    display: flex;
    gap: 24px;
    padding: 24px;
    max-width: 1400px;
    margin: 0 auto;
  }

  .panel {
    flex: 1;
    display: flex;
    flex-direction: column;
    gap: 16px;
  }
  .panel.hidden { display: none; }

  .card {
    background: #1a1a1a;
    border: 1px solid #2a2a2a;
    border-radius: 10px;
    padding: 16px;
    position: relative;
  }
  .card.hidden { display: none; }
  .card h2 {
    font-size: 0.95rem;
    font-weight: 600;
    color: #a78bfa;
    margin-bottom: 12px;
  }

  .controls {
    display: flex;
    gap: 10px;
    align-items: center;
  }

  input[type=text] {
    flex: 1;
    background: #111;
    color: #e0e0e0;
    border: 1px solid #2a2a2a;
    border-radius: 8px;
    padding: 10px 14px;
    font-size: 0.9rem;
    font-family: inherit;
    outline: none;
    transition: border-color 0.2s;
  }
  input[type=text]:focus { border-color: #8b5cf6; }
  input[type=text]::placeholder { color: #555; }

  button {
    background: #8b5cf6;
    color: #fff;
    border: none;
    border-radius: 8px;
    padding: 8px 20px;
    font-size: 0.82rem;
    font-weight: 500;
    cursor: pointer;
    transition: background 0.2s, opacity 0.2s;
  }
  button:hover { background: #7c3aed; }
  button:disabled { opacity: 0.5; cursor: not-allowed; }

  button.secondary {
    background: #232323;
    color: #aaa;
    border: 1px solid #333;
  }
  button.secondary:hover { background: #2e2e2e; color: #e0e0e0; }

  .title-text {
    background: #111;
    border-radius: 8px;
    padding: 12px;
    line-height: 1.6;
    margin-bottom: 12px;
    word-break: break-word;
  }

  .json-header {
    display: flex;
    justify-content: space-between;
    align-items: center;
    margin-bottom: 12px;
  }
  .json-header h2 { margin-bottom: 0; }

  .char-count {
    font-family: 'SF Mono', 'Fira Code', 'Cascadia Code', monospace;
    font-size: 0.78rem;
    color: #888;
  }
  .char-count.over { color: #ef4444; }

  .json-code {
    margin: 0;
    padding: 14px;
    background: #111;
    color: #a78bfa;
    font-family: 'SF Mono', 'Fira Code', 'Cascadia Code', monospace;
    font-size: 0.75rem;
    line-height: 1.5;
    overflow-x: auto;
    border-radius: 8px;
    white-space: pre;
  }

  .copy-output-btn {
    position: absolute;
    top: 56px;
    right: 26px;
    background: #232323;
    color: #aaa;
    font-size: 0.72rem;
    padding: 4px 12px;
    border-radius: 6px;
    border: 1px solid #333;
  }

  .actions {
    display: flex;
    gap: 10px;
    margin-top: 12px;
  }
  .actions button { flex: 1; }

  .error-text { color: #fca5a5; font-size: 0.85rem; margin-top: 10px; }
  .error-text:empty { display: none; }

  .status {
    font-size: 0.78rem;
    color: #888;
    min-height: 1.2em;
  }
  .status .timer { color: #8b5cf6; font-variant-numeric: tabular-nums; }

  .loading {
    display: flex;
    align-items: center;
    gap: 10px;
    color: #888;
  }
  .loading.hidden { display: none; }
  .spinner {
    width: 16px; height: 16px;
    border: 2px solid #333;
    border-top-color: #8b5cf6;
    border-radius: 50%;
    animation: spin 0.8s linear infinite;
  }
  @keyframes spin { to { transform: rotate(360deg); } }

  iframe {
    width: 100%;
    min-height: 80vh;
    border: 0;
    border-radius: 10px;
    background: #fff;
  }
</style>
</head>
<body>

<header>
  <h1>Microstock Title &amp; Prompt Generator</h1>
  <p>Enter a theme to generate a keyword-rich title and a customizable AI art prompt for your seamless patterns.</p>
</header>

<div class="split-layout">

  <div class="panel">
    <div class="card">
      <h2>1. Enter Main Element</h2>
      <div class="controls">
        <input id="theme" type="text" placeholder="e.g., Christmas Tree, Spooky Cat" autofocus>
        <button id="generateBtn" onclick="generate()">Generate</button>
      </div>
      <div id="error" class="error-text"></div>
    </div>

    <div id="loading" class="loading hidden"><div class="spinner"></div><span id="loadingText">Generating creative content... please wait.</span></div>
    <div id="status" class="status"></div>

    <div id="titleCard" class="card hidden">
      <h2>2. Generated Title</h2>
      <div id="titleText" class="title-text"></div>
      <div class="controls">
        <button id="copyTitleBtn" class="secondary" onclick="copyTitle()">Copy</button>
        <button class="secondary" onclick="checkKeywords()">Checker</button>
      </div>
    </div>

    <div id="jsonCard" class="card hidden">
      <div class="json-header">
        <h2>3. JSON Prompt</h2>
        <span id="charCount" class="char-count"></span>
      </div>
      <button id="copyJsonBtn" class="copy-output-btn" onclick="copyJson()">Copy</button>
      <pre id="jsonCode" class="json-code"></pre>
      <div class="actions">
        <button id="colorBtn" onclick="modify('color')">Change Color</button>
        <button id="styleBtn" onclick="modify('style')">Change Style</button>
      </div>
    </div>
  </div>

  <div id="checkerPanel" class="panel hidden">
    <iframe id="checker" title="MyKeyworder Keyword Checker" src="about:blank"></iframe>
  </div>

</div>

<script>
  let state = null;

  const themeEl = document.getElementById('theme');
  const errorEl = document.getElementById('error');
  const statusEl = document.getElementById('status');
  const loadingEl = document.getElementById('loading');
  const loadingTextEl = document.getElementById('loadingText');
  const buttons = ['generateBtn', 'colorBtn', 'styleBtn'].map(id => document.getElementById(id));

  // ── Timer helper ──
  function createTimer(el) {
    let interval = null;
    return {
      start() {
        const t0 = Date.now();
        clearInterval(interval);
        interval = setInterval(() => {
          const s = ((Date.now() - t0) / 1000).toFixed(1);
          el.innerHTML = '<span class="timer">' + s + 's</span> waiting for response...';
        }, 100);
      },
      stop() { clearInterval(interval); interval = null; }
    };
  }
  const timer = createTimer(statusEl);

  // ── API call helper ──
  async function callApi(path, body) {
    const res = await fetch(path, {
      method: body === undefined ? 'GET' : 'POST',
      headers: { 'Content-Type': 'application/json' },
      body: body === undefined ? undefined : JSON.stringify(body),
    });
    const data = await res.json();
    if (data.state) render(data.state);
    if (!res.ok || data.error) throw new Error(data.error || 'HTTP ' + res.status);
    return data;
  }

  function setBusy(busy, text) {
    buttons.forEach(b => b.disabled = busy);
    loadingEl.classList.toggle('hidden', !busy);
    if (text) loadingTextEl.textContent = text;
  }

  function render(s) {
    state = s;
    errorEl.textContent = s.error || '';

    document.getElementById('titleCard').classList.toggle('hidden', !s.title);
    document.getElementById('titleText').textContent = s.title;

    document.getElementById('jsonCard').classList.toggle('hidden', !s.prompt);
    document.getElementById('jsonCode').textContent = s.prompt_text;
    const countEl = document.getElementById('charCount');
    countEl.textContent = s.char_count + ' / ' + s.char_limit;
    countEl.classList.toggle('over', s.over_limit);

    const checkerEl = document.getElementById('checker');
    document.getElementById('checkerPanel').classList.toggle('hidden', !s.checker_visible);
    if (s.checker_visible && checkerEl.src !== s.checker_url) checkerEl.src = s.checker_url;
  }

  async function run(path, body, loadingText) {
    setBusy(true, loadingText);
    statusEl.textContent = '';
    timer.start();
    try {
      const data = await callApi(path, body);
      timer.stop();
      statusEl.innerHTML = 'Completed in <span class="timer">' + data.elapsed + 's</span>';
    } catch (e) {
      timer.stop();
      statusEl.textContent = '';
      errorEl.textContent = e.message;
    } finally {
      setBusy(false);
    }
  }

  themeEl.addEventListener('keydown', e => {
    if (e.key === 'Enter') { e.preventDefault(); generate(); }
  });

  function generate() {
    if (!themeEl.value.trim()) {
      errorEl.textContent = 'Please enter a main element.';
      return;
    }
    return run('/api/generate', { theme: themeEl.value }, 'Generating creative content... please wait.');
  }

  function modify(kind) {
    if (!state || !state.prompt) return;
    return run('/api/modify', { kind }, 'Modifying prompt...');
  }

  function checkKeywords() {
    if (!state || !state.title) return;
    callApi('/api/checker', {}).catch(e => errorEl.textContent = e.message);
  }

  function flashCopied(btn) {
    btn.textContent = 'Copied!';
    setTimeout(() => btn.textContent = 'Copy', 2000);
  }

  function copyTitle() {
    navigator.clipboard.writeText(state.title);
    flashCopied(document.getElementById('copyTitleBtn'));
  }

  function copyJson() {
    navigator.clipboard.writeText(state.prompt_text);
    flashCopied(document.getElementById('copyJsonBtn'));
  }

  callApi('/api/state').catch(e => errorEl.textContent = e.message);
</script>
</body>
</html>
"""


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)-8s | %(message)s")
    create_app().run(debug=True, port=5001, threaded=True)
