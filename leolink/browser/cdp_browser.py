"""
CDP Browser Host - Chrome DevTools Protocol backend for the agent
=================================================================
Drives a Chromium browser (Chrome/Edge) launched with
--remote-debugging-port=9222 on behalf of the Leo Link agent.

- Tab discovery and creation over the CDP HTTP endpoints (requests)
- One WebSocket per tab for Runtime.evaluate / Page.captureScreenshot
  (websocket-client, a background receive thread per connection)
- The document snapshot serializes the DOM with element refs written into
  the markup only; the page keeps a ref -> element registry (WeakMap/WeakRef)
  that click/type scripts look elements up in. The DOM is never modified.
"""

import json
import logging
import threading
from typing import Dict, Any, Optional, List
from dataclasses import dataclass

import requests
import websocket

from .host import BrowserHost, BrowserError, Tab
from ..page.document import PageDocument, REF_ATTR
from ..page.ranker import RANKER_CANDIDATES
from ..protocol import PageSnapshot

logger = logging.getLogger(__name__)

HTTP_TIMEOUT = 5
REGISTRY = "__leoRefs"

# Layout is reported for interactive candidates and leaf elements, the only
# ones resolution and ranking look at. <template> content has no childNodes
# in the live tree, so it never appears in the markup.
DOCUMENT_SNAPSHOT_JS = """(() => {
    const REF = %(ref_attr)s;
    const VOID = new Set(['area', 'base', 'br', 'col', 'embed', 'hr', 'img', 'input',
                          'link', 'meta', 'param', 'source', 'track', 'wbr']);
    const RAW = new Set(['script', 'style']);
    const registry = window[%(registry)s] ||
        (window[%(registry)s] = { seq: 0, byElement: new WeakMap(), byRef: new Map() });
    const current = new Map();

    const refOf = (el) => {
        let ref = registry.byElement.get(el);
        if (!ref) {
            ref = String(++registry.seq);
            registry.byElement.set(el, ref);
        }
        current.set(ref, new WeakRef(el));
        return ref;
    };
    const escapeText = (s) => s.replace(/&/g, '&amp;').replace(/</g, '&lt;').replace(/>/g, '&gt;');
    const escapeAttr = (s) => s.replace(/&/g, '&amp;').replace(/"/g, '&quot;');

    const serialize = (node, raw) => {
        if (node.nodeType === Node.TEXT_NODE) return raw ? node.data : escapeText(node.data);
        if (node.nodeType !== Node.ELEMENT_NODE) return '';
        const tag = node.localName;
        let out = '<' + tag;
        for (const attr of node.attributes) {
            if (attr.name !== REF) out += ' ' + attr.name + '="' + escapeAttr(attr.value) + '"';
        }
        out += ' ' + REF + '="' + refOf(node) + '">';
        if (VOID.has(tag)) return out;
        for (const child of node.childNodes) out += serialize(child, RAW.has(tag));
        return out + '</' + tag + '>';
    };

    const candidates = new Set(document.querySelectorAll(%(candidates)s));
    const layout = {};
    for (const el of document.querySelectorAll('*')) {
        const isCandidate = candidates.has(el);
        if (!isCandidate && el.children.length !== 0) continue;
        const entry = { text: typeof el.innerText === 'string' ? el.innerText : '' };
        if ('value' in el && typeof el.value === 'string') entry.value = el.value;
        if (isCandidate) {
            const rect = el.getBoundingClientRect();
            entry.width = rect.width;
            entry.height = rect.height;
            entry.visibility = window.getComputedStyle(el).visibility;
        }
        layout[refOf(el)] = entry;
    }
    const html = serialize(document.documentElement, false);
    registry.byRef = current;
    return {
        url: window.location.href,
        title: document.title,
        text: document.body ? document.body.innerText : '',
        html: html,
        layout: layout,
    };
})()""" % {
    "ref_attr": json.dumps(REF_ATTR),
    "registry": json.dumps(REGISTRY),
    "candidates": json.dumps(RANKER_CANDIDATES),
}

PAGE_SNAPSHOT_JS = """(() => ({
    text: document.body ? document.body.innerText : '',
    title: document.title,
    url: window.location.href,
    html: document.documentElement.outerHTML,
}))()"""


def _highlight_js(duration_ms: int) -> str:
    # Restored from a page timer so the action never waits on it
    return f"""
        const originalOutline = el.style.outline;
        const originalTransition = el.style.transition;
        el.style.transition = 'outline 0.3s ease';
        el.style.outline = '4px solid #ff4444';
        el.style.outlineOffset = '2px';
        setTimeout(() => {{
            el.style.outline = originalOutline;
            el.style.transition = originalTransition;
        }}, {int(duration_ms)});"""


def _element_action_js(ref: str, body: str, duration_ms: int) -> str:
    return f"""(() => {{
        const registry = window[{json.dumps(REGISTRY)}];
        const handle = registry && registry.byRef.get({json.dumps(ref)});
        const el = handle && handle.deref();
        if (!el || !el.isConnected) return {{ success: false, error: 'Element is no longer on the page' }};
        el.scrollIntoView({{ behavior: 'smooth', block: 'center' }});
        {_highlight_js(duration_ms)}
        {body}
        return {{ success: true }};
    }})()"""


@dataclass
class CDPTab(Tab):
    """A page target discovered via /json."""
    ws_url: str = ""


class CDPConnection:
    """
    WebSocket connection to a single tab.

    Each call registers a waiter under its message id; the receive thread
    hands the matching response over and wakes it. Responses nobody waits
    for any more (the call timed out) are dropped.
    """

    def __init__(self, ws_url: str, timeout: float = 15.0):
        self._ws_url = ws_url
        self._timeout = timeout
        self._ws = None
        self._msg_id = 0
        self._lock = threading.Lock()
        self._waiters: Dict[int, threading.Event] = {}
        self._responses: Dict[int, Dict[str, Any]] = {}
        self._recv_thread: Optional[threading.Thread] = None
        self._running = False

    def connect(self) -> bool:
        try:
            ws = websocket.WebSocket()
            ws.settimeout(self._timeout)
            ws.connect(self._ws_url)
        except (OSError, websocket.WebSocketException) as e:
            logger.error(f"CDP connection to {self._ws_url[:80]} failed: {e}")
            return False

        self._ws = ws
        self._running = True
        self._recv_thread = threading.Thread(target=self._recv_loop, daemon=True)
        self._recv_thread.start()
        logger.info(f"CDP attached to {self._ws_url[:80]}")
        return True

    def disconnect(self):
        self._running = False
        ws, self._ws = self._ws, None
        if ws is not None:
            try:
                ws.close()
            except (OSError, websocket.WebSocketException) as e:
                logger.debug(f"CDP close error: {e}")
        with self._lock:
            for event in self._waiters.values():
                event.set()

    @property
    def connected(self) -> bool:
        return self._ws is not None and self._running

    def send(self, method: str, params: Optional[Dict] = None, timeout: Optional[float] = None) -> Dict:
        """
        Call a CDP method and wait for its response.
        Returns the 'result' dict, or {'error': ...} when the call fails.
        """
        ws = self._ws
        if ws is None or not self._running:
            return {"error": "Not connected"}

        event = threading.Event()
        with self._lock:
            self._msg_id += 1
            msg_id = self._msg_id
            self._waiters[msg_id] = event

        message: Dict[str, Any] = {"id": msg_id, "method": method}
        if params:
            message["params"] = params

        try:
            ws.send(json.dumps(message))
            event.wait(timeout or self._timeout)
        except (OSError, websocket.WebSocketException) as e:
            return {"error": f"Send failed: {e}"}
        finally:
            with self._lock:
                self._waiters.pop(msg_id, None)
                resp = self._responses.pop(msg_id, None)

        if resp is None:
            if not self.connected:
                return {"error": f"Connection closed during {method}"}
            return {"error": f"Timeout waiting for response to {method}"}
        if "error" in resp:
            error = resp["error"]
            return {"error": error.get("message", str(error)) if isinstance(error, dict) else str(error)}
        return resp.get("result", {})

    def _deliver(self, data: Dict[str, Any]):
        msg_id = data.get("id") if isinstance(data, dict) else None
        if msg_id is None:
            return  # protocol event
        with self._lock:
            event = self._waiters.get(msg_id)
            if event is None:
                logger.debug(f"Dropping late CDP response {msg_id}")
                return
            self._responses[msg_id] = data
        event.set()

    def _recv_loop(self):
        while self._running:
            ws = self._ws
            if ws is None:
                break
            try:
                raw = ws.recv()
                if raw:
                    self._deliver(json.loads(raw))
            except websocket.WebSocketTimeoutException:
                continue
            except (OSError, ValueError, websocket.WebSocketException) as e:
                if self._running:
                    logger.debug(f"CDP receive loop ended: {e}")
                break

        self._running = False
        with self._lock:
            for event in self._waiters.values():
                event.set()


class CDPBrowser(BrowserHost):
    """
    BrowserHost over the Chrome DevTools Protocol.
    Discovers tabs via HTTP, connects to individual tabs via WebSocket.
    """

    def __init__(self, host: str = "localhost", port: int = 9222, timeout: float = 15.0):
        self.host = host
        self.port = port
        self.timeout = timeout
        self._base_url = f"http://{host}:{port}"
        self._connections: Dict[str, CDPConnection] = {}
        self._active_tab_id: Optional[str] = None
        self._lock = threading.Lock()

    # ── HTTP endpoints ─────────────────────────────────────────────

    def _http(self, method: str, path: str) -> Any:
        try:
            resp = requests.request(method, f"{self._base_url}{path}", timeout=HTTP_TIMEOUT)
            resp.raise_for_status()
            return resp.json()
        except requests.RequestException as e:
            raise BrowserError(
                f"Browser not reachable on {self._base_url} ({e}). "
                f"Launch Chrome/Edge with --remote-debugging-port={self.port}"
            ) from e
        except ValueError as e:
            raise BrowserError(f"Unexpected response from {path}: {e}") from e

    def list_tabs(self) -> List[CDPTab]:
        """Page targets, most recently used first (CDP's own ordering)."""
        tabs = []
        for entry in self._http("GET", "/json"):
            if entry.get("type") != "page":
                continue
            tabs.append(CDPTab(
                tab_id=entry.get("id", ""),
                url=entry.get("url", ""),
                title=entry.get("title", ""),
                ws_url=entry.get("webSocketDebuggerUrl", ""),
            ))
        return tabs

    # ── BrowserHost ────────────────────────────────────────────────

    def open_tab(self, url: str) -> Tab:
        data = self._http("PUT", f"/json/new?{url}")
        tab = CDPTab(
            tab_id=data.get("id", ""),
            url=data.get("url", url),
            title=data.get("title", ""),
            ws_url=data.get("webSocketDebuggerUrl", ""),
        )
        self._active_tab_id = tab.tab_id
        logger.info(f"Opened tab {tab.tab_id}: {url}")
        return tab

    def active_tab(self) -> Optional[Tab]:
        tabs = self.list_tabs()
        if not tabs:
            return None
        for tab in tabs:
            if tab.tab_id == self._active_tab_id:
                return tab
        self._active_tab_id = tabs[0].tab_id
        return tabs[0]

    def capture_visible(self, tab: Tab) -> str:
        result = self._send(tab, "Page.captureScreenshot", {"format": "png"})
        return "data:image/png;base64," + result.get("data", "")

    def page_snapshot(self, tab: Tab) -> PageSnapshot:
        value = self.evaluate(tab, PAGE_SNAPSHOT_JS) or {}
        return PageSnapshot(
            text=value.get("text", ""),
            title=value.get("title", ""),
            url=value.get("url", ""),
            html=value.get("html", ""),
        )

    def snapshot_document(self, tab: Tab) -> PageDocument:
        value = self.evaluate(tab, DOCUMENT_SNAPSHOT_JS)
        if not isinstance(value, dict):
            raise BrowserError("Failed to snapshot page")
        return PageDocument.from_snapshot(value)

    def scroll_by(self, tab: Tab, x: float, y: float) -> None:
        self.evaluate(tab, f"window.scrollBy({{ top: {json.dumps(y)}, left: {json.dumps(x)}, behavior: 'smooth' }})")

    def click(self, tab: Tab, ref: str, highlight_ms: int) -> None:
        js = _element_action_js(ref, "el.click();\n        el.focus();", highlight_ms)
        self._run_element_action(tab, js)

    def fill(self, tab: Tab, ref: str, text: str, highlight_ms: int) -> None:
        body = f"""el.value = {json.dumps(text)};
        el.dispatchEvent(new Event('input', {{ bubbles: true }}));
        el.dispatchEvent(new Event('change', {{ bubbles: true }}));"""
        self._run_element_action(tab, _element_action_js(ref, body, highlight_ms))

    # ── CDP plumbing ───────────────────────────────────────────────

    def _run_element_action(self, tab: Tab, js: str):
        value = self.evaluate(tab, js) or {}
        if not value.get("success"):
            raise BrowserError(value.get("error", "Page action failed"))

    def _get_connection(self, tab: Tab) -> CDPConnection:
        with self._lock:
            conn = self._connections.get(tab.tab_id)
            if conn and conn.connected:
                return conn
            if conn:
                conn.disconnect()
                del self._connections[tab.tab_id]
                logger.info(f"Cleared stale CDP connection for tab {tab.tab_id}")

            ws_url = getattr(tab, "ws_url", "")
            if not ws_url:
                ws_url = next((t.ws_url for t in self.list_tabs() if t.tab_id == tab.tab_id), "")
            if not ws_url:
                raise BrowserError(f"Tab {tab.tab_id} has no debugger WebSocket")

            conn = CDPConnection(ws_url, timeout=self.timeout)
            if not conn.connect():
                raise BrowserError(f"Failed to connect to tab {tab.tab_id}")
            self._connections[tab.tab_id] = conn
            return conn

    def _send(self, tab: Tab, method: str, params: Optional[Dict] = None, timeout: Optional[float] = None) -> Dict:
        result = self._get_connection(tab).send(method, params, timeout=timeout)
        if "error" in result:
            raise BrowserError(f"{method} failed: {result['error']}")
        return result

    def evaluate(self, tab: Tab, expression: str, timeout: Optional[float] = None) -> Any:
        """Run JavaScript in the page and return its value."""
        timeout = timeout or self.timeout
        result = self._send(tab, "Runtime.evaluate", {
            "expression": expression,
            "returnByValue": True,
            "awaitPromise": True,
            "timeout": int(timeout * 1000),
        }, timeout=timeout + 2)

        exception = result.get("exceptionDetails")
        if exception:
            detail = exception.get("exception", {}).get("description") or exception.get("text", str(exception))
            raise BrowserError(detail)
        return result.get("result", {}).get("value")

    def close(self):
        """Detach from every tab."""
        with self._lock:
            for conn in self._connections.values():
                conn.disconnect()
            self._connections.clear()
