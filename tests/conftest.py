"""
Pytest fixtures for Leo Link tests
"""
import asyncio
import pytest

from leolink.browser.host import BrowserHost, Tab
from leolink.page.document import PageDocument
from leolink.protocol import PageSnapshot


PNG_DATA_URL = "data:image/png;base64,iVBORw0KGgo="


class FakeHost(BrowserHost):
    """In-memory browser: one tab showing a fixed HTML page."""

    def __init__(self, html="<html><body></body></html>", has_tab=True):
        self.html = html
        self.tab = Tab("tab-1", "https://example.test/", "Example") if has_tab else None
        self.opened = []
        self.clicks = []
        self.fills = []
        self.scrolls = []
        self.snapshots = 0
        self.closed = False

    def open_tab(self, url):
        self.opened.append(url)
        self.tab = Tab("tab-%d" % (len(self.opened) + 1), url, "")
        return self.tab

    def active_tab(self):
        return self.tab

    def capture_visible(self, tab):
        return PNG_DATA_URL

    def page_snapshot(self, tab):
        doc = PageDocument(self.html)
        return PageSnapshot(text=doc.rendered_text(), title=doc.title, url=tab.url, html=self.html)

    def snapshot_document(self, tab):
        self.snapshots += 1
        return PageDocument(self.html, url=tab.url)

    def scroll_by(self, tab, x, y):
        self.scrolls.append((x, y))

    def click(self, tab, ref, highlight_ms):
        self.clicks.append((ref, highlight_ms))

    def fill(self, tab, ref, text, highlight_ms):
        self.fills.append((ref, text, highlight_ms))

    def close(self):
        self.closed = True

    def element(self, ref):
        """The element a ref points at in a fresh snapshot."""
        return PageDocument(self.html).find_by_ref(ref)


class FakeWebSocket:
    """Stands in for a websockets client connection."""

    def __init__(self, frames=(), hold_open=False):
        self.frames = list(frames)
        self.sent = []
        self.closed = False
        self._hold_open = hold_open
        self._close_event = None

    async def send(self, text):
        if self.closed:
            from websockets.exceptions import ConnectionClosedOK
            raise ConnectionClosedOK(None, None)
        self.sent.append(text)

    def __aiter__(self):
        return self._frames()

    async def _frames(self):
        for frame in self.frames:
            await asyncio.sleep(0)
            yield frame
        if self._hold_open:
            self._close_event = asyncio.Event()
            await self._close_event.wait()

    async def close(self):
        self.closed = True
        if self._close_event is not None:
            self._close_event.set()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        self.closed = True
        return False


class FakeConnector:
    """websockets.connect replacement that plays back a list of outcomes."""

    def __init__(self, outcomes, on_exhausted=None):
        self.outcomes = list(outcomes)
        self.on_exhausted = on_exhausted
        self.calls = []

    def __call__(self, url, open_timeout=None):
        self.calls.append(url)
        if not self.outcomes:
            if self.on_exhausted:
                self.on_exhausted()
            raise OSError("connection refused")
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def article_html():
    return """
    <html><head><title>Release Notes</title><style>.x { color: red }</style></head>
    <body>
      <nav><a href="/">Home</a> <a href="/docs">Docs</a></nav>
      <article>
        <h1>Version 2.0</h1>
        <p>The new   release brings
           faster page loads and a redesigned settings panel.</p>
      </article>
      <script>var tracking = true;</script>
    </body></html>
    """


@pytest.fixture
def form_html():
    return """
    <html><body>
      <form>
        <input id="q" name="q" placeholder="Search products">
        <input type="submit" value="Go">
        <button id="login" class="primary">Log In</button>
      </form>
      <a href="/pricing">See pricing plans</a>
      <div><span>Contact</span></div>
    </body></html>
    """


@pytest.fixture
def fake_host(form_html):
    return FakeHost(form_html)


@pytest.fixture
def sent():
    """Recorder for outbound protocol messages."""
    return []


@pytest.fixture
def send(sent):
    async def _send(message):
        sent.append(message)
        return True
    return _send
