"""
Action Executor - run one command against the active tab.

Every ActionKind has exactly one handler. Browser calls are synchronous (CDP)
and run in a worker thread so a slow page never stalls the connection loop;
'wait' suspends on the event loop itself.

Handlers return an ActionOutcome on success and raise ActionError (or let a
BrowserError through) on failure. The dispatcher turns either into a protocol
message.
"""

import json
import asyncio
import logging
from typing import Any, Optional, Callable, Awaitable, Dict
from dataclasses import dataclass

from ..browser.host import BrowserHost, Tab
from ..config import DEFAULT_HIGHLIGHT_MS
from ..page.document import PageDocument
from ..page.extractor import extract_text, readability_text, ReadabilityFn
from ..page.ranker import rank_elements
from ..page.resolver import resolve_element
from ..protocol import ActionKind, Command

logger = logging.getLogger(__name__)

DEFAULT_SCROLL_X = 0
DEFAULT_SCROLL_Y = 500
DEFAULT_WAIT_MS = 2000


class ActionError(RuntimeError):
    """A command could not be carried out."""


class ElementNotFoundError(ActionError):
    def __init__(self, target: Optional[str]):
        super().__init__(f"Element not found: {target}")
        self.target = target


class NoActiveTabError(ActionError):
    pass


@dataclass
class ActionOutcome:
    """Successful result: `data` and/or a human readable `message`."""
    data: Any = None
    message: Optional[str] = None


def normalize_url(url: str) -> str:
    """Prefix https:// unless the URL already names http(s)."""
    url = url.strip()
    if not url.startswith(("http://", "https://")):
        url = "https://" + url
    return url


class ActionExecutor:
    """Executes commands through a BrowserHost."""

    def __init__(
        self,
        host: BrowserHost,
        highlight_ms: int = DEFAULT_HIGHLIGHT_MS,
        readability: Optional[ReadabilityFn] = readability_text,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.host = host
        self.highlight_ms = highlight_ms
        self._readability = readability
        self._sleep = sleep
        self._handlers: Dict[ActionKind, Callable[[Command], Awaitable[ActionOutcome]]] = {
            ActionKind.OPEN: self._open,
            ActionKind.SCREENSHOT: self._screenshot,
            ActionKind.MOMENT: self._moment,
            ActionKind.CLICK: self._click,
            ActionKind.TYPE: self._type,
            ActionKind.READ: self._read,
            ActionKind.SCROLL: self._scroll,
            ActionKind.GET_ELEMENTS: self._get_elements,
            ActionKind.WAIT: self._wait,
        }

    @property
    def handled_actions(self):
        return set(self._handlers)

    async def execute(self, command: Command) -> ActionOutcome:
        handler = self._handlers.get(command.action)
        if handler is None:
            raise ActionError(f"Unknown action: {command.action}")
        return await handler(command)

    async def _call(self, fn: Callable, *args) -> Any:
        return await asyncio.to_thread(fn, *args)

    async def _require_tab(self, message: str = "No active tab found") -> Tab:
        tab = await self._call(self.host.active_tab)
        if tab is None:
            raise NoActiveTabError(message)
        return tab

    # ── Tab-level actions ─────────────────────────────────────────

    async def _open(self, command: Command) -> ActionOutcome:
        if not command.url or not command.url.strip():
            raise ActionError("No url given")
        url = normalize_url(command.url)
        await self._call(self.host.open_tab, url)
        return ActionOutcome(message=f"Opened {url}")

    async def _screenshot(self, command: Command) -> ActionOutcome:
        tab = await self._require_tab("No active tab")
        image = await self._call(self.host.capture_visible, tab)
        return ActionOutcome(data={"screenshot": image})

    async def _moment(self, command: Command) -> ActionOutcome:
        tab = await self._require_tab("No active tab")
        image = await self._call(self.host.capture_visible, tab)
        page = await self._call(self.host.page_snapshot, tab)
        return ActionOutcome(data={"screenshot": image, "page": page.to_dict()})

    # ── Page actions ──────────────────────────────────────────────

    async def _click(self, command: Command) -> ActionOutcome:
        tab = await self._require_tab()
        document = await self._call(self.host.snapshot_document, tab)
        el = resolve_element(document, command.selector)
        if el is None:
            raise ElementNotFoundError(command.selector)

        label = document.inner_text(el) or document.value(el) or command.selector
        await self._call(self.host.click, tab, document.ref_of(el), self.highlight_ms)
        return ActionOutcome(data=f"Clicked element: {label}")

    async def _type(self, command: Command) -> ActionOutcome:
        tab = await self._require_tab()
        document = await self._call(self.host.snapshot_document, tab)
        el = resolve_element(document, command.selector)
        if el is None:
            raise ElementNotFoundError(command.selector)

        text = command.text if command.text is not None else ""
        await self._call(self.host.fill, tab, document.ref_of(el), text, self.highlight_ms)
        # value has just become `text`
        label = document.inner_text(el) or text or command.selector
        return ActionOutcome(data=f"Typed into element: {label}")

    async def _read(self, command: Command) -> ActionOutcome:
        tab = await self._require_tab()
        snapshot = await self._call(self.host.page_snapshot, tab)
        document = PageDocument(snapshot.html, url=snapshot.url, title=snapshot.title, text=snapshot.text)
        text = await self._call(extract_text, document, self._readability)
        return ActionOutcome(data=text)

    async def _scroll(self, command: Command) -> ActionOutcome:
        tab = await self._require_tab()
        x = command.x if command.x is not None else DEFAULT_SCROLL_X
        y = command.y if command.y is not None else DEFAULT_SCROLL_Y
        await self._call(self.host.scroll_by, tab, x, y)
        return ActionOutcome(data="Scrolled")

    async def _get_elements(self, command: Command) -> ActionOutcome:
        tab = await self._require_tab()
        document = await self._call(self.host.snapshot_document, tab)
        items = rank_elements(document)
        return ActionOutcome(data=json.dumps([item.to_dict() for item in items]))

    async def _wait(self, command: Command) -> ActionOutcome:
        await self._require_tab()
        ms = command.ms if command.ms is not None else DEFAULT_WAIT_MS
        await self._sleep(max(ms, 0) / 1000)
        return ActionOutcome(data="Wait finished")
