"""
Browser Host - what the action executor needs from a browser.

The executor never talks to a browser API directly; it goes through this
capability so the same code runs against CDP in production and an in-memory
page in tests. Methods are synchronous and raise BrowserError on failure.
"""

from abc import ABC, abstractmethod
from typing import Optional
from dataclasses import dataclass

from ..page.document import PageDocument
from ..protocol import PageSnapshot


class BrowserError(RuntimeError):
    """A browser call failed (unreachable browser, protocol error, page script error)."""


@dataclass
class Tab:
    """A browser tab."""
    tab_id: str
    url: str = ""
    title: str = ""


class BrowserHost(ABC):

    @abstractmethod
    def open_tab(self, url: str) -> Tab:
        """Open `url` in a new tab; the new tab becomes active."""

    @abstractmethod
    def active_tab(self) -> Optional[Tab]:
        """The tab commands act on, or None when there is none."""

    @abstractmethod
    def capture_visible(self, tab: Tab) -> str:
        """PNG of the visible area as a data URL."""

    @abstractmethod
    def page_snapshot(self, tab: Tab) -> PageSnapshot:
        """Rendered text, title, URL and outer HTML of the tab."""

    @abstractmethod
    def snapshot_document(self, tab: Tab) -> PageDocument:
        """A PageDocument of the tab with layout and element refs."""

    @abstractmethod
    def scroll_by(self, tab: Tab, x: float, y: float) -> None:
        """Smooth-scroll the window."""

    @abstractmethod
    def click(self, tab: Tab, ref: str, highlight_ms: int) -> None:
        """Scroll into view, highlight, click and focus the element with `ref`."""

    @abstractmethod
    def fill(self, tab: Tab, ref: str, text: str, highlight_ms: int) -> None:
        """Scroll into view, highlight, set the value and fire input/change."""

    def close(self) -> None:
        """Release whatever the host holds open. Nothing by default."""
