"""
Page Document - explicit page context for element lookup and text extraction.
=============================================================================
A PageDocument is a parsed copy of a page (BeautifulSoup tree, CSS queries via
soupsieve) plus a layout table keyed by element ref. The live browser fills the
layout table from getBoundingClientRect / getComputedStyle / innerText when it
snapshots a tab; synthetic documents built from plain HTML fall back to what
the markup itself says (hidden attribute, inline display/visibility styles).

Every element carries a `data-leo-ref` attribute so a match found here can be
acted on in the live page. Live refs are written into the serialized snapshot
only; the page DOM itself is never tagged.

Like querySelectorAll, queries never descend into <template> content.
"""

import logging
import itertools
from typing import Dict, Any, Optional, List, Iterator
from dataclasses import dataclass

from bs4 import BeautifulSoup
from bs4.element import Tag, NavigableString, PreformattedString

logger = logging.getLogger(__name__)

REF_ATTR = "data-leo-ref"

# Content of these never shows up in innerText
NON_RENDERED_TAGS = {"script", "style", "noscript", "template", "head", "title", "meta", "link"}

# Tags that expose a .value property
_VALUE_TAGS = {"input", "button", "option", "select", "textarea", "data", "output", "param"}


@dataclass
class ElementLayout:
    """Rendered state of one element."""
    width: float = 0.0
    height: float = 0.0
    visibility: str = "visible"
    text: Optional[str] = None    # innerText, None = derive from markup
    value: Optional[str] = None   # live form value, None = derive from markup

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ElementLayout":
        text = data.get("text")
        value = data.get("value")
        return cls(
            width=float(data.get("width") or 0),
            height=float(data.get("height") or 0),
            visibility=str(data.get("visibility") or "visible"),
            text=text if isinstance(text, str) else None,
            value=value if isinstance(value, str) else None,
        )

    @property
    def rendered(self) -> bool:
        return self.width > 0 and self.height > 0 and self.visibility != "hidden"


def _parse_style(style: str) -> Dict[str, str]:
    props = {}
    for decl in style.split(";"):
        if ":" not in decl:
            continue
        name, _, value = decl.partition(":")
        props[name.strip().lower()] = value.strip().lower()
    return props


def _in_template(el: Tag) -> bool:
    return any(p.name == "template" for p in el.parents)


class PageDocument:
    """
    Parsed page plus rendered layout.

    Args:
        html: Full document markup
        layout: ref -> ElementLayout from a live snapshot (None for static HTML)
        url: Page URL
        title: Page title (defaults to <title>)
        text: Rendered body text (defaults to text derived from markup)
        live: Layout came from the page itself; an element it does not list
            was never laid out (e.g. <template> content)
    """

    def __init__(
        self,
        html: str,
        layout: Optional[Dict[str, ElementLayout]] = None,
        url: str = "",
        title: Optional[str] = None,
        text: Optional[str] = None,
        live: bool = False,
    ):
        self.soup = BeautifulSoup(html or "", "html.parser")
        self.layout: Dict[str, ElementLayout] = dict(layout or {})
        self.url = url
        self._title = title
        self._text = text
        self.live = live
        self._assign_refs()

    @classmethod
    def from_snapshot(cls, data: Dict[str, Any]) -> "PageDocument":
        """Build from the dict produced by the in-page snapshot script."""
        layout = {
            str(ref): ElementLayout.from_dict(entry)
            for ref, entry in (data.get("layout") or {}).items()
            if isinstance(entry, dict)
        }
        return cls(
            data.get("html") or "",
            layout=layout,
            url=data.get("url") or "",
            title=data.get("title"),
            text=data.get("text"),
            live=True,
        )

    def _assign_refs(self):
        # Live snapshots arrive fully tagged; static HTML gets synthetic refs
        counter = itertools.count(1)
        for tag in self.soup.find_all(True):
            if not tag.has_attr(REF_ATTR):
                tag[REF_ATTR] = f"s{next(counter)}"

    def clone(self) -> "PageDocument":
        """Independent copy; changes to the clone never reach this document."""
        return PageDocument(
            str(self.soup),
            layout={ref: ElementLayout(**vars(entry)) for ref, entry in self.layout.items()},
            url=self.url,
            title=self._title,
            text=self._text,
            live=self.live,
        )

    # ── Document-level accessors ──────────────────────────────────

    @property
    def html(self) -> str:
        return str(self.soup)

    @property
    def title(self) -> str:
        if self._title is not None:
            return self._title
        tag = self.soup.find("title")
        return tag.get_text(strip=True) if tag else ""

    @property
    def body(self) -> Tag:
        return self.soup.body or self.soup

    def rendered_text(self) -> str:
        """The page's visible text (body innerText)."""
        if self._text is not None:
            return self._text
        return self.inner_text(self.body)

    def select(self, selector: str) -> List[Tag]:
        """CSS query in document order. Raises soupsieve.SelectorSyntaxError on bad syntax."""
        return [el for el in self.soup.select(selector) if not _in_template(el)]

    def all_elements(self) -> Iterator[Tag]:
        """Every element under <body>, in document order."""
        return (el for el in self.body.find_all(True) if not _in_template(el))

    def find_by_ref(self, ref: str) -> Optional[Tag]:
        return self.soup.find(attrs={REF_ATTR: ref})

    # ── Element accessors ─────────────────────────────────────────

    @staticmethod
    def ref_of(el: Tag) -> str:
        return el.get(REF_ATTR, "")

    def layout_of(self, el: Tag) -> ElementLayout:
        entry = self.layout.get(self.ref_of(el))
        if entry is not None:
            return entry
        if self.live:
            return ElementLayout(width=0, height=0)
        return self._static_layout(el)

    def _static_layout(self, el: Tag) -> ElementLayout:
        if el.name == "input" and (el.get("type") or "").lower() == "hidden":
            return ElementLayout(width=0, height=0)

        visibility = None
        node = el
        while isinstance(node, Tag) and node is not self.soup:
            style = _parse_style(node.get("style", ""))
            if node.name == "template" or node.has_attr("hidden") or style.get("display") == "none":
                return ElementLayout(width=0, height=0)
            # visibility inherits from the nearest ancestor that sets it
            if visibility is None and "visibility" in style:
                visibility = style["visibility"]
            node = node.parent
        return ElementLayout(width=1, height=1, visibility=visibility or "visible")

    def is_rendered(self, el: Tag) -> bool:
        """Laid out with a non-zero box and not visibility:hidden."""
        return self.layout_of(el).rendered

    def inner_text(self, el: Tag) -> str:
        entry = self.layout.get(self.ref_of(el))
        if entry is not None and entry.text is not None:
            return entry.text
        if el.name in NON_RENDERED_TAGS:
            return ""
        parts = []
        for s in el.find_all(string=True):
            if not isinstance(s, NavigableString) or isinstance(s, PreformattedString):
                continue
            if any(p.name in NON_RENDERED_TAGS for p in s.parents if p is not el and isinstance(p, Tag)):
                continue
            parts.append(str(s))
        return "".join(parts)

    def value(self, el: Tag) -> Optional[str]:
        """The element's form value, or None where the element has no value."""
        entry = self.layout.get(self.ref_of(el))
        if entry is not None and entry.value is not None:
            return entry.value

        name = el.name
        if name not in _VALUE_TAGS:
            return None
        if name == "textarea":
            return el.get_text()
        if name == "select":
            option = el.find("option", selected=True) or el.find("option")
            return self.value(option) if option else ""
        if name == "option":
            return el.get("value", el.get_text(strip=True))
        return el.get("value", "")

    @staticmethod
    def placeholder(el: Tag) -> Optional[str]:
        if el.name in ("input", "textarea"):
            return el.get("placeholder")
        return None

    @staticmethod
    def element_type(el: Tag) -> str:
        """Mirror of the DOM .type property ("" where the element has none)."""
        name = el.name
        if name == "input":
            return (el.get("type") or "text").lower()
        if name == "button":
            kind = (el.get("type") or "").lower()
            return kind if kind in ("submit", "reset", "button") else "submit"
        if name == "select":
            return "select-multiple" if el.has_attr("multiple") else "select-one"
        if name == "textarea":
            return "textarea"
        if name in ("a", "link", "source", "embed", "object", "script", "style"):
            return el.get("type", "")
        return ""

    @staticmethod
    def element_id(el: Tag) -> str:
        return el.get("id", "")

    @staticmethod
    def role(el: Tag) -> Optional[str]:
        return el.get("role")

    @staticmethod
    def element_children(el: Tag) -> List[Tag]:
        return [c for c in el.children if isinstance(c, Tag)]
