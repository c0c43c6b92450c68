"""
Element Ranker - the short list of visible interactive elements.

Scores every visible button/link/input so navigation controls ("Next",
"Prev") and page numbers float to the top, then caps the list so it stays
small enough to hand to a model.
"""

import re
import logging
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, asdict

from bs4.element import Tag

from .document import PageDocument

logger = logging.getLogger(__name__)

RANKER_CANDIDATES = 'button, a, input, select, [role="button"]'
MAX_ELEMENTS = 30
MAX_TEXT_CHARS = 50

_PAGE_NUMBER = re.compile(r"^[0-9]+$")


@dataclass
class ElementDescriptor:
    """One ranked element as reported by get_elements."""
    tag: str
    text: str
    type: str
    id: str
    priority: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def score_element(tag_name: str, role: Optional[str], text: str) -> int:
    """Priority for one element; higher is more likely what the user wants."""
    priority = 1
    lowered = text.lower()
    if "next" in lowered or "prev" in lowered:
        priority = 10
    elif _PAGE_NUMBER.match(text):
        priority = 5
    if tag_name == "button":
        priority += 2
    if role == "button":
        priority += 2
    return priority


def element_label(document: PageDocument, el: Tag) -> str:
    """First non-empty of visible text, form value, placeholder; trimmed after the pick, then truncated."""
    for candidate in (document.inner_text(el), document.value(el), document.placeholder(el)):
        if candidate:
            return candidate.strip()[:MAX_TEXT_CHARS]
    return ""


def rank_elements(document: PageDocument, limit: int = MAX_ELEMENTS) -> List[ElementDescriptor]:
    """Visible interactive elements, highest priority first, document order on ties."""
    items = []
    for el in document.select(RANKER_CANDIDATES):
        if not document.is_rendered(el):
            continue
        text = element_label(document, el)
        if not text:
            continue
        tag_name = el.name.lower()
        items.append(ElementDescriptor(
            tag=tag_name,
            text=text,
            type=document.element_type(el),
            id=document.element_id(el),
            priority=score_element(tag_name, document.role(el), text),
        ))

    # sorted() is stable, reverse=True keeps document order among equals
    ranked = sorted(items, key=lambda item: item.priority, reverse=True)[:limit]
    logger.debug(f"Ranked {len(items)} visible elements, returning {len(ranked)}")
    return ranked
