"""
Element Resolver - turn a selector or a visible label into one page element.

Lookup order, first hit wins:
1. CSS selector (syntax errors are ignored and fall through)
2. Exact, case-insensitive text/value match on clickable candidates
3. Substring, case-insensitive text/value match on the same candidates
4. Any leaf element under <body> whose trimmed text equals the target
"""

import logging
from typing import Optional, List

from bs4.element import Tag
from soupsieve import SelectorSyntaxError

from .document import PageDocument

logger = logging.getLogger(__name__)

RESOLVER_CANDIDATES = 'button, a, input[type="button"], input[type="submit"], [role="button"]'


def _lower(value: Optional[str]) -> str:
    return (value or "").lower()


def _by_selector(document: PageDocument, target: str) -> Optional[Tag]:
    try:
        matches = document.select(target)
    except (SelectorSyntaxError, ValueError, NotImplementedError):
        # Plain labels like "Sign in!" are not valid CSS
        return None
    return matches[0] if matches else None


def _candidates(document: PageDocument) -> List[Tag]:
    return document.select(RESOLVER_CANDIDATES)


def _by_exact_text(document: PageDocument, candidates: List[Tag], text: str) -> Optional[Tag]:
    for el in candidates:
        if _lower(document.inner_text(el)).strip() == text or _lower(document.value(el)).strip() == text:
            return el
    return None


def _by_partial_text(document: PageDocument, candidates: List[Tag], text: str) -> Optional[Tag]:
    for el in candidates:
        if text in _lower(document.inner_text(el)) or text in _lower(document.value(el)):
            return el
    return None


def _by_leaf_text(document: PageDocument, text: str) -> Optional[Tag]:
    for el in document.all_elements():
        if not document.element_children(el) and _lower(document.inner_text(el)).strip() == text:
            return el
    return None


def resolve_element(document: PageDocument, target: Optional[str]) -> Optional[Tag]:
    """Find the element `target` refers to, or None if nothing matches."""
    if not target or not target.strip():
        return None

    el = _by_selector(document, target)
    if el is not None:
        logger.debug(f"Resolved {target!r} as CSS selector")
        return el

    text = target.lower()
    candidates = _candidates(document)

    el = _by_exact_text(document, candidates, text)
    if el is None:
        el = _by_partial_text(document, candidates, text)
    if el is None:
        el = _by_leaf_text(document, text)

    if el is not None:
        logger.debug(f"Resolved {target!r} by text to <{el.name}>")
    return el
