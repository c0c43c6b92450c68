"""
Content Extractor - readable plain text from an arbitrary page.

Primary path runs readability (readability-lxml) on a clone of the document so
the page itself is never touched. Anything going wrong there, or an empty
article, drops to the page's rendered text. Both paths collapse whitespace.
"""

import logging
from typing import Callable, Optional

from bs4 import BeautifulSoup
from readability import Document as ReadabilityDocument

from .document import PageDocument

logger = logging.getLogger(__name__)

ReadabilityFn = Callable[[PageDocument], Optional[str]]


def normalize_whitespace(text: str) -> str:
    return " ".join(text.split())


def readability_text(document: PageDocument) -> str:
    """Article text according to readability-lxml."""
    summary = ReadabilityDocument(document.html).summary(html_partial=True)
    return BeautifulSoup(summary, "html.parser").get_text(" ")


def extract_text(document: PageDocument, readability: Optional[ReadabilityFn] = readability_text) -> str:
    """Best-effort plain text for the page. Never raises."""
    if readability is not None:
        try:
            article = readability(document.clone())
            if article:
                cleaned = normalize_whitespace(article)
                if cleaned:
                    return cleaned
            logger.debug("Readability returned no article, using page text")
        except Exception as e:
            logger.debug(f"Readability error: {e}")

    try:
        return normalize_whitespace(document.rendered_text() or "")
    except Exception as e:
        logger.error(f"Page text extraction failed: {e}")
        return ""
