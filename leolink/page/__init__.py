"""
Leo Link Page Module
====================
Page-side logic that runs against a PageDocument snapshot.

- document: PageDocument / ElementLayout, the page context handle
- resolver: selector-or-label -> element
- ranker: visible interactive elements, scored and capped
- extractor: readable text with a rendered-text fallback
"""

from .document import PageDocument, ElementLayout, REF_ATTR
from .resolver import resolve_element, RESOLVER_CANDIDATES
from .ranker import rank_elements, score_element, ElementDescriptor, RANKER_CANDIDATES, MAX_ELEMENTS
from .extractor import extract_text, normalize_whitespace, readability_text
