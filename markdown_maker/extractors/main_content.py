"""Main-content selection by prioritised CSS selectors.

Used when the article extractor yields nothing.  Selectors are tried in
priority order; the first tier with a qualifying match wins and, within that
tier, the element with the most visible text is chosen.  A semantic
``<article>`` therefore beats a larger ``.content`` wrapper, but only when
the article itself carries enough text.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from typing import NamedTuple

from bs4 import BeautifulSoup, Tag

from markdown_maker.settings import CONTENT_SELECTORS, MIN_CONTENT_CHARS

logger = logging.getLogger(__name__)

# Text inside these is never visible
_INVISIBLE_TAGS: tuple[str, ...] = ("script", "style", "noscript", "template")

_WHITESPACE_RE = re.compile(r"\s+")


class MainContent(NamedTuple):
    html: str
    title: str | None
    selector: str | None   # None when falling back to the full body


def visible_text_length(el: Tag) -> int:
    """Length of the whitespace-collapsed text of *el*."""
    return len(_WHITESPACE_RE.sub(" ", el.get_text(separator=" ")).strip())


def _title_from_soup(soup: BeautifulSoup) -> str | None:
    t = soup.find("title")
    if isinstance(t, Tag):
        title = t.get_text().strip()
        if title:
            return title
    h1 = soup.find("h1")
    if isinstance(h1, Tag):
        title = _WHITESPACE_RE.sub(" ", h1.get_text()).strip()
        if title:
            return title
    return None


def extract_page_title(html: str) -> str | None:
    """Return the trimmed ``<title>`` text, else the first ``<h1>``, else ``None``."""
    if not html:
        return None
    return _title_from_soup(BeautifulSoup(html, "lxml"))


def select_main_content(
    html: str,
    *,
    selectors: Sequence[str] = CONTENT_SELECTORS,
    min_chars: int = MIN_CONTENT_CHARS,
) -> MainContent:
    """Locate the sub-tree most likely to hold the page's primary content.

    Args:
        html:      Full-page HTML.
        selectors: Content-container selectors, most specific first.
        min_chars: Minimum visible-text length for a match to qualify.

    Returns:
        :class:`MainContent` with the chosen element's HTML, the page title
        (independent of the selection), and the winning selector.
    """
    soup = BeautifulSoup(html or "", "lxml")
    title = _title_from_soup(soup)

    for el in soup.find_all(list(_INVISIBLE_TAGS)):
        if not el.decomposed:
            el.decompose()

    for selector in selectors:
        try:
            elements = soup.select(selector)
        except Exception as exc:
            logger.debug("CSS selector %r failed: %s", selector, exc)
            continue

        best: Tag | None = None
        best_len = min_chars
        for el in elements:
            length = visible_text_length(el)
            if length > best_len:
                best, best_len = el, length

        if best is not None:
            logger.debug("Main content: %r matched with %d chars", selector, best_len)
            return MainContent(html=str(best), title=title, selector=selector)

    logger.debug("Main content: no selector qualified, using full body")
    body = soup.find("body")
    if isinstance(body, Tag):
        return MainContent(html=body.decode_contents(), title=title, selector=None)
    return MainContent(html=str(soup), title=title, selector=None)
