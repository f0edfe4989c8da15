"""Article extraction: readability-lxml first, trafilatura as a second opinion.

:func:`extract_article` returns ``None`` when neither library finds enough
text, and raises :class:`~markdown_maker.errors.ExtractionError` when both
libraries fail outright.  Either way the pipeline falls back to
:func:`~markdown_maker.extractors.main_content.select_main_content`.
"""

from __future__ import annotations

import logging
from typing import NamedTuple

from bs4 import BeautifulSoup

from markdown_maker.config import PipelineConfig
from markdown_maker.errors import ExtractionError

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG = PipelineConfig()

# readability's placeholder when the page has no <title>
_NO_TITLE = "[no-title]"


class ExtractedArticle(NamedTuple):
    title: str | None
    content: str
    method: str   # "readability" | "trafilatura"


def count_words(html: str) -> int:
    try:
        soup = BeautifulSoup(html, "lxml")
    except Exception:
        return 0
    return len(soup.get_text(separator=" ").split())


def _clean_title(title: str | None) -> str | None:
    if not title:
        return None
    title = title.strip()
    if not title or title == _NO_TITLE:
        return None
    return title


def _run_readability(html: str, url: str) -> ExtractedArticle:
    from readability import Document  # type: ignore[import-untyped]

    doc = Document(html, url=url or None)
    content = doc.summary(html_partial=True)
    return ExtractedArticle(
        title=_clean_title(doc.short_title()),
        content=content or "",
        method="readability",
    )


def _run_trafilatura(html: str, url: str) -> ExtractedArticle:
    import trafilatura  # type: ignore[import-untyped]

    content = trafilatura.extract(
        html,
        url=url or None,
        output_format="html",
        include_links=True,
        include_images=True,
        include_tables=True,
        favor_recall=True,
    )
    title = None
    if content:
        meta = trafilatura.extract_metadata(html, default_url=url or None)
        title = _clean_title(getattr(meta, "title", None))
    return ExtractedArticle(title=title, content=content or "", method="trafilatura")


def extract_article(
    html: str,
    url: str = "",
    *,
    config: PipelineConfig | None = None,
) -> ExtractedArticle | None:
    """Extract the article title and content HTML from *html*.

    Both extractors run; a result counts only if it reaches its minimum word
    count.  When both qualify, trafilatura is preferred only if it yields at
    least ``trafilatura_preference_ratio`` times as many words (readability
    tends to fixate on one block of multi-section pages).

    Raises:
        ExtractionError: When both extractors raised.
    """
    cfg = config or _DEFAULT_CONFIG
    failures: list[str] = []

    r_result: ExtractedArticle | None = None
    try:
        r_result = _run_readability(html, url)
    except Exception as exc:
        logger.debug("readability failed for %s: %s", url, exc)
        failures.append(f"readability: {exc}")

    t_result: ExtractedArticle | None = None
    try:
        t_result = _run_trafilatura(html, url)
    except Exception as exc:
        logger.debug("trafilatura failed for %s: %s", url, exc)
        failures.append(f"trafilatura: {exc}")

    if len(failures) == 2:
        raise ExtractionError("; ".join(failures))

    r_wc = count_words(r_result.content) if r_result and r_result.content else 0
    t_wc = count_words(t_result.content) if t_result and t_result.content else 0
    logger.debug("readability=%d words  trafilatura=%d words  url=%s", r_wc, t_wc, url)

    r_ok = r_result is not None and r_wc >= cfg.readability_min_words
    t_ok = t_result is not None and t_wc >= cfg.trafilatura_min_words

    if r_ok and t_ok:
        assert r_result is not None and t_result is not None
        if t_wc >= r_wc * cfg.trafilatura_preference_ratio:
            return t_result._replace(title=t_result.title or r_result.title)
        return r_result._replace(title=r_result.title or t_result.title)
    if r_ok:
        return r_result
    if t_ok:
        return t_result
    return None
