"""markdown_maker.pipeline - per-URL orchestration.

load → extract (article extractor, else main-content selector) → normalize
→ render → assemble.  :meth:`PagePipeline.process` never raises: any
failure becomes a :class:`~markdown_maker.items.PageRecord` with
``success=False``.

Usage::

    from markdown_maker import convert

    record = convert("https://example.com/blog/post")
    print(record.title)
    print(record.markdown)
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable
from typing import Any

from markdown_maker.config import PipelineConfig
from markdown_maker.extractors.article import ExtractedArticle, extract_article
from markdown_maker.extractors.main_content import extract_page_title, select_main_content
from markdown_maker.extractors.markdown import (
    format_error_markdown,
    format_page_markdown,
    render_markdown,
)
from markdown_maker.extractors.normalize import normalize_html
from markdown_maker.fetch import DocumentLoader
from markdown_maker.items import ContentFragment, ContentSource, PageRecord
from markdown_maker.settings import ERROR_TITLE, UNTITLED

logger = logging.getLogger(__name__)

ArticleExtractor = Callable[[str, str], ExtractedArticle | None]


def failure_record(url: str, message: str) -> PageRecord:
    """Build the record stored for a URL that could not be processed."""
    return PageRecord(
        url=url,
        title=ERROR_TITLE,
        markdown=format_error_markdown(url, message),
        success=False,
        error_message=message,
    )


class PagePipeline:
    """Turns one URL into one :class:`PageRecord`.

    Args:
        config:    Shared read-only configuration.
        loader:    Document loader (defaults to a :class:`DocumentLoader`
                   built from *config*).
        extractor: ``(html, url) -> ExtractedArticle | None``; defaults to
                   :func:`~markdown_maker.extractors.article.extract_article`.
    """

    def __init__(
        self,
        config: PipelineConfig | None = None,
        *,
        loader: DocumentLoader | None = None,
        extractor: ArticleExtractor | None = None,
    ) -> None:
        self._config = config or PipelineConfig()
        self._loader = loader or DocumentLoader(self._config)
        self._extractor = extractor or functools.partial(extract_article, config=self._config)

    def process(self, url: str) -> PageRecord:
        """Fetch and convert *url*; failures are returned as failure records."""
        logger.info("Processing: %s", url)
        try:
            return self._process(url)
        except Exception as exc:
            message = str(exc) or type(exc).__name__
            logger.error("Failed to process %s: %s", url, message)
            return failure_record(url, message)

    def _process(self, url: str) -> PageRecord:
        fetched = self._loader.load(url)
        html = fetched.html or ""
        base_url = fetched.final_url or url

        fragment = self.extract_content(html, url, fallback_title=fetched.title)
        normalized = normalize_html(fragment.html, base_url, config=self._config)
        body = render_markdown(normalized.html)

        title = fragment.title or UNTITLED
        if fragment.source is ContentSource.ARTICLE_EXTRACTOR:
            logger.info("Extracted article content from: %s", url)
        else:
            logger.info("Converted main content (%s) from: %s", fragment.method, url)

        return PageRecord(
            url=url,
            title=title,
            markdown=format_page_markdown(title, url, body),
            success=True,
            fetch_strategy=fetched.strategy.value,
            extraction_method=fragment.method,
        )

    def extract_content(
        self,
        html: str,
        url: str,
        *,
        fallback_title: str | None = None,
    ) -> ContentFragment:
        """Choose the content fragment of *html*.

        The article extractor's result is authoritative when it has content.
        Extractor errors are logged and absorbed; the main-content selector
        handles both that case and an empty result.
        """
        article: ExtractedArticle | None = None
        try:
            article = self._extractor(html, url)
        except Exception as exc:
            logger.warning(
                "Article extraction failed for %s (%s), falling back to main content",
                url, exc,
            )

        if article is not None and article.content and article.content.strip():
            return ContentFragment(
                html=article.content,
                title=article.title or fallback_title or extract_page_title(html),
                source=ContentSource.ARTICLE_EXTRACTOR,
                method=article.method,
            )

        main = select_main_content(
            html,
            selectors=self._config.content_selectors,
            min_chars=self._config.min_content_chars,
        )
        return ContentFragment(
            html=main.html,
            title=fallback_title or main.title,
            source=ContentSource.MAIN_CONTENT_SELECTOR,
            method=f"selector:{main.selector}" if main.selector else "body",
        )


def convert(url: str, *, config: PipelineConfig | None = None, **overrides: Any) -> PageRecord:
    """Convert a single *url* into a :class:`PageRecord`.

    Keyword *overrides* are applied on top of *config* (for example
    ``convert(url, fast_path=False)`` renders in the browser straight away).
    """
    cfg = (config or PipelineConfig()).replace(**overrides) if overrides else config
    return PagePipeline(cfg).process(url)
