"""Extraction sub-package: block detection, content selection, normalization, rendering."""

from .article import extract_article
from .block_detection import detect_block, is_blocked
from .main_content import extract_page_title, select_main_content
from .markdown import format_error_markdown, format_page_markdown, render_markdown
from .normalize import normalize_html
from .urlnorm import normalize_url, resolve_url, rewrite_srcset

__all__ = [
    "detect_block",
    "extract_article",
    "extract_page_title",
    "format_error_markdown",
    "format_page_markdown",
    "is_blocked",
    "normalize_html",
    "normalize_url",
    "render_markdown",
    "resolve_url",
    "rewrite_srcset",
    "select_main_content",
]
