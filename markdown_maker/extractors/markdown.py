"""Convert normalized HTML to Markdown and assemble the output documents."""

from __future__ import annotations

import logging
import re
from typing import Any

from markdownify import MarkdownConverter  # type: ignore[import-untyped]

from markdown_maker.errors import RenderError

logger = logging.getLogger(__name__)

_EXCESSIVE_BLANK_LINES_RE = re.compile(r"\n{3,}")
_TRAILING_WHITESPACE_RE = re.compile(r"[ \t]+$", re.MULTILINE)


def _detect_lang(el: object) -> str:
    """Extract language hint from an element's class list for markdownify."""
    getter = getattr(el, "get", None)
    classes = (getter("class") if getter else None) or []
    for cls in classes:
        if isinstance(cls, str) and cls.startswith("language-"):
            return cls[len("language-"):]
    return ""


class PageMarkdownConverter(MarkdownConverter):
    """markdownify converter with GitHub-flavoured strikethrough and
    newline-delimited tables."""

    def convert_del(self, el: Any, text: str, *args: Any, **kwargs: Any) -> str:
        stripped = text.strip()
        if not stripped:
            return text
        prefix = text[: len(text) - len(text.lstrip())]
        suffix = text[len(text.rstrip()):]
        return f"{prefix}~~{stripped}~~{suffix}"

    convert_s = convert_del
    convert_strike = convert_del

    def convert_table(self, el: Any, text: str, *args: Any, **kwargs: Any) -> str:
        return "\n" + text.strip("\n") + "\n"


# Shared read-only rule set; a converter is built per call.
MARKDOWN_OPTIONS: dict[str, Any] = {
    "heading_style": "ATX",
    "bullets": "*",
    "code_language_callback": _detect_lang,
}


def render_markdown(html: str) -> str:
    """Convert *html* to Markdown.

    ATX headings, ``*`` bullets, fenced code blocks, ``---`` rules,
    ``~~strikethrough~~`` and pipe tables.  Post-processing strips trailing
    whitespace and collapses runs of blank lines.

    Raises:
        RenderError: If the converter fails on the input.
    """
    if not html or not html.strip():
        return ""

    try:
        md = PageMarkdownConverter(**MARKDOWN_OPTIONS).convert(html)
    except Exception as exc:
        raise RenderError(f"Markdown conversion failed: {exc}") from exc

    md = _TRAILING_WHITESPACE_RE.sub("", md)
    md = _EXCESSIVE_BLANK_LINES_RE.sub("\n\n", md)
    return md.strip()


def format_page_markdown(title: str, url: str, content_markdown: str) -> str:
    """Render the final page document."""
    lines = [
        f"# {title}",
        "",
        f"**URL Source:** {url}",
        "",
        "---",
        "",
        content_markdown,
    ]
    return "\n".join(lines)


def format_error_markdown(url: str, message: str) -> str:
    """Render the document stored for a page that could not be processed."""
    return f"# Error Processing Page\n\n**URL:** {url}\n\n**Error:** {message}"
