"""Tests for markdown_maker.extractors.main_content."""

from __future__ import annotations

from markdown_maker.extractors.main_content import (
    extract_page_title,
    select_main_content,
    visible_text_length,
)


def _text(n: int, word: str = "lorem") -> str:
    out = " ".join([word] * (n // (len(word) + 1) + 1))
    return out[:n]


def _page(body: str, title: str | None = None) -> str:
    head = f"<head><title>{title}</title></head>" if title else "<head></head>"
    return f"<html>{head}<body>{body}</body></html>"


class TestSelectMainContent:
    def test_short_article_loses_to_long_content_block(self):
        html = _page(
            f"<article><p>{_text(50, 'short')}</p></article>"
            f'<div class="content"><p>{_text(300, "long")}</p></div>',
        )
        main = select_main_content(html)
        assert main.selector == ".content"
        assert "long" in main.html
        assert "short" not in main.html

    def test_qualifying_article_beats_larger_wrapper(self):
        html = _page(
            f"<article><p>{_text(200, 'article')}</p></article>"
            f'<div class="content"><p>{_text(600, "wrapper")}</p></div>',
        )
        main = select_main_content(html)
        assert main.selector == "article"
        assert "article" in main.html

    def test_longest_match_within_tier(self):
        html = _page(
            f"<article><p>{_text(150, 'first')}</p></article>"
            f"<article><p>{_text(400, 'second')}</p></article>",
        )
        main = select_main_content(html)
        assert main.selector == "article"
        assert "second" in main.html
        assert "first" not in main.html

    def test_body_fallback(self):
        html = _page("<div><h1>Hi</h1><p>World</p></div>")
        main = select_main_content(html)
        assert main.selector is None
        assert main.html == "<div><h1>Hi</h1><p>World</p></div>"

    def test_scripts_do_not_count_as_text(self):
        html = _page(f"<main><script>{_text(500, 'code')}</script><p>tiny</p></main>")
        assert select_main_content(html).selector is None

    def test_custom_selectors_and_threshold(self):
        html = _page('<section class="docs"><p>Ten chars!</p></section>')
        main = select_main_content(html, selectors=(".docs",), min_chars=5)
        assert main.selector == ".docs"

    def test_invalid_selector_skipped(self):
        html = _page(f"<main><p>{_text(200)}</p></main>")
        main = select_main_content(html, selectors=("[[[", "main"))
        assert main.selector == "main"

    def test_title_independent_of_selection(self, article_html):
        main = select_main_content(article_html)
        assert main.title == "Understanding Connection Pools"
        assert main.selector == "article"


class TestExtractPageTitle:
    def test_title_tag(self):
        assert extract_page_title(_page("<h1>Heading</h1>", title="  Page Title ")) == "Page Title"

    def test_falls_back_to_h1(self):
        assert extract_page_title(_page("<h1>Hi</h1><p>World</p>")) == "Hi"

    def test_none_when_missing(self):
        assert extract_page_title(_page("<p>No headings</p>")) is None
        assert extract_page_title("") is None


def test_visible_text_length_collapses_whitespace():
    from bs4 import BeautifulSoup

    el = BeautifulSoup("<div>  a \n\n  b   c  </div>", "lxml").find("div")
    assert visible_text_length(el) == len("a b c")
