"""Tests for markdown_maker.extractors.article."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from markdown_maker.config import PipelineConfig
from markdown_maker.errors import ExtractionError
from markdown_maker.extractors.article import ExtractedArticle, count_words, extract_article

READABILITY = "markdown_maker.extractors.article._run_readability"
TRAFILATURA = "markdown_maker.extractors.article._run_trafilatura"


def _words(n: int) -> str:
    return "<p>" + " ".join(f"w{i}" for i in range(n)) + "</p>"


def _readability(n: int, title: str | None = "R title") -> ExtractedArticle:
    return ExtractedArticle(title=title, content=_words(n), method="readability")


def _trafilatura(n: int, title: str | None = "T title") -> ExtractedArticle:
    return ExtractedArticle(title=title, content=_words(n), method="trafilatura")


def test_count_words():
    assert count_words("<div><p>one two</p><p>three</p></div>") == 3
    assert count_words("") == 0


class TestExtractArticle:
    def test_readability_preferred_when_close(self):
        with patch(READABILITY, return_value=_readability(100)), \
             patch(TRAFILATURA, return_value=_trafilatura(120)):
            result = extract_article("<html></html>", "https://example.test/a")
        assert result is not None
        assert result.method == "readability"

    def test_trafilatura_wins_with_enough_extra_words(self):
        with patch(READABILITY, return_value=_readability(100)), \
             patch(TRAFILATURA, return_value=_trafilatura(140)):
            result = extract_article("<html></html>")
        assert result is not None
        assert result.method == "trafilatura"

    def test_title_borrowed_from_other_extractor(self):
        with patch(READABILITY, return_value=_readability(100, title="Readable")), \
             patch(TRAFILATURA, return_value=_trafilatura(300, title=None)):
            result = extract_article("<html></html>")
        assert result is not None
        assert result.method == "trafilatura"
        assert result.title == "Readable"

    def test_below_thresholds_returns_none(self):
        with patch(READABILITY, return_value=_readability(49)), \
             patch(TRAFILATURA, return_value=_trafilatura(29)):
            assert extract_article("<html></html>") is None

    def test_trafilatura_alone(self):
        with patch(READABILITY, return_value=_readability(10)), \
             patch(TRAFILATURA, return_value=_trafilatura(30)):
            result = extract_article("<html></html>")
        assert result is not None
        assert result.method == "trafilatura"

    def test_one_extractor_failing_is_tolerated(self):
        with patch(READABILITY, side_effect=ValueError("unparseable")), \
             patch(TRAFILATURA, return_value=_trafilatura(80)):
            result = extract_article("<html></html>")
        assert result is not None
        assert result.method == "trafilatura"

    def test_both_failing_raises(self):
        with patch(READABILITY, side_effect=ValueError("r broke")), \
             patch(TRAFILATURA, side_effect=RuntimeError("t broke")):
            with pytest.raises(ExtractionError, match="r broke"):
                extract_article("<html></html>")

    def test_thresholds_come_from_config(self):
        cfg = PipelineConfig(readability_min_words=5, trafilatura_min_words=500)
        with patch(READABILITY, return_value=_readability(6)), \
             patch(TRAFILATURA, return_value=_trafilatura(100)):
            result = extract_article("<html></html>", config=cfg)
        assert result is not None
        assert result.method == "readability"

    def test_real_extractors_on_article(self, article_html):
        result = extract_article(article_html, "https://example.test/blog/connection-pools")
        assert result is not None
        assert result.method in ("readability", "trafilatura")
        assert "connection pool" in result.content.lower()
