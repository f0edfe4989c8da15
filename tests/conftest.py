"""Shared pytest fixtures."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from markdown_maker.config import PipelineConfig
from markdown_maker.items import FetchResult, FetchStrategy, PageRecord

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def _read_fixture(name: str) -> str:
    return (FIXTURES_DIR / name).read_text(encoding="utf-8")


@pytest.fixture
def article_html() -> str:
    return _read_fixture("article.html")


@pytest.fixture
def blocked_html() -> str:
    return _read_fixture("blocked.html")


@pytest.fixture
def config() -> PipelineConfig:
    return PipelineConfig()


def make_fetch_result(
    html: str | None,
    *,
    url: str = "https://example.test/a",
    status_code: int | None = 200,
    strategy: FetchStrategy = FetchStrategy.FAST,
    title: str | None = None,
) -> FetchResult:
    return FetchResult(
        url=url,
        status_code=status_code,
        html=html,
        strategy=strategy,
        title=title,
        final_url=url,
    )


def make_record(url: str, *, success: bool = True) -> PageRecord:
    if success:
        return PageRecord(url=url, title="T", markdown="# T")
    return PageRecord(url=url, title="Error", markdown="# Error", success=False,
                      error_message="boom")


@pytest.fixture
def fake_pipeline() -> MagicMock:
    """Pipeline double whose ``process`` succeeds for every URL."""
    pipeline = MagicMock()
    pipeline.process.side_effect = lambda url: make_record(url)
    return pipeline
