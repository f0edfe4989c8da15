"""Tests for markdown_maker.fetch (fetchers and DocumentLoader)."""

from __future__ import annotations

import gzip
import io
import urllib.error
from http.client import HTTPMessage
from unittest.mock import MagicMock, patch

import pytest
from conftest import make_fetch_result

from markdown_maker.config import PipelineConfig
from markdown_maker.errors import FetchError
from markdown_maker.fetch import DocumentLoader, fetch_fast, fetch_rendered
from markdown_maker.items import FetchStrategy
from markdown_maker.proxy import ProxyRotator

URL = "https://example.test/a"
GOOD_HTML = "<html><body>" + "<p>Readable page content.</p>" * 20 + "</body></html>"


def _headers(**values: str) -> HTTPMessage:
    msg = HTTPMessage()
    for key, value in values.items():
        msg[key.replace("_", "-")] = value
    return msg


def _opener_returning(body: bytes, headers: HTTPMessage, status: int = 200) -> MagicMock:
    resp = MagicMock()
    resp.read.return_value = body
    resp.headers = headers
    resp.status = status
    resp.geturl.return_value = URL + "/"
    opener = MagicMock()
    opener.open.return_value.__enter__.return_value = resp
    return opener


# ---------------------------------------------------------------------------
# Fast strategy
# ---------------------------------------------------------------------------

class TestFetchFast:
    def test_success(self):
        opener = _opener_returning(b"<p>hi</p>", _headers(Content_Type="text/html; charset=utf-8"))
        with patch("markdown_maker.fetch._build_opener", return_value=opener):
            result = fetch_fast(URL, user_agent="UA/1.0")
        assert result.status_code == 200
        assert result.html == "<p>hi</p>"
        assert result.strategy is FetchStrategy.FAST
        assert result.final_url == URL + "/"
        request = opener.open.call_args.args[0]
        assert request.get_header("User-agent") == "UA/1.0"

    def test_gzip_body_decoded(self):
        opener = _opener_returning(gzip.compress(b"<p>zipped</p>"), _headers(Content_Encoding="gzip"))
        with patch("markdown_maker.fetch._build_opener", return_value=opener):
            assert fetch_fast(URL).html == "<p>zipped</p>"

    def test_http_error_returned_not_raised(self):
        err = urllib.error.HTTPError(URL, 403, "Forbidden", _headers(), io.BytesIO(b"Access denied"))
        opener = MagicMock()
        opener.open.side_effect = err
        with patch("markdown_maker.fetch._build_opener", return_value=opener):
            result = fetch_fast(URL)
        assert result.status_code == 403
        assert result.html == "Access denied"

    def test_network_error_raises(self):
        opener = MagicMock()
        opener.open.side_effect = urllib.error.URLError("name resolution failed")
        with patch("markdown_maker.fetch._build_opener", return_value=opener):
            with pytest.raises(FetchError, match="name resolution failed"):
                fetch_fast(URL)

    def test_timeout_raises(self):
        opener = MagicMock()
        opener.open.side_effect = TimeoutError("timed out")
        with patch("markdown_maker.fetch._build_opener", return_value=opener):
            with pytest.raises(FetchError):
                fetch_fast(URL)

    def test_unsupported_scheme(self):
        with pytest.raises(FetchError, match="scheme"):
            fetch_fast("ftp://example.test/file")

    def test_proxy_passed_to_opener(self):
        opener = _opener_returning(b"<p>hi</p>", _headers())
        with patch("markdown_maker.fetch._build_opener", return_value=opener) as build:
            fetch_fast(URL, proxy="http://proxy.test:8080")
        build.assert_called_once_with("http://proxy.test:8080")


# ---------------------------------------------------------------------------
# Rendered strategy
# ---------------------------------------------------------------------------

def _playwright_mocks():
    page = MagicMock()
    page.goto.return_value.status = 200
    page.content.return_value = GOOD_HTML
    page.title.return_value = " Rendered Title "
    page.url = URL
    browser = MagicMock()
    browser.new_context.return_value.new_page.return_value = page
    p = MagicMock()
    p.chromium.launch.return_value = browser
    manager = MagicMock()
    manager.__enter__.return_value = p
    return manager, p, browser, page


class TestFetchRendered:
    def test_success_closes_browser(self):
        manager, p, browser, page = _playwright_mocks()
        with patch("playwright.sync_api.sync_playwright", return_value=manager):
            result = fetch_rendered(URL, timeout=10, proxy="http://u:pw@proxy.test:8080")
        assert result.strategy is FetchStrategy.RENDERED
        assert result.html == GOOD_HTML
        assert result.title == "Rendered Title"
        assert result.status_code == 200
        browser.close.assert_called_once()

        launch_kwargs = p.chromium.launch.call_args.kwargs
        assert launch_kwargs["headless"] is True
        assert launch_kwargs["proxy"] == {
            "server": "http://proxy.test:8080", "username": "u", "password": "pw",
        }
        assert browser.new_context.call_args.kwargs["ignore_https_errors"] is True
        assert page.goto.call_args.kwargs["wait_until"] == "domcontentloaded"
        assert page.goto.call_args.kwargs["timeout"] == 10_000

    def test_navigation_failure_still_closes_browser(self):
        manager, _, browser, page = _playwright_mocks()
        page.goto.side_effect = RuntimeError("net::ERR_NAME_NOT_RESOLVED")
        with patch("playwright.sync_api.sync_playwright", return_value=manager):
            with pytest.raises(FetchError, match="ERR_NAME_NOT_RESOLVED"):
                fetch_rendered(URL)
        browser.close.assert_called_once()

    def test_network_idle_timeout_is_not_fatal(self):
        from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

        manager, _, browser, page = _playwright_mocks()
        page.wait_for_load_state.side_effect = PlaywrightTimeoutError("idle timeout")
        with patch("playwright.sync_api.sync_playwright", return_value=manager):
            result = fetch_rendered(URL)
        assert result.html == GOOD_HTML
        browser.close.assert_called_once()

    def test_launch_failure(self):
        manager, p, _, _ = _playwright_mocks()
        p.chromium.launch.side_effect = RuntimeError("Executable doesn't exist")
        with patch("playwright.sync_api.sync_playwright", return_value=manager):
            with pytest.raises(FetchError, match="Executable"):
                fetch_rendered(URL)


# ---------------------------------------------------------------------------
# DocumentLoader
# ---------------------------------------------------------------------------

def _loader(fast=None, rendered=None, config=None, rotator=None):
    fast = fast or MagicMock(return_value=make_fetch_result(GOOD_HTML))
    rendered = rendered or MagicMock(
        return_value=make_fetch_result(GOOD_HTML, strategy=FetchStrategy.RENDERED),
    )
    loader = DocumentLoader(
        config or PipelineConfig(),
        proxy_rotator=rotator,
        fast_fetcher=fast,
        rendered_fetcher=rendered,
    )
    return loader, fast, rendered


class TestDocumentLoader:
    def test_usable_fast_result_skips_browser(self):
        loader, fast, rendered = _loader()
        result = loader.load(URL)
        assert result.strategy is FetchStrategy.FAST
        fast.assert_called_once()
        rendered.assert_not_called()

    def test_403_escalates_exactly_once(self):
        fast = MagicMock(return_value=make_fetch_result("Forbidden", status_code=403))
        loader, _, rendered = _loader(fast=fast)
        result = loader.load(URL)
        assert result.strategy is FetchStrategy.RENDERED
        assert rendered.call_count == 1

    def test_block_page_escalates(self, blocked_html):
        fast = MagicMock(return_value=make_fetch_result(blocked_html))
        loader, _, rendered = _loader(fast=fast)
        assert loader.load(URL).strategy is FetchStrategy.RENDERED
        rendered.assert_called_once()

    def test_fast_exception_escalates(self):
        fast = MagicMock(side_effect=FetchError("connection reset"))
        loader, _, rendered = _loader(fast=fast)
        assert loader.load(URL).strategy is FetchStrategy.RENDERED

    def test_unexpected_fast_exception_escalates(self):
        fast = MagicMock(side_effect=UnicodeError("bad bytes"))
        loader, _, rendered = _loader(fast=fast)
        assert loader.load(URL).strategy is FetchStrategy.RENDERED

    def test_render_fallback_disabled(self):
        fast = MagicMock(return_value=make_fetch_result("", status_code=200))
        loader, _, rendered = _loader(fast=fast, config=PipelineConfig(render_fallback=False))
        with pytest.raises(FetchError, match="empty response body"):
            loader.load(URL)
        rendered.assert_not_called()

    def test_fast_path_disabled(self):
        loader, fast, rendered = _loader(config=PipelineConfig(fast_path=False))
        assert loader.load(URL).strategy is FetchStrategy.RENDERED
        fast.assert_not_called()

    def test_rendered_block_page_is_failure(self, blocked_html):
        fast = MagicMock(return_value=make_fetch_result("", status_code=503))
        rendered = MagicMock(
            return_value=make_fetch_result(blocked_html, strategy=FetchStrategy.RENDERED),
        )
        loader, _, _ = _loader(fast=fast, rendered=rendered)
        with pytest.raises(FetchError, match="looks blocked"):
            loader.load(URL)

    def test_phrase_in_article_fails_unless_phrases_tuned(self):
        article = "<html><body><h1>How our API rate limit works</h1>" + GOOD_HTML + "</body></html>"
        fast = MagicMock(return_value=make_fetch_result(article))
        rendered = MagicMock(
            return_value=make_fetch_result(article, strategy=FetchStrategy.RENDERED),
        )
        loader, _, _ = _loader(fast=fast, rendered=rendered)
        with pytest.raises(FetchError, match="rate limit"):
            loader.load(URL)

        tuned = PipelineConfig().replace(
            block_phrases=[p for p in PipelineConfig().block_phrases if p != "rate limit"],
        )
        loader, _, _ = _loader(fast=fast, rendered=rendered, config=tuned)
        assert loader.load(URL).strategy is FetchStrategy.FAST

    def test_both_strategies_failing(self):
        fast = MagicMock(side_effect=FetchError("refused"))
        rendered = MagicMock(side_effect=RuntimeError("browser crashed"))
        loader, _, _ = _loader(fast=fast, rendered=rendered)
        with pytest.raises(FetchError, match="browser crashed"):
            loader.load(URL)

    def test_config_passed_to_fetchers(self):
        cfg = PipelineConfig(timeout=7, network_idle_timeout=3, fast_path=False)
        loader, _, rendered = _loader(config=cfg)
        loader.load(URL)
        kwargs = rendered.call_args.kwargs
        assert kwargs["timeout"] == 7
        assert kwargs["network_idle_timeout"] == 3
        assert kwargs["proxy"] is None

    def test_same_proxy_for_both_strategies(self):
        rotator = ProxyRotator(["http://p1:8080", "http://p2:8080"])
        fast = MagicMock(return_value=make_fetch_result("", status_code=429))
        loader, _, rendered = _loader(fast=fast, rotator=rotator)
        loader.load(URL)
        assert fast.call_args.kwargs["proxy"] == "http://p1:8080"
        assert rendered.call_args.kwargs["proxy"] == "http://p1:8080"

    def test_failed_proxy_marked(self):
        rotator = ProxyRotator(["http://p1:8080"])
        fast = MagicMock(side_effect=FetchError("refused"))
        rendered = MagicMock(side_effect=FetchError("refused"))
        loader, _, _ = _loader(fast=fast, rendered=rendered, rotator=rotator)
        for _ in range(3):
            with pytest.raises(FetchError):
                loader.load(URL)
        assert rotator.has_proxies() is False
        assert rotator.next_proxy() is None
