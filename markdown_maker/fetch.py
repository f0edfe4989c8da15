"""markdown_maker.fetch - Document Loader.

Two strategies:

  1. fast      - one ``urllib`` GET with browser headers (TLS verification off)
  2. rendered  - a fresh headless Chromium per call via Playwright

:class:`DocumentLoader` always tries the fast strategy first and escalates
to the rendered one when the fast fetch raises or the block detector rejects
its response.  There are no retries here; re-queueing belongs to the caller.

Usage::

    from markdown_maker.fetch import DocumentLoader

    loader = DocumentLoader()
    result = loader.load("https://example.com/blog/post")
    print(result.strategy, result.status_code, len(result.html or ""))
"""

from __future__ import annotations

import contextlib
import gzip
import logging
import ssl
import urllib.error
import urllib.request
import zlib
from collections.abc import Callable, Sequence
from typing import Any
from urllib.parse import urlparse

from markdown_maker.config import PipelineConfig
from markdown_maker.errors import FetchError
from markdown_maker.extractors.block_detection import detect_block
from markdown_maker.items import FetchResult, FetchStrategy
from markdown_maker.proxy import ProxyRotator, playwright_proxy
from markdown_maker.settings import BROWSER_ARGS, FETCH_TIMEOUT, NETWORK_IDLE_TIMEOUT

logger = logging.getLogger(__name__)

FastFetcher = Callable[..., FetchResult]
RenderedFetcher = Callable[..., FetchResult]

_BASE_HEADERS: dict[str, str] = {
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;"
        "q=0.9,image/avif,image/webp,*/*;q=0.8"
    ),
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate",
    "Upgrade-Insecure-Requests": "1",
}


# ---------------------------------------------------------------------------
# Fast strategy
# ---------------------------------------------------------------------------

def _insecure_ssl_context() -> ssl.SSLContext:
    # Content retrieval only: accept self-signed and misconfigured certificates.
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return ctx


def _build_opener(proxy: str | None) -> urllib.request.OpenerDirector:
    handlers: list[urllib.request.BaseHandler] = [
        urllib.request.HTTPSHandler(context=_insecure_ssl_context()),
    ]
    if proxy:
        handlers.append(urllib.request.ProxyHandler({"http": proxy, "https": proxy}))
    return urllib.request.build_opener(*handlers)


def _decode_response_body(raw: bytes, headers: Any, url: str) -> str:
    encoding = ""
    if headers is not None:
        encoding = str(headers.get("Content-Encoding", "") or "").lower().strip()

    try:
        if encoding == "gzip":
            raw = gzip.decompress(raw)
        elif encoding in ("deflate", "zlib"):
            raw = zlib.decompress(raw)
    except (OSError, zlib.error) as exc:
        raise FetchError(f"{encoding} decompression failed for {url}: {exc}", url=url) from exc
    if encoding == "br":
        raise FetchError(f"Brotli-encoded response from {url}", url=url)

    charset = "utf-8"
    if headers is not None:
        charset = headers.get_content_charset("utf-8") or "utf-8"
    try:
        return raw.decode(charset, errors="replace")
    except LookupError:
        return raw.decode("utf-8", errors="replace")


def fetch_fast(
    url: str,
    *,
    timeout: float = FETCH_TIMEOUT,
    proxy: str | None = None,
    user_agent: str | None = None,
) -> FetchResult:
    """Fetch *url* with a single plain HTTP GET.

    HTTP error responses (4xx/5xx) are returned, not raised, so the block
    detector can judge them.

    Raises:
        FetchError: On unsupported schemes, network errors, timeouts and
            undecodable bodies.
    """
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        raise FetchError(f"Unsupported URL scheme: {parsed.scheme!r}", url=url)

    headers = dict(_BASE_HEADERS)
    if user_agent:
        headers["User-Agent"] = user_agent
    req = urllib.request.Request(url, headers=headers)

    try:
        with _build_opener(proxy).open(req, timeout=timeout) as resp:
            body = _decode_response_body(resp.read(), resp.headers, url)
            return FetchResult(
                url=url,
                status_code=resp.status,
                html=body,
                strategy=FetchStrategy.FAST,
                final_url=resp.geturl(),
            )
    except urllib.error.HTTPError as exc:
        body = ""
        try:
            raw = exc.read()
            if raw:
                body = _decode_response_body(raw, exc.headers, url)
        except (OSError, FetchError) as read_exc:
            logger.debug("Could not read HTTP %d body from %s: %s", exc.code, url, read_exc)
        finally:
            with contextlib.suppress(Exception):
                exc.close()
        return FetchResult(
            url=url,
            status_code=exc.code,
            html=body,
            strategy=FetchStrategy.FAST,
        )
    except urllib.error.URLError as exc:
        raise FetchError(f"URL error fetching {url}: {exc.reason}", url=url) from exc
    except OSError as exc:
        # TimeoutError, ConnectionResetError, ssl.SSLError…
        raise FetchError(f"Network error fetching {url}: {exc}", url=url) from exc


# ---------------------------------------------------------------------------
# Rendered strategy
# ---------------------------------------------------------------------------

def fetch_rendered(
    url: str,
    *,
    timeout: float = FETCH_TIMEOUT,
    network_idle_timeout: float = NETWORK_IDLE_TIMEOUT,
    proxy: str | None = None,
    user_agent: str | None = None,
    browser_args: Sequence[str] = BROWSER_ARGS,
) -> FetchResult:
    """Fetch *url* through a headless Chromium launched for this call only.

    Navigation waits for DOM ready (a timeout here is fatal), then waits on
    a best-effort basis for network idle (a timeout here is logged and the
    partially loaded page is used).  The browser is closed on every exit path.

    Raises:
        FetchError: If Playwright is missing, the browser cannot start, or
            navigation fails.
    """
    try:
        from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
        from playwright.sync_api import sync_playwright
    except ImportError as exc:
        raise FetchError(
            "rendered fetch requires playwright: pip install playwright && "
            "playwright install chromium",
            url=url,
        ) from exc

    launch_kwargs: dict[str, Any] = {"headless": True, "args": list(browser_args)}
    if proxy:
        launch_kwargs["proxy"] = playwright_proxy(proxy)

    context_kwargs: dict[str, Any] = {
        "ignore_https_errors": True,
        "java_script_enabled": True,
        "viewport": {"width": 1920, "height": 1080},
        "extra_http_headers": {"Accept-Language": _BASE_HEADERS["Accept-Language"]},
    }
    if user_agent:
        context_kwargs["user_agent"] = user_agent

    try:
        with sync_playwright() as p:
            browser = p.chromium.launch(**launch_kwargs)
            try:
                page = browser.new_context(**context_kwargs).new_page()
                response = page.goto(
                    url,
                    timeout=timeout * 1_000,
                    wait_until="domcontentloaded",
                )

                try:
                    page.wait_for_load_state("networkidle", timeout=network_idle_timeout * 1_000)
                except PlaywrightTimeoutError:
                    logger.warning("Network idle timeout for %s, continuing anyway", url)

                title: str | None = None
                try:
                    title = page.title().strip() or None
                except Exception as exc:
                    logger.debug("Could not read page title for %s: %s", url, exc)

                return FetchResult(
                    url=url,
                    status_code=response.status if response is not None else None,
                    html=page.content(),
                    strategy=FetchStrategy.RENDERED,
                    title=title,
                    final_url=page.url,
                )
            finally:
                with contextlib.suppress(Exception):
                    browser.close()
    except Exception as exc:
        raise FetchError(f"Browser error fetching {url}: {exc}", url=url) from exc


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

class DocumentLoader:
    """Fast-then-rendered document loader.

    Args:
        config:           Timeouts, strategy flags and block phrases.
        proxy_rotator:    Optional rotator; one proxy is drawn per
                          :meth:`load` and used for both strategies.
        fast_fetcher:     Replacement for :func:`fetch_fast`.
        rendered_fetcher: Replacement for :func:`fetch_rendered`.
    """

    def __init__(
        self,
        config: PipelineConfig | None = None,
        *,
        proxy_rotator: ProxyRotator | None = None,
        fast_fetcher: FastFetcher | None = None,
        rendered_fetcher: RenderedFetcher | None = None,
    ) -> None:
        self._config = config or PipelineConfig()
        self._rotator = proxy_rotator
        self._fast = fast_fetcher or fetch_fast
        self._rendered = rendered_fetcher or fetch_rendered

    def load(self, url: str) -> FetchResult:
        """Return usable HTML for *url*.

        The rendered result is gated by the same block detector as the fast
        one.  A page whose opening text merely mentions a block phrase
        ("rate limit", "captcha") is therefore a failure when it also trips
        the detector after rendering; the phrase list is tunable through
        ``PipelineConfig.block_phrases`` for sites where that happens.

        Raises:
            FetchError: When every enabled strategy failed or was blocked.
        """
        proxy = self._rotator.next_proxy() if self._rotator else None
        try:
            result = self._load(url, proxy)
        except FetchError:
            if self._rotator and proxy:
                self._rotator.mark_failed(proxy)
            raise
        if self._rotator and proxy:
            self._rotator.mark_success(proxy)
        return result

    def _is_usable(self, result: FetchResult) -> tuple[bool, str | None]:
        block = detect_block(
            result.html,
            status_code=result.status_code,
            phrases=self._config.block_phrases,
            prefix_chars=self._config.block_prefix_chars,
        )
        return not block.is_blocked, block.block_reason

    def _load(self, url: str, proxy: str | None) -> FetchResult:
        cfg = self._config
        reason: str | None = "fast path disabled"

        if cfg.fast_path:
            try:
                result = self._fast(
                    url,
                    timeout=cfg.timeout,
                    proxy=proxy,
                    user_agent=cfg.user_agent,
                )
            except Exception as exc:
                reason = str(exc) or type(exc).__name__
                logger.warning("Fast fetch failed for %s: %s", url, reason)
            else:
                usable, reason = self._is_usable(result)
                if usable:
                    logger.info("Fetched %s (fast, HTTP %s)", url, result.status_code)
                    return result
                logger.warning("Fast fetch of %s looks blocked: %s", url, reason)

            if not cfg.render_fallback:
                raise FetchError(f"Fast fetch unusable for {url}: {reason}", url=url)

        logger.info("Rendering %s in headless browser (%s)", url, reason)
        try:
            result = self._rendered(
                url,
                timeout=cfg.timeout,
                network_idle_timeout=cfg.network_idle_timeout,
                proxy=proxy,
                user_agent=cfg.user_agent,
                browser_args=cfg.browser_args,
            )
        except FetchError:
            raise
        except Exception as exc:
            raise FetchError(f"Browser error fetching {url}: {exc}", url=url) from exc

        usable, block_reason = self._is_usable(result)
        if not usable:
            raise FetchError(
                f"Rendered page for {url} looks blocked: {block_reason}",
                url=url,
                status=result.status_code or 0,
                body=result.html,
            )
        logger.info("Fetched %s (rendered, HTTP %s)", url, result.status_code)
        return result
