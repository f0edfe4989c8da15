"""Default settings for markdown_maker.

These values seed :class:`markdown_maker.config.PipelineConfig`.  They are
heuristics tuned by trial, so every list here can be overridden per run via
``--config FILE`` (see ``PipelineConfig.from_file``).
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Fetching
# ---------------------------------------------------------------------------
FETCH_TIMEOUT = 30          # seconds, fast strategy and browser navigation
NETWORK_IDLE_TIMEOUT = 15   # seconds, best-effort wait after DOM ready

FAST_PATH_ENABLED = True
RENDER_FALLBACK_ENABLED = True

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/122.0.0.0 Safari/537.36"
)

BROWSER_ARGS: tuple[str, ...] = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
)

# ---------------------------------------------------------------------------
# Worker pool
# ---------------------------------------------------------------------------
MAX_CONCURRENCY = 8

# ---------------------------------------------------------------------------
# Block detection
# ---------------------------------------------------------------------------
BLOCK_PREFIX_CHARS = 2000

BLOCK_PHRASES: tuple[str, ...] = (
    "access denied",
    "forbidden",
    "captcha",
    "verify you are human",
    "are you a robot",
    "rate limit",
    "too many requests",
    "unusual traffic",
    # Cloudflare challenge markers
    "attention required",
    "just a moment",
    "checking your browser",
    "cf-browser-verification",
    "cf-challenge",
    "challenges.cloudflare.com",
)

# ---------------------------------------------------------------------------
# Content normalization
# ---------------------------------------------------------------------------

# Removed wherever they appear
NON_CONTENT_TAGS: tuple[str, ...] = ("script", "style", "noscript", "iframe", "template")

# Structural noise, matched by tag name
NOISE_TAGS: tuple[str, ...] = ("nav", "header", "footer", "aside")

NOISE_ROLES: tuple[str, ...] = ("navigation", "complementary", "banner", "contentinfo")

# Matched against class/id tokens and their -/_ delimited parts
NOISE_TOKENS: tuple[str, ...] = (
    "nav",
    "navbar",
    "navigation",
    "header",
    "footer",
    "sidebar",
    "ad",
    "ads",
    "advert",
    "advertisement",
    "promo",
    "newsletter",
    "subscribe",
    "share",
    "sharing",
    "social",
    "breadcrumb",
    "breadcrumbs",
    "comment",
    "comments",
    "cookie",
    "consent",
    "gdpr",
    "modal",
    "popup",
)

# Never removed by class/id token matching (page-level wrappers often carry
# state classes such as "has-sidebar" or "comments-open")
TOKEN_MATCH_EXEMPT_TAGS: tuple[str, ...] = ("html", "body", "main", "article")

COOKIE_CONSENT_SELECTORS: tuple[str, ...] = (
    # CookieYes / CookieLawInfo
    ".cky-consent-container", ".cookieyes-modal",
    "#cookie-law-info-bar", ".cli-modal",
    # Cookiebot
    "#CybotCookiebotDialog",
    # OneTrust
    "#onetrust-consent-sdk", "#onetrust-banner-sdk",
    # Complianz
    "#cmplz-cookiebanner-container",
    # Borlabs
    "#BorlabsCookieBox",
    "[aria-label='cookieconsent']",
)

# ---------------------------------------------------------------------------
# Main-content selection
# ---------------------------------------------------------------------------
MIN_CONTENT_CHARS = 120

# Most to least semantically specific
CONTENT_SELECTORS: tuple[str, ...] = (
    "article",
    "main",
    '[role="main"]',
    '[itemprop="articleBody"]',
    ".main-content",
    "#main-content",
    ".content",
    "#content",
    ".post-content",
    ".entry-content",
    ".article-content",
    ".article-body",
    ".post-body",
    ".markdown-body",
    ".documentation",
    ".doc-content",
    ".blog-post",
    ".story-body",
)

# ---------------------------------------------------------------------------
# Article extraction
# ---------------------------------------------------------------------------
READABILITY_MIN_WORDS = 50
TRAFILATURA_MIN_WORDS = 30
# trafilatura replaces readability only when it yields this many times more words
TRAFILATURA_PREFERENCE_RATIO = 1.4

# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------
UNTITLED = "Untitled"
ERROR_TITLE = "Error"
DEFAULT_OUTPUT = "./out/dataset.jsonl"
