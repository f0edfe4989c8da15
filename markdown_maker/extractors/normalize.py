"""Content normalization: strip noise elements and absolutize references.

The output of :func:`normalize_html` is what the Markdown renderer sees, so
every link and media reference in the final document is absolute.
Running it on its own output changes nothing.
"""

from __future__ import annotations

import logging
import re

from bs4 import BeautifulSoup, Tag

from markdown_maker.config import PipelineConfig
from markdown_maker.extractors.urlnorm import resolve_url, rewrite_srcset
from markdown_maker.items import NormalizedFragment

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG = PipelineConfig()

# lxml re-parents <template> children into the document body, so decompose()
# on the parsed tag would leave them behind.  Strip the raw markup first.
_TEMPLATE_RE = re.compile(r"<template\b[^>]*>.*?</template>", re.DOTALL | re.IGNORECASE)

_TOKEN_SPLIT_RE = re.compile(r"[-_]+")

# (tag, attribute) pairs holding a single URL
_URL_ATTRIBUTES: tuple[tuple[str, str], ...] = (
    ("a", "href"),
    ("link", "href"),
    ("img", "src"),
    ("source", "src"),
    ("video", "src"),
    ("audio", "src"),
    ("track", "src"),
    ("embed", "src"),
)

_SRCSET_TAGS: tuple[str, ...] = ("img", "source")


def normalize_html(
    html: str,
    base_url: str,
    *,
    config: PipelineConfig | None = None,
) -> NormalizedFragment:
    """Strip non-content elements from *html* and absolutize its references.

    Args:
        html:     HTML document or fragment.
        base_url: URL the fragment was fetched from; relative references
                  are resolved against it.
        config:   Supplies the noise denylist (defaults to the built-in one).

    Returns:
        :class:`NormalizedFragment` holding the inner HTML of ``<body>``
        (or the whole serialization when there is no body).
    """
    cfg = config or _DEFAULT_CONFIG
    if not html or not html.strip():
        return NormalizedFragment(html="")

    soup = BeautifulSoup(_TEMPLATE_RE.sub("", html), "lxml")

    _strip_non_content(soup, cfg)
    _strip_noise(soup, cfg)
    _absolutize(soup, base_url)

    body = soup.find("body")
    if isinstance(body, Tag):
        return NormalizedFragment(html=body.decode_contents())
    return NormalizedFragment(html=str(soup))


# ---------------------------------------------------------------------------
# Step 1: tags that never render
# ---------------------------------------------------------------------------

def _strip_non_content(soup: BeautifulSoup, cfg: PipelineConfig) -> None:
    for el in soup.find_all(list(cfg.non_content_tags)):
        if not el.decomposed:
            el.decompose()


# ---------------------------------------------------------------------------
# Step 2: structural noise (navigation, ads, social, comments, cookies…)
# ---------------------------------------------------------------------------

def _class_id_tokens(el: Tag) -> set[str]:
    """Return lowercased class/id values plus their -/_ delimited parts."""
    values = list(el.get("class") or [])
    el_id = el.get("id")
    if el_id:
        values.append(str(el_id))

    tokens: set[str] = set()
    for value in values:
        value = value.lower()
        tokens.add(value)
        tokens.update(p for p in _TOKEN_SPLIT_RE.split(value) if p)
    return tokens


def is_noise_element(
    el: Tag,
    cfg: PipelineConfig = _DEFAULT_CONFIG,
    *,
    match_tokens: bool = True,
) -> bool:
    """Return ``True`` if *el* matches the noise denylist.

    With ``match_tokens=False`` only the tag name and ARIA role are checked.
    """
    if el.name in cfg.noise_tags:
        return True
    role = str(el.get("role") or "").lower()
    if role and role in cfg.noise_roles:
        return True
    if not match_tokens or el.name in cfg.token_match_exempt_tags:
        return False
    return not _class_id_tokens(el).isdisjoint(cfg.noise_tokens)


def _content_containers(soup: BeautifulSoup, cfg: PipelineConfig) -> set[int]:
    """Ids of elements exempt from class/id token matching.

    These are the fragment's own root (the sole element under ``<body>``) and
    anything matching a main-content selector.  State classes such as
    ``has-sidebar`` on a content wrapper must not remove the content itself.
    """
    keep: set[int] = set()
    body = soup.find("body")
    if isinstance(body, Tag):
        children = body.find_all(True, recursive=False)
        if len(children) == 1:
            keep.add(id(children[0]))
    for selector in cfg.content_selectors:
        try:
            keep.update(id(el) for el in soup.select(selector))
        except Exception as exc:
            logger.debug("Content selector %r failed: %s", selector, exc)
    return keep


def _strip_noise(soup: BeautifulSoup, cfg: PipelineConfig) -> None:
    for selector in cfg.cookie_consent_selectors:
        try:
            matches = soup.select(selector)
        except Exception as exc:
            logger.debug("Cookie-consent selector %r failed: %s", selector, exc)
            continue
        for el in matches:
            if not el.decomposed:
                el.decompose()

    containers = _content_containers(soup, cfg)
    removed = 0
    for el in soup.find_all(True):
        if el.decomposed or not isinstance(el, Tag):
            continue
        if is_noise_element(el, cfg, match_tokens=id(el) not in containers):
            el.decompose()
            removed += 1
    if removed:
        logger.debug("Removed %d noise element(s)", removed)


# ---------------------------------------------------------------------------
# Step 3: absolutize references
# ---------------------------------------------------------------------------

def _absolutize(soup: BeautifulSoup, base_url: str) -> None:
    for tag_name, attr in _URL_ATTRIBUTES:
        for el in soup.find_all(tag_name, attrs={attr: True}):
            resolved = resolve_url(str(el.get(attr)), base_url)
            if resolved is not None:
                el[attr] = resolved

    for el in soup.find_all(list(_SRCSET_TAGS), attrs={"srcset": True}):
        srcset = str(el.get("srcset") or "")
        if srcset.strip():
            el["srcset"] = rewrite_srcset(srcset, base_url)
