"""URL resolution and normalization utilities."""

from __future__ import annotations

from urllib.parse import ParseResult, parse_qsl, urlencode, urljoin, urlparse, urlunparse

# References that never point at fetchable content
_SKIP_PREFIXES: tuple[str, ...] = ("#", "mailto:", "javascript:", "tel:")

_ALLOWED_SCHEMES: frozenset[str] = frozenset({"http", "https"})

_DEFAULT_PORTS: dict[str, int] = {"http": 80, "https": 443}


def resolve_url(value: str | None, base_url: str) -> str | None:
    """Resolve *value* against *base_url*, or return ``None`` if it must be left alone.

    ``None`` is returned for empty values, in-page anchors, ``mailto:``,
    ``javascript:`` and ``tel:`` references, unparsable values, and any
    result whose scheme is not http/https (``data:``, ``file:``, ``ftp:``…).
    """
    if not value:
        return None
    trimmed = value.strip()
    if not trimmed or trimmed.lower().startswith(_SKIP_PREFIXES):
        return None
    try:
        resolved = urljoin(base_url, trimmed)
        scheme = urlparse(resolved).scheme.lower()
    except ValueError:
        return None
    if scheme not in _ALLOWED_SCHEMES:
        return None
    return resolved


def split_srcset(srcset: str) -> list[tuple[str, str]]:
    """Split a ``srcset`` value into ``(url, descriptors)`` candidates.

    Follows the HTML candidate parsing rules: a URL is a run of
    non-whitespace (so commas inside ``data:`` URLs stay put) and only a
    comma after the descriptors, or trailing the URL itself, separates
    candidates.
    """
    candidates: list[tuple[str, str]] = []
    pos, end = 0, len(srcset)
    while pos < end:
        while pos < end and (srcset[pos].isspace() or srcset[pos] == ","):
            pos += 1
        if pos >= end:
            break

        start = pos
        while pos < end and not srcset[pos].isspace():
            pos += 1
        url = srcset[start:pos]
        if url.endswith(","):
            candidates.append((url.rstrip(","), ""))
            continue

        start, depth = pos, 0
        while pos < end:
            char = srcset[pos]
            if char == "(":
                depth += 1
            elif char == ")" and depth:
                depth -= 1
            elif char == "," and not depth:
                break
            pos += 1
        candidates.append((url, srcset[start:pos].strip()))
        pos += 1
    return candidates


def rewrite_srcset(srcset: str, base_url: str) -> str:
    """Absolutize every URL in a ``srcset`` list.

    Each candidate keeps its descriptor (``2x``, ``640w``) verbatim.
    Candidates whose URL cannot be resolved (``data:`` and friends) are kept
    as they are, so the number of candidates never changes.
    """
    entries: list[str] = []
    for url, descriptor in split_srcset(srcset):
        absolute = resolve_url(url, base_url) or url
        entries.append(f"{absolute} {descriptor}" if descriptor else absolute)
    return ", ".join(entries)


def normalize_url(url: str) -> str:
    """Return a canonical form of *url* suitable for deduplication.

    Transformations applied:
    - Lowercase scheme and host
    - Remove default ports
    - Strip URL fragment
    - Sort query parameters
    """
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return url

    scheme = parsed.scheme.lower()
    netloc = parsed.netloc.lower()

    if ":" in netloc:
        host, _, port_str = netloc.rpartition(":")
        if port_str.isdigit() and _DEFAULT_PORTS.get(scheme) == int(port_str):
            netloc = host

    query = urlencode(sorted(parse_qsl(parsed.query, keep_blank_values=True)))

    normalized = ParseResult(
        scheme=scheme,
        netloc=netloc,
        path=parsed.path or "/",
        params=parsed.params,
        query=query,
        fragment="",
    )
    return urlunparse(normalized)
