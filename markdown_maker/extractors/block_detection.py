"""markdown_maker.extractors.block_detection - Blocked/empty response detector.

Pure-function, no network calls.  Decides whether a fast fetch is usable or
whether the loader should escalate to the rendered strategy.

Usage::

    from markdown_maker.extractors.block_detection import detect_block, is_blocked

    result = detect_block(html, status_code=200)
    if result.is_blocked:
        print(result.block_type, result.block_reason)

    is_blocked(404, html)   # True
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from markdown_maker.settings import BLOCK_PHRASES, BLOCK_PREFIX_CHARS


@dataclass(frozen=True)
class BlockResult:
    """Result of a block-detection check."""

    is_blocked: bool
    block_type: str | None    # "http_error" | "empty" | "block_signal"
    block_reason: str | None  # human-readable description


_NOT_BLOCKED = BlockResult(is_blocked=False, block_type=None, block_reason=None)


def detect_block(
    body: str | None,
    *,
    status_code: int | None = None,
    phrases: Iterable[str] = BLOCK_PHRASES,
    prefix_chars: int = BLOCK_PREFIX_CHARS,
) -> BlockResult:
    """Classify a response as usable or blocked.

    Checks, in order:

    1. ``status_code >= 400``
    2. missing or whitespace-only body
    3. any of *phrases* in the first *prefix_chars* characters (case-insensitive)

    False negatives are expected: a block page that avoids every phrase
    slips through.  A false positive only costs an extra rendered fetch.
    """
    if status_code is not None and status_code >= 400:
        return BlockResult(
            is_blocked=True,
            block_type="http_error",
            block_reason=f"HTTP {status_code}",
        )

    if not body or not body.strip():
        return BlockResult(
            is_blocked=True,
            block_type="empty",
            block_reason="empty response body",
        )

    head = body[:prefix_chars].lower()
    for phrase in phrases:
        if phrase.lower() in head:
            return BlockResult(
                is_blocked=True,
                block_type="block_signal",
                block_reason=f"block signal {phrase!r} in first {prefix_chars} chars",
            )

    return _NOT_BLOCKED


def is_blocked(status_code: int | None, body: str | None) -> bool:
    """Return ``True`` if the response should not be used as page content."""
    return detect_block(body, status_code=status_code).is_blocked
