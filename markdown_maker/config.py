"""Run configuration.

:class:`PipelineConfig` is built once before any URL is processed and shared
read-only by every worker.  Defaults come from :mod:`markdown_maker.settings`.

Usage::

    from markdown_maker.config import PipelineConfig

    config = PipelineConfig()                          # defaults
    config = PipelineConfig.from_file("tuning.json")   # JSON overrides
    config = config.replace(max_concurrency=2)
"""

from __future__ import annotations

import dataclasses
import functools
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, get_type_hints

from pydantic import TypeAdapter, ValidationError

from markdown_maker import settings
from markdown_maker.errors import InputError

logger = logging.getLogger(__name__)

_ENV_PREFIX = "MARKDOWN_MAKER_"
_TRUTHY = frozenset({"1", "true", "yes", "on"})
_FALSY = frozenset({"0", "false", "no", "off"})


@dataclass(frozen=True)
class PipelineConfig:
    """Immutable settings shared by the loader, extractors and runner."""

    # Fetching
    timeout: float = settings.FETCH_TIMEOUT
    network_idle_timeout: float = settings.NETWORK_IDLE_TIMEOUT
    fast_path: bool = settings.FAST_PATH_ENABLED
    render_fallback: bool = settings.RENDER_FALLBACK_ENABLED
    user_agent: str = settings.USER_AGENT
    browser_args: tuple[str, ...] = settings.BROWSER_ARGS

    # Worker pool
    max_concurrency: int = settings.MAX_CONCURRENCY

    # Block detection
    block_phrases: tuple[str, ...] = settings.BLOCK_PHRASES
    block_prefix_chars: int = settings.BLOCK_PREFIX_CHARS

    # Normalization
    non_content_tags: tuple[str, ...] = settings.NON_CONTENT_TAGS
    noise_tags: tuple[str, ...] = settings.NOISE_TAGS
    noise_roles: tuple[str, ...] = settings.NOISE_ROLES
    noise_tokens: tuple[str, ...] = settings.NOISE_TOKENS
    token_match_exempt_tags: tuple[str, ...] = settings.TOKEN_MATCH_EXEMPT_TAGS
    cookie_consent_selectors: tuple[str, ...] = settings.COOKIE_CONSENT_SELECTORS

    # Main-content selection
    content_selectors: tuple[str, ...] = settings.CONTENT_SELECTORS
    min_content_chars: int = settings.MIN_CONTENT_CHARS

    # Article extraction
    readability_min_words: int = settings.READABILITY_MIN_WORDS
    trafilatura_min_words: int = settings.TRAFILATURA_MIN_WORDS
    trafilatura_preference_ratio: float = settings.TRAFILATURA_PREFERENCE_RATIO

    def __post_init__(self) -> None:
        for name, adapter in _field_adapters().items():
            value = getattr(self, name)
            try:
                adapter.validate_python(value, strict=True)
            except ValidationError as exc:
                raise InputError(
                    f"Invalid value for {name}: {value!r} "
                    f"({exc.errors()[0]['msg']})",
                ) from exc
        if any(not phrase.strip() for phrase in self.block_phrases):
            raise InputError("block_phrases must not contain blank phrases")
        if self.max_concurrency < 1:
            raise InputError(f"max_concurrency must be >= 1; got {self.max_concurrency}")
        if self.timeout <= 0 or self.network_idle_timeout <= 0:
            raise InputError("timeouts must be > 0")
        if not (self.fast_path or self.render_fallback):
            raise InputError("at least one of fast_path / render_fallback must be enabled")
        if self.min_content_chars < 0:
            raise InputError("min_content_chars must be >= 0")

    def replace(self, **overrides: Any) -> PipelineConfig:
        """Return a copy with *overrides* applied (lists are frozen to tuples)."""
        return dataclasses.replace(self, **_coerce(overrides))

    @classmethod
    def from_mapping(cls, data: dict[str, Any], base: PipelineConfig | None = None) -> PipelineConfig:
        """Build a config from a ``{field: value}`` mapping on top of *base*."""
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise InputError(f"Unknown configuration key(s): {', '.join(unknown)}")
        return (base or cls()).replace(**data)

    @classmethod
    def from_file(cls, path: str | Path, base: PipelineConfig | None = None) -> PipelineConfig:
        """Load JSON overrides from *path*."""
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise InputError(f"Could not read config file {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise InputError(f"Config file {path} must contain a JSON object")
        logger.debug("Loaded %d config override(s) from %s", len(data), path)
        return cls.from_mapping(data, base=base)

    @classmethod
    def from_env(cls, base: PipelineConfig | None = None) -> PipelineConfig:
        """Apply ``MARKDOWN_MAKER_*`` environment overrides on top of *base*."""
        overrides: dict[str, Any] = {}
        raw = os.getenv(f"{_ENV_PREFIX}CONCURRENCY")
        if raw:
            overrides["max_concurrency"] = _env_int("CONCURRENCY", raw)
        raw = os.getenv(f"{_ENV_PREFIX}TIMEOUT")
        if raw:
            overrides["timeout"] = _env_float("TIMEOUT", raw)
        raw = os.getenv(f"{_ENV_PREFIX}FAST_PATH")
        if raw:
            overrides["fast_path"] = _env_bool("FAST_PATH", raw)
        raw = os.getenv(f"{_ENV_PREFIX}RENDER_FALLBACK")
        if raw:
            overrides["render_fallback"] = _env_bool("RENDER_FALLBACK", raw)
        return (base or cls()).replace(**overrides)


@functools.cache
def _field_adapters() -> dict[str, TypeAdapter[Any]]:
    """Strict validators for every field (JSON overrides are untyped)."""
    hints = get_type_hints(PipelineConfig)
    return {f.name: TypeAdapter(hints[f.name]) for f in dataclasses.fields(PipelineConfig)}


def _coerce(values: dict[str, Any]) -> dict[str, Any]:
    return {k: tuple(v) if isinstance(v, list) else v for k, v in values.items()}


def _env_int(name: str, raw: str) -> int:
    try:
        return int(raw)
    except ValueError as exc:
        raise InputError(f"{_ENV_PREFIX}{name} must be an integer; got {raw!r}") from exc


def _env_float(name: str, raw: str) -> float:
    try:
        return float(raw)
    except ValueError as exc:
        raise InputError(f"{_ENV_PREFIX}{name} must be a number; got {raw!r}") from exc


def _env_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    raise InputError(f"{_ENV_PREFIX}{name} must be a boolean; got {raw!r}")
