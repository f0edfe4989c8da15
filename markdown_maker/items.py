"""Data model: per-fetch intermediates (dataclasses) and the validated
input/output schemas (Pydantic)."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any
from urllib.parse import urlparse

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from markdown_maker.errors import InputError
from markdown_maker.settings import UNTITLED

# ---------------------------------------------------------------------------
# Pipeline intermediates
# ---------------------------------------------------------------------------

class FetchStrategy(StrEnum):
    FAST     = "fast"
    RENDERED = "rendered"


class ContentSource(StrEnum):
    ARTICLE_EXTRACTOR     = "article_extractor"
    MAIN_CONTENT_SELECTOR = "main_content_selector"


@dataclass(frozen=True)
class FetchResult:
    """Outcome of one fetch attempt."""
    url: str
    status_code: int | None
    html: str | None
    strategy: FetchStrategy
    title: str | None = None       # rendered strategy only (page.title())
    final_url: str | None = None


@dataclass(frozen=True)
class ContentFragment:
    """The sub-tree chosen as the page's primary content."""
    html: str
    title: str | None
    source: ContentSource
    method: str                    # "readability" | "trafilatura" | "selector:<css>" | "body"

    def __post_init__(self) -> None:
        if self.source is ContentSource.ARTICLE_EXTRACTOR and not self.html.strip():
            raise ValueError("article extractor fragments must carry content")


@dataclass(frozen=True)
class NormalizedFragment:
    """Fragment after noise removal and URL absolutization."""
    html: str


# ---------------------------------------------------------------------------
# Output record
# ---------------------------------------------------------------------------

def utc_timestamp() -> str:
    return datetime.now(UTC).isoformat()


class PageRecord(BaseModel):
    """One output row per processed URL, successful or not."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    url: str
    title: str = UNTITLED
    markdown: str = ""
    timestamp: str = Field(default_factory=utc_timestamp)
    success: bool = True
    error_message: str | None = Field(default=None, alias="errorMessage")

    # Provenance
    fetch_strategy: str | None = Field(default=None, alias="fetchStrategy")
    extraction_method: str | None = Field(default=None, alias="extractionMethod")

    @field_validator("url", mode="before")
    @classmethod
    def strip_url(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("title", mode="before")
    @classmethod
    def default_title(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
        return v or UNTITLED

    @model_validator(mode="after")
    def check_error_message(self) -> PageRecord:
        if not self.success and not self.error_message:
            raise ValueError("failure records must carry an error message")
        if self.success and self.error_message is not None:
            raise ValueError("successful records must not carry an error message")
        return self

    def to_dataset_row(self) -> dict[str, Any]:
        """Return the camelCase dict written to the dataset sink."""
        return self.model_dump(by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Run input
# ---------------------------------------------------------------------------

class StartUrl(BaseModel):
    url: str

    @field_validator("url", mode="before")
    @classmethod
    def check_url(cls, v: Any) -> Any:
        if not isinstance(v, str):
            return v
        v = v.strip()
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"not an absolute http(s) URL: {v!r}")
        return v


class ProxySettings(BaseModel):
    """Egress proxy settings, passed through untouched to the loader."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    proxy_urls: list[str] = Field(default_factory=list, alias="proxyUrls")
    rotation: str = "round_robin"

    @field_validator("rotation")
    @classmethod
    def check_rotation(cls, v: str) -> str:
        if v not in ("round_robin", "random"):
            raise ValueError(f"rotation must be 'round_robin' or 'random'; got {v!r}")
        return v


class RunInput(BaseModel):
    """Validated run input (``startUrls``, ``maxItems``, ...)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    start_urls: list[StartUrl] = Field(alias="startUrls", min_length=1)
    max_items: int | None = Field(default=None, alias="maxItems", ge=1)
    delay_between_requests: float = Field(default=0.0, alias="delayBetweenRequests", ge=0)
    proxy_configuration: ProxySettings | None = Field(default=None, alias="proxyConfiguration")

    @field_validator("start_urls", mode="before")
    @classmethod
    def wrap_plain_urls(cls, v: Any) -> Any:
        if isinstance(v, list):
            return [{"url": item} if isinstance(item, str) else item for item in v]
        return v

    @property
    def urls(self) -> list[str]:
        return [s.url for s in self.start_urls]

    @classmethod
    def from_raw(cls, data: Any) -> RunInput:
        """Validate *data*, raising :class:`InputError` on any problem."""
        if isinstance(data, RunInput):
            return data
        if not isinstance(data, dict):
            raise InputError("Invalid input: expected a JSON object with startUrls")
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise InputError(
                "Invalid input: startUrls array is required and must contain at least "
                f"one URL ({exc.error_count()} validation error(s): {exc})",
            ) from exc
