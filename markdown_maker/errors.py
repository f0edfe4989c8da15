"""Exception hierarchy for markdown_maker.

Only :class:`InputError` ever escapes a run.  Everything else is raised and
caught inside :class:`~markdown_maker.pipeline.PagePipeline` and turned into
a failure record.
"""

from __future__ import annotations


class MarkdownMakerError(RuntimeError):
    """Base class for all markdown_maker errors."""


class FetchError(MarkdownMakerError):
    """Raised when no fetch strategy produced usable HTML.

    Attributes:
        url    -- the URL that failed
        status -- HTTP status code (0 if no response was received)
        body   -- response body, when one was received
    """

    def __init__(
        self,
        message: str,
        url: str = "",
        status: int = 0,
        body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.url = url
        self.status = status
        self.body = body


class ExtractionError(MarkdownMakerError):
    """Raised when the article extractor fails; always absorbed by the pipeline."""


class RenderError(MarkdownMakerError):
    """Raised when HTML cannot be converted to Markdown."""


class InputError(MarkdownMakerError, ValueError):
    """Raised when run input or configuration is missing or malformed."""
