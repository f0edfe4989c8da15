"""markdown_maker - convert web pages into clean, LLM-ready Markdown.

Quick single-URL usage::

    from markdown_maker import convert

    record = convert("https://example.com/blog/some-post")
    print(record.title)
    print(record.markdown)

Batch usage::

    from markdown_maker import convert_batch

    records = convert_batch([
        "https://example.com/post/1",
        "https://example.com/post/2",
    ])
    failed = [r for r in records if not r.success]

Full runs with a dataset sink::

    from markdown_maker import JsonlDataset, run

    with JsonlDataset("out/dataset.jsonl") as dataset:
        run({"startUrls": [{"url": "https://example.com"}]}, dataset)
"""

from markdown_maker.config import PipelineConfig
from markdown_maker.dataset import JsonlDataset, MemoryDataset
from markdown_maker.errors import (
    ExtractionError,
    FetchError,
    InputError,
    MarkdownMakerError,
    RenderError,
)
from markdown_maker.items import PageRecord, RunInput
from markdown_maker.pipeline import PagePipeline, convert
from markdown_maker.runner import RunSummary, convert_batch, run

__version__ = "0.1.0"
__all__ = [
    "ExtractionError",
    "FetchError",
    "InputError",
    "JsonlDataset",
    "MarkdownMakerError",
    "MemoryDataset",
    "PagePipeline",
    "PageRecord",
    "PipelineConfig",
    "RenderError",
    "RunInput",
    "RunSummary",
    "convert",
    "convert_batch",
    "run",
]
