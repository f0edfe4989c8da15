"""markdown_maker.runner - run a list of URLs through the page pipeline.

Uses a :class:`~concurrent.futures.ThreadPoolExecutor` as the worker pool.
Each URL is processed independently; records reach the sink in completion
order, not input order.

Usage::

    from markdown_maker.dataset import JsonlDataset
    from markdown_maker.runner import run

    with JsonlDataset("out/dataset.jsonl") as dataset:
        summary = run({"startUrls": [{"url": "https://example.com"}]}, dataset)
    print(summary.success_rate)

Batch API::

    from markdown_maker import convert_batch

    records = convert_batch(["https://example.com/a", "https://example.com/b"])
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any

from markdown_maker.config import PipelineConfig
from markdown_maker.dataset import MemoryDataset, RecordSink
from markdown_maker.extractors.urlnorm import normalize_url
from markdown_maker.fetch import DocumentLoader
from markdown_maker.items import PageRecord, ProxySettings, RunInput
from markdown_maker.pipeline import PagePipeline
from markdown_maker.proxy import ProxyRotator

logger = logging.getLogger(__name__)


@dataclass
class RunSummary:
    """Run statistics; observational only."""

    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    duration_sec: float = 0.0

    @property
    def success_rate(self) -> float:
        return self.succeeded / self.processed if self.processed else 0.0

    @property
    def avg_sec_per_page(self) -> float:
        return self.duration_sec / self.processed if self.processed else 0.0

    def as_dict(self) -> dict[str, Any]:
        return {
            "processed": self.processed,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "success_rate": round(self.success_rate, 4),
            "duration_sec": round(self.duration_sec, 3),
            "avg_sec_per_page": round(self.avg_sec_per_page, 3),
        }


def prepare_urls(run_input: RunInput) -> list[str]:
    """De-duplicate start URLs (by normalized form) and apply ``maxItems``."""
    seen: set[str] = set()
    urls: list[str] = []
    for url in run_input.urls:
        key = normalize_url(url)
        if key in seen:
            logger.debug("Skipping duplicate URL %s", url)
            continue
        seen.add(key)
        urls.append(url)
    if run_input.max_items is not None and len(urls) > run_input.max_items:
        logger.info("Limited to %d of %d URLs", run_input.max_items, len(urls))
        urls = urls[: run_input.max_items]
    return urls


def _build_rotator(proxy_settings: ProxySettings | None) -> ProxyRotator | None:
    if proxy_settings is None or not proxy_settings.proxy_urls:
        return None
    return ProxyRotator(proxy_settings.proxy_urls, rotation=proxy_settings.rotation)


def run(
    raw_input: RunInput | dict[str, Any],
    sink: RecordSink,
    *,
    config: PipelineConfig | None = None,
    pipeline: PagePipeline | None = None,
) -> RunSummary:
    """Process every start URL and push one record per URL to *sink*.

    Args:
        raw_input: ``{"startUrls": [...], "maxItems": ..., ...}`` or a
                   validated :class:`RunInput`.
        sink:      Receives each :class:`PageRecord` as soon as it is ready.
        config:    Shared configuration (defaults to :class:`PipelineConfig`).
        pipeline:  Pre-built pipeline; by default one is built from *config*
                   and the input's proxy settings.

    Returns:
        :class:`RunSummary` for the run.

    Raises:
        InputError: Before any URL is processed, if the input is invalid.
    """
    run_input = RunInput.from_raw(raw_input)
    cfg = config or PipelineConfig()
    urls = prepare_urls(run_input)

    delay = run_input.delay_between_requests
    # Overlapping requests would make the delay meaningless
    workers = 1 if delay > 0 else cfg.max_concurrency

    if pipeline is None:
        loader = DocumentLoader(cfg, proxy_rotator=_build_rotator(run_input.proxy_configuration))
        pipeline = PagePipeline(cfg, loader=loader)

    logger.info("Processing %d URL(s) with %d worker(s)", len(urls), workers)
    if delay > 0:
        logger.info("Delay between requests: %s seconds", delay)

    def _process_one(url: str) -> PageRecord:
        record = pipeline.process(url)
        sink.push(record)
        if record.success and delay > 0:
            logger.info("Waiting %s seconds before next request...", delay)
            time.sleep(delay)
        return record

    summary = RunSummary()
    start = time.monotonic()
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [executor.submit(_process_one, url) for url in urls]
        for future in as_completed(futures):
            record = future.result()
            summary.processed += 1
            if record.success:
                summary.succeeded += 1
            else:
                summary.failed += 1
            logger.info("Progress: %d/%d pages processed", summary.processed, len(urls))
    summary.duration_sec = time.monotonic() - start

    logger.info(
        "Run finished: %d processed, %d failed, success rate %.1f%%, "
        "%.1fs total, %.2fs/page",
        summary.processed,
        summary.failed,
        summary.success_rate * 100,
        summary.duration_sec,
        summary.avg_sec_per_page,
    )
    return summary


def convert_batch(
    urls: list[str],
    *,
    config: PipelineConfig | None = None,
    delay: float = 0.0,
    proxies: list[str] | None = None,
    pipeline: PagePipeline | None = None,
) -> list[PageRecord]:
    """Convert several URLs concurrently and return records in input order.

    Duplicate URLs are processed once.

    Raises:
        InputError: If *urls* is empty or contains a non-http(s) URL.
    """
    raw: dict[str, Any] = {
        "startUrls": [{"url": u} for u in urls],
        "delayBetweenRequests": delay,
    }
    if proxies:
        raw["proxyConfiguration"] = {"proxyUrls": proxies}
    run_input = RunInput.from_raw(raw)

    sink = MemoryDataset()
    run(run_input, sink, config=config, pipeline=pipeline)

    order = {url: i for i, url in enumerate(prepare_urls(run_input))}
    return sorted(sink.records, key=lambda r: order.get(r.url, len(order)))
