"""CLI entry point: python -m markdown_maker --url URL [options]"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from markdown_maker.config import PipelineConfig
from markdown_maker.dataset import JsonlDataset
from markdown_maker.errors import InputError
from markdown_maker.items import RunInput
from markdown_maker.runner import RunSummary, run
from markdown_maker.settings import DEFAULT_OUTPUT

logger = logging.getLogger("markdown_maker")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="markdown-maker",
        description=(
            "Convert web pages into clean, AI-ready Markdown.\n"
            "Fast HTTP fetch with headless-browser fallback for blocked pages."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--url", action="append", dest="urls", default=None, metavar="URL",
                        help="Page to convert (repeatable)")
    parser.add_argument("--input", default=None, metavar="FILE",
                        help="JSON input file with startUrls, maxItems, delayBetweenRequests, "
                             "proxyConfiguration")
    parser.add_argument("--out", default=DEFAULT_OUTPUT, metavar="PATH",
                        help=f"Output JSON Lines dataset (default: {DEFAULT_OUTPUT})")
    parser.add_argument("--max-items", type=int, default=None, metavar="N",
                        help="Maximum number of URLs to process")
    parser.add_argument("--delay", type=float, default=None, metavar="SECONDS",
                        help="Delay after each successful page; forces sequential processing")
    parser.add_argument("--concurrency", type=int, default=None, metavar="N",
                        help="Concurrent pages (default: 8)")
    parser.add_argument("--proxy", action="append", default=None, metavar="URL",
                        help="Egress proxy URL (repeatable; rotated round-robin)")
    parser.add_argument("--timeout", type=float, default=None, metavar="SECONDS",
                        help="Fetch and navigation timeout (default: 30)")
    parser.add_argument("--render-only", action="store_true", default=False,
                        help="Skip the fast HTTP fetch and always use the headless browser")
    parser.add_argument("--no-render-fallback", action="store_true", default=False,
                        help="Never fall back to the headless browser")
    parser.add_argument("--config", default=None, metavar="FILE",
                        help="JSON file overriding heuristics (selectors, block phrases, …)")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        metavar="{DEBUG,INFO,WARNING,ERROR}",
                        help="Logging level (default: INFO)")
    return parser


def _configure_logging(level: str) -> None:
    from rich.logging import RichHandler

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )


def _build_config(args: argparse.Namespace) -> PipelineConfig:
    config = PipelineConfig.from_env()
    if args.config:
        config = PipelineConfig.from_file(args.config, base=config)

    overrides: dict[str, Any] = {}
    if args.concurrency is not None:
        overrides["max_concurrency"] = args.concurrency
    if args.timeout is not None:
        overrides["timeout"] = args.timeout
    if args.render_only:
        overrides["fast_path"] = False
    if args.no_render_fallback:
        overrides["render_fallback"] = False
    return config.replace(**overrides)


def _load_input(args: argparse.Namespace) -> RunInput:
    data: dict[str, Any] = {}
    if args.input:
        try:
            data = json.loads(Path(args.input).read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise InputError(f"Could not read input file {args.input}: {exc}") from exc
        if not isinstance(data, dict):
            raise InputError(f"Input file {args.input} must contain a JSON object")

    if args.urls:
        data["startUrls"] = list(data.get("startUrls") or []) + args.urls
    if args.max_items is not None:
        data["maxItems"] = args.max_items
    if args.delay is not None:
        data["delayBetweenRequests"] = args.delay
    if args.proxy:
        data["proxyConfiguration"] = {"proxyUrls": args.proxy}
    return RunInput.from_raw(data)


def _print_banner(run_input: RunInput, config: PipelineConfig, out: Path) -> None:
    from rich.console import Console
    from rich.panel import Panel

    if config.fast_path and config.render_fallback:
        strategy = "fast → rendered"
    elif config.fast_path:
        strategy = "fast only"
    else:
        strategy = "rendered only"
    proxies = run_input.proxy_configuration.proxy_urls if run_input.proxy_configuration else []

    Console(stderr=True).print(
        Panel.fit(
            f"[bold cyan]Markdown Maker[/bold cyan]\n"
            f"URLs:         {len(run_input.start_urls)}\n"
            f"Max items:    {run_input.max_items or '—'}\n"
            f"Delay:        {run_input.delay_between_requests}s\n"
            f"Concurrency:  {1 if run_input.delay_between_requests > 0 else config.max_concurrency}\n"
            f"Strategy:     {strategy}\n"
            f"Proxies:      {len(proxies) or '—'}\n"
            f"Output:       [yellow]{out}[/yellow]",
            border_style="cyan",
            title="[bold]Configuration[/bold]",
        ),
    )


def _print_summary(summary: RunSummary, out: Path) -> None:
    from rich import box
    from rich.console import Console
    from rich.table import Table

    tbl = Table(title="[bold cyan]Run Summary[/bold cyan]", box=box.SIMPLE_HEAVY)
    tbl.add_column("Metric", style="bold")
    tbl.add_column("Value", justify="right")
    tbl.add_row("Pages processed", str(summary.processed))
    tbl.add_row("Succeeded", f"[green]{summary.succeeded}[/green]")
    tbl.add_row("Failed", f"[red]{summary.failed}[/red]" if summary.failed else "0")
    tbl.add_row("Success rate", f"{summary.success_rate:.1%}")
    tbl.add_row("Duration", f"{summary.duration_sec:.1f}s")
    tbl.add_row("Avg per page", f"{summary.avg_sec_per_page:.2f}s")
    tbl.add_row("Dataset", str(out))
    Console(stderr=True).print(tbl)


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    _configure_logging(args.log_level)

    try:
        config = _build_config(args)
        run_input = _load_input(args)
    except InputError as exc:
        logger.error("Run aborted: %s", exc)
        return 1

    out = Path(args.out).resolve()
    _print_banner(run_input, config, out)

    with JsonlDataset(out) as dataset:
        summary = run(run_input, dataset, config=config)

    _print_summary(summary, out)
    return 0


if __name__ == "__main__":
    sys.exit(main())
