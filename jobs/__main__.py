"""Command-line entrypoint for batch jobs."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
from pathlib import Path

from jobs.build_stats import build_lender_rates, build_market_stats
from jobs.config import LENDERS, LenderConfig, ReportSource, get_market, iter_lenders
from pipelines.sources.lender_rates import parse_rate_block, product_block
from pipelines.sources.rpr import extract_report
from pipelines.text import html_to_text, pdf_to_text


def _format_report(source: ReportSource) -> str:
    alternates = ", ".join(source.alternate_urls) or "(none)"
    return f"{source.key}: {source.label} url={source.url} alternates={alternates}"


def _format_lender(lender: LenderConfig) -> str:
    return (
        f"{lender.key}: name='{lender.name}' product='{lender.product}' url={lender.url} "
        f"fallback={lender.fallback_rate}/{lender.fallback_apr}"
    )


def _read_text(path: Path) -> str:
    suffix = path.suffix.lower()
    if suffix == ".pdf":
        return pdf_to_text(path.read_bytes(), source=str(path))
    if suffix in {".html", ".htm"}:
        return html_to_text(path.read_bytes())
    return path.read_text(encoding="utf-8", errors="replace")


def _extract_file(path: Path, source: str) -> dict:
    text = _read_text(path)
    if source == "rates":
        rate, apr = parse_rate_block(product_block(text, LENDERS[0].block_pattern))
        return {"rate": rate, "apr": apr}
    record, month_key = extract_report(text)
    return {"month": month_key, "metrics": dict(record)}


def _print_json(payload: object) -> None:
    print(json.dumps(payload, indent=2))


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="County market stats job runner")
    parser.add_argument(
        "--log-level",
        help="Override LOG_LEVEL for this invocation (e.g. DEBUG, INFO)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("stats", help="Fetch both market reports and print the stats JSON")
    rates_parser = subparsers.add_parser("rates", help="Scrape lender pages and print the rates JSON")
    rates_parser.add_argument(
        "--lenders",
        help="Comma-separated list of lender keys to scrape (defaults to all configured)",
    )
    subparsers.add_parser("list-sources", help="Show configured report and lender sources")

    extract_parser = subparsers.add_parser(
        "extract", help="Run the extractor over a local PDF, HTML or text file"
    )
    extract_parser.add_argument("path", type=Path)
    extract_parser.add_argument("--source", choices=("rpr", "rates"), default="rpr")

    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level or os.getenv("LOG_LEVEL", "INFO"))

    if args.command == "list-sources":
        market = get_market()
        print(f"market: {market.key} ({market.geo_name})")
        for source in (market.single_family, market.condo):
            print(_format_report(source))
        for lender in LENDERS:
            print(_format_lender(lender))
        return 0

    if args.command == "stats":
        stats = asyncio.run(build_market_stats())
        _print_json(stats.to_payload())
        return 0

    if args.command == "rates":
        keys = [item.strip() for item in (args.lenders or "").split(",") if item.strip()]
        lenders = iter_lenders(keys)
        unknown = set(keys) - {lender.key for lender in lenders}
        if unknown:
            raise SystemExit(f"Unknown lender keys: {', '.join(sorted(unknown))}")
        rates = asyncio.run(build_lender_rates(lenders))
        _print_json(rates.to_payload())
        return 0

    if args.command == "extract":
        if not args.path.is_file():
            raise SystemExit(f"No such file: {args.path}")
        _print_json(_extract_file(args.path, args.source))
        return 0

    parser.error("Unknown command")
    return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
