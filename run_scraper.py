#!/usr/bin/env python3
"""
Command-line script to scrape a page and export the result.

Fetches the URL (or reads a saved HTML file), extracts metadata, content,
links and images, enriches them, stores the result and prints it as JSON or CSV.
A stored result for the same URL younger than --max-age-minutes is reused
instead of scraping again.

Usage:
    python run_scraper.py https://example.com
    python run_scraper.py https://example.com --ai --provider anthropic
    python run_scraper.py https://example.com --html-file saved.html --no-images
    python run_scraper.py https://example.com --format csv -o example.csv
    python run_scraper.py --recent 5
"""

import argparse
import json
import logging
import sys
from datetime import timedelta
from pathlib import Path

# Load .env file automatically
from dotenv import load_dotenv
load_dotenv()

from page_scraper.document import decode_markup
from page_scraper.exceptions import ScrapeError
from page_scraper.exporters import export_filename, to_csv, to_json
from page_scraper.logger import setup_logger
from page_scraper.main import WebScraper
from page_scraper.schemas import ScrapeOptions
from page_scraper.storage import FileScrapeStore


def build_options(args: argparse.Namespace) -> ScrapeOptions:
    return ScrapeOptions(
        parse_metadata=not args.no_metadata,
        parse_content=not args.no_content,
        parse_links=not args.no_links,
        parse_images=not args.no_images,
        use_external_ai=args.ai,
        enrich=not args.no_enrich,
        api_key=args.api_key,
        llm_provider=args.provider,
    )


def main():
    parser = argparse.ArgumentParser(
        description="Scrape a web page into structured, enriched JSON or CSV"
    )
    parser.add_argument("url", nargs="?", help="Page URL to scrape")
    parser.add_argument("--html-file", help="Read markup from this file instead of fetching the URL")
    parser.add_argument("--no-metadata", action="store_true", help="Skip the metadata section")
    parser.add_argument("--no-content", action="store_true", help="Skip the content section")
    parser.add_argument("--no-links", action="store_true", help="Skip the links section")
    parser.add_argument("--no-images", action="store_true", help="Skip the images section")
    parser.add_argument("--no-enrich", action="store_true", help="Skip heuristic enrichment")
    parser.add_argument("--ai", action="store_true", help="Enrich with an external LLM")
    parser.add_argument("--provider", choices=["openai", "anthropic"], help="LLM provider for --ai")
    parser.add_argument("--api-key", help="LLM API key (default: provider key from environment)")
    parser.add_argument("--format", choices=["json", "csv"], default="json", help="Output format")
    parser.add_argument("--include-html", action="store_true", help="Include raw markup in JSON output")
    parser.add_argument("--store-dir", help="Directory for stored results")
    parser.add_argument(
        "--max-age-minutes",
        type=int,
        default=60,
        help="Reuse a stored result younger than this (0 always scrapes)"
    )
    parser.add_argument("--recent", type=int, metavar="N", help="List the N most recent stored scrapes and exit")
    parser.add_argument("--output", "-o", help="Output file (default: print to stdout)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")

    args = parser.parse_args()

    log_level = logging.DEBUG if args.verbose else None
    setup_logger(level=log_level)

    store = FileScrapeStore(args.store_dir)

    if args.recent is not None:
        recent = [
            {
                "id": r.id,
                "url": r.url,
                "scrapeDate": r.scrape_date.isoformat(),
                "title": r.metadata.title if r.metadata else "",
            }
            for r in store.list_recent(args.recent)
        ]
        print(json.dumps(recent, indent=2, ensure_ascii=False))
        return

    if not args.url:
        parser.error("url is required unless --recent is given")

    result = None
    if args.max_age_minutes > 0 and not args.html_file:
        result = store.get_fresh(args.url, timedelta(minutes=args.max_age_minutes))
        if result is not None:
            print(f"Using stored scrape {result.id} for {args.url}", file=sys.stderr)

    if result is None:
        scraper = WebScraper(store=store)
        options = build_options(args)
        print(f"Scraping: {args.url}", file=sys.stderr)

        markup = None
        if args.html_file:
            try:
                markup = decode_markup(Path(args.html_file).read_bytes())
            except OSError as e:
                print(f"  ✗ Error reading {args.html_file}: {e}", file=sys.stderr)
                sys.exit(1)

        try:
            if markup is not None:
                result = scraper.scrape_html(args.url, markup, options)
            else:
                result = scraper.scrape(args.url, options)
        except ScrapeError as e:
            print(json.dumps(e.to_response(), indent=2), file=sys.stderr)
            print(f"  ✗ Error: {e.message}", file=sys.stderr)
            sys.exit(1)

        source = result.analysis_source.value if result.analysis_source else "none"
        print(f"  ✓ Stored as {result.id} (analysis: {source})", file=sys.stderr)
        for warning in result.warnings:
            print(f"  ! {warning}", file=sys.stderr)

    if args.format == "csv":
        output = to_csv(result)
    else:
        output = to_json(result, include_markup=args.include_html)

    if args.output:
        path = Path(args.output)
        if path.is_dir():
            path = path / export_filename(result, args.format)
        path.write_text(output, encoding="utf-8")
        print(f"\nSaved to: {path}", file=sys.stderr)
    else:
        print(output)


if __name__ == "__main__":
    main()
