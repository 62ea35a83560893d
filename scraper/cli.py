"""Command-line interface for the scraper."""

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from scraper.browser import BrowserPool
from scraper.config import DEFAULT_SITE_URL, SEARCH_INPUT_SELECTOR
from scraper.logging_config import setup_logging
from scraper.models import ProductRecord, ScrapeOptions, ScrapeResult
from scraper.scraper import scrape_multiple
from scraper.search import search_products
from scraper.site_configs import get_site_configs

__all__ = ["main", "parse_args", "format_products"]


def format_products(products: List[ProductRecord]) -> str:
    """Human-readable table of extracted products."""
    if not products:
        return "No products found."

    lines = []
    for i, p in enumerate(products, start=1):
        parts = [f"{i:>3}. {p.title}"]
        if p.price:
            parts.append(p.price)
        if p.grade:
            parts.append(f"grade {p.grade}")
        if p.trade_in_voucher or p.trade_in_cash:
            parts.append(f"trade-in {p.trade_in_voucher or '-'} / {p.trade_in_cash or '-'}")
        lines.append(" | ".join(parts))
    return "\n".join(lines)


def _print_result(result: ScrapeResult, as_json: bool) -> None:
    if as_json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return
    if not result.success:
        print(f"Failed: {result.error}")
        return
    print(f"{result.title or ''} <{result.url}>")
    print(format_products(result.products))


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Search a resale marketplace and extract product listings",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Search the default marketplace
  python -m scraper.cli "PS5 console"

  # Print the full result as JSON
  python -m scraper.cli "iPhone 12 128GB" --json

  # Read product cards from result pages you already have URLs for
  python -m scraper.cli --scrape "https://uk.webuy.com/search?stext=ps5"

  # List configured sites
  python -m scraper.cli --sites
        """,
    )
    parser.add_argument("search_term", nargs="?", help="Text to type into the search box")
    parser.add_argument(
        "--site",
        default=DEFAULT_SITE_URL,
        help=f"Marketplace home page (default: {DEFAULT_SITE_URL})",
    )
    parser.add_argument(
        "--input-selector",
        default=SEARCH_INPUT_SELECTOR,
        help=f"CSS selector of the search box (default: {SEARCH_INPUT_SELECTOR})",
    )
    parser.add_argument(
        "--scrape",
        nargs="+",
        metavar="URL",
        help="Scrape these URLs directly instead of searching",
    )
    parser.add_argument("--json", action="store_true", help="Print results as JSON")
    parser.add_argument("--headed", action="store_true", help="Show the browser window")
    parser.add_argument("--sites", action="store_true", help="List configured sites and exit")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


async def _run(args: argparse.Namespace) -> int:
    async with BrowserPool(headless=not args.headed) as pool:
        if args.scrape:
            results = await scrape_multiple(pool, args.scrape, ScrapeOptions(url="", extract_text=False))
            for result in results:
                _print_result(result, args.json)
            return 0 if all(r.success for r in results) else 1

        result = await search_products(
            pool,
            args.search_term,
            site_url=args.site,
            input_selector=args.input_selector,
        )
        _print_result(result, args.json)
        return 0 if result.success else 1


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(level=logging.DEBUG if args.verbose else logging.INFO)

    if args.sites:
        for config in get_site_configs():
            print(f"{config.name}: {', '.join(config.domain)} ({config.base_url})")
        return 0

    if not args.search_term and not args.scrape:
        print("Error: give a search term or --scrape URL", file=sys.stderr)
        return 2

    return asyncio.run(_run(args))


if __name__ == "__main__":
    sys.exit(main())
