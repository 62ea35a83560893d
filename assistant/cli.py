"""Interactive terminal price check.

Usage:
    python -m assistant.cli "PS5 console"
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Callable, List, Optional

from dotenv import load_dotenv

# Load environment variables before config is imported
load_dotenv(dotenv_path=Path(__file__).parent.parent / ".env")

from scraper.browser import BrowserPool  # noqa: E402
from scraper.cli import format_products  # noqa: E402
from scraper.config import DEFAULT_SITE_URL  # noqa: E402
from scraper.logging_config import setup_logging  # noqa: E402

from .generation import TextGenerationService  # noqa: E402
from .models import ClarificationQuestion  # noqa: E402
from .price_check import RequestDetails, run_price_check  # noqa: E402
from .refinement import RefinementOutcome, RefinementSession  # noqa: E402

__all__ = ["main", "describe_outcome", "read_answer"]

QUIT_WORDS = {"q", "quit", "exit"}


def describe_outcome(session: RefinementSession) -> str:
    """One-line summary of a finished refinement."""
    if session.outcome is RefinementOutcome.NO_MATCH:
        return "No matching product for your answers."
    if session.outcome is RefinementOutcome.RESOLVED:
        title = session.state.candidate_products[0].title
        if session.price:
            return f"Price: {session.price} ({title})"
        return f"Matched {title}, but it has no listed price."
    return "Could not narrow down further. Prices: " + ", ".join(session.prices)


def read_answer(
    question: ClarificationQuestion,
    input_fn: Callable[[str], str] = input,
) -> Optional[str]:
    """Ask one question on the terminal.

    Returns the chosen option value, free text typed by the user, or
    None to quit.
    """
    print(f"\n{question.question}")
    for i, option in enumerate(question.options, start=1):
        print(f"  {i}. {option.label}")

    while True:
        reply = input_fn("> ").strip()
        if reply.lower() in QUIT_WORDS:
            return None
        if reply.isdigit():
            index = int(reply) - 1
            if 0 <= index < len(question.options):
                return question.options[index].value
            print(f"Pick 1-{len(question.options)}")
            continue
        if reply:
            return reply


async def _run(args: argparse.Namespace, input_fn: Callable[[str], str] = input) -> int:
    details = RequestDetails(item_information=args.context) if args.context else None
    generator = TextGenerationService()

    async with BrowserPool(headless=not args.headed) as pool:
        check = await run_price_check(
            args.request_text,
            pool,
            generator,
            site_url=args.site,
            details=details,
        )
        for step in check.steps:
            print(f"  - {step}")

        if check.session is None:
            print(f"Search failed: {check.error}")
            return 1

        session = check.session
        print(format_products(session.state.candidate_products))

        while not session.state.complete:
            question = session.current_question
            assert question is not None
            answer = read_answer(question, input_fn)
            if answer is None:
                print("Stopped.")
                return 1
            await session.submit_answer(question.id, answer)
            print(f"{len(session.state.candidate_products)} candidates left")

    print(describe_outcome(session))
    return 0 if session.outcome is RefinementOutcome.RESOLVED else 1


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Find a resale price by searching and answering questions",
    )
    parser.add_argument("request_text", help="What you want to price, e.g. 'PS5 console'")
    parser.add_argument(
        "--site",
        default=DEFAULT_SITE_URL,
        help=f"Marketplace home page (default: {DEFAULT_SITE_URL})",
    )
    parser.add_argument("--context", help="Extra item information for the search term")
    parser.add_argument("--headed", action="store_true", help="Show the browser window")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        log_to_file=True,
    )
    return asyncio.run(_run(args))


if __name__ == "__main__":
    sys.exit(main())
