"""End-to-end price check: request text -> search -> refinement session.

The steps a check goes through are recorded as human-readable lines so
a caller can show what was attempted, including after a failure.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from scraper.config import DEFAULT_SITE_URL, SEARCH_SITE_KEYWORDS
from scraper.models import ScrapeResult
from scraper.search import search_products

from .clarification import ClarificationEngine
from .generation import TextGenerationService
from .logging_utils import log_interaction
from .refinement import RefinementSession

__all__ = ["PriceCheck", "RequestDetails", "run_price_check", "should_search"]

logger = logging.getLogger(__name__)

_URL_RE = re.compile(r"https?://", re.IGNORECASE)


@dataclass
class RequestDetails:
    """Structured request form fields that give the search term context."""

    item_information: str = ""
    cr_rate: str = ""
    type: str = ""
    customer_expectation: str = ""

    def to_context(self) -> str:
        return (
            f"Item Information: {self.item_information}, CR Rate: {self.cr_rate}, "
            f"Type: {self.type}, Customer Expectation: {self.customer_expectation}"
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RequestDetails":
        """Create from dictionary (accepts camelCase form keys too)."""
        return cls(
            item_information=data.get("item_information", data.get("itemInformation", "")),
            cr_rate=data.get("cr_rate", data.get("crRate", "")),
            type=data.get("type", ""),
            customer_expectation=data.get(
                "customer_expectation", data.get("customerExpectation", "")
            ),
        )


def should_search(text: str, has_request_context: bool = False) -> bool:
    """Whether a chat message should start a marketplace search.

    URLs are never searched, a request form always is. Otherwise any
    message of reasonable length that is not a slash command, or that
    names the marketplace, is treated as a product search.
    """
    lower = text.lower().strip()
    if _URL_RE.search(text):
        return False
    if has_request_context:
        return True
    mentions_site = any(keyword in lower for keyword in SEARCH_SITE_KEYWORDS)
    reasonable = 3 < len(lower) < 300
    return mentions_site or (reasonable and not lower.startswith("/"))


@dataclass
class PriceCheck:
    """Result of starting a price check."""

    request_text: str
    search_term: str = ""
    steps: List[str] = field(default_factory=list)
    scrape: Optional[ScrapeResult] = None
    session: Optional[RefinementSession] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "success": self.success,
            "request_text": self.request_text,
            "search_term": self.search_term,
            "steps": list(self.steps),
            "error": self.error,
            "url": self.scrape.url if self.scrape else None,
            "product_count": len(self.scrape.products) if self.scrape else 0,
            "session": self.session.to_dict() if self.session else None,
        }


async def run_price_check(
    request_text: str,
    pool: Any,
    generator: TextGenerationService,
    engine: Optional[ClarificationEngine] = None,
    site_url: str = DEFAULT_SITE_URL,
    details: Optional[RequestDetails] = None,
) -> PriceCheck:
    """Search the marketplace for ``request_text`` and open a refinement.

    Args:
        request_text: What the user is trying to price.
        pool: BrowserPool used for the search.
        generator: Text generation service.
        engine: Clarification engine (built on ``generator`` if omitted).
        site_url: Marketplace home page.
        details: Optional request form fields passed as context.

    Returns:
        PriceCheck. When the search fails ``error`` is set, ``session``
        is None and ``steps`` shows how far the check got.
    """
    engine = engine or ClarificationEngine(generator)
    check = PriceCheck(request_text=request_text)
    host = urlparse(site_url).netloc or site_url

    check.steps.append("Generating search term from your request...")
    context = details.to_context() if details else None
    check.search_term = await generator.generate_search_term(request_text, context)
    check.steps.append(f'Generated search term: "{check.search_term}"')

    check.steps.append(f"Navigating to {host}...")
    check.steps.append(f'Typing "{check.search_term}" into search field...')
    check.scrape = await search_products(pool, check.search_term, site_url=site_url)

    if not check.scrape.success:
        check.error = check.scrape.error or "Search failed"
        check.steps.append("Error occurred")
        logger.warning(f"Price check for {request_text!r} failed: {check.error}")
        log_interaction(
            "price_check_failed",
            {"request_text": request_text, "search_term": check.search_term, "error": check.error},
        )
        return check

    products = check.scrape.products
    check.steps.append("Extracting results...")
    check.steps.append(f"Found {len(products)} products")
    if len(products) > 1:
        check.steps.append("Analyzing products to generate refinement question...")

    session = RefinementSession(engine, request_text=request_text)
    await session.start(products)
    check.session = session

    log_interaction(
        "price_check_started",
        {
            "request_text": request_text,
            "search_term": check.search_term,
            "session_id": session.session_id,
            "products": len(products),
            "phase": session.phase.value,
        },
    )
    return check
