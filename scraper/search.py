"""Drive a marketplace's search box and hand the results page to the extractor.

The interaction mirrors what a person does: type the term, let the
site's autocomplete react, pick the first suggestion if one shows up,
otherwise press Enter. Sites differ in whether a suggestion click or the
Enter key navigates, and some update results in place, so every wait
after typing is best-effort and extraction runs against whatever page is
loaded at the end.
"""

from typing import Any, List, Optional, Tuple

from playwright.async_api import Error as PlaywrightError

from scraper.config import (
    AUTOCOMPLETE_DELAY_MS,
    DEFAULT_SITE_URL,
    NAVIGATION_TIMEOUT_MS,
    SEARCH_INPUT_SELECTOR,
    SETTLE_TIMEOUT_MS,
    SUGGESTION_SELECTORS,
    SUGGESTION_TIMEOUT_MS,
    WAIT_FOR_SELECTOR_TIMEOUT_MS,
)
from scraper.extractor import extract_products
from scraper.logging_config import get_logger, log_scrape_event
from scraper.models import FormFillAction, ScrapeResult, SearchOutcome
from scraper.scraper import fill_form
from scraper.site_configs import resolve_site_config
from scraper.url_validation import URLValidationError, validate_url

__all__ = [
    "find_suggestion",
    "wait_for_navigation",
    "submit_search",
    "search",
    "search_products",
]

logger = get_logger("search")


async def find_suggestion(
    page: Any,
    selectors: List[str],
    timeout_ms: int = SUGGESTION_TIMEOUT_MS,
) -> Tuple[Optional[Any], Optional[str]]:
    """Look for an autocomplete suggestion.

    Checks each selector in order without waiting; if none is present yet,
    waits once (up to ``timeout_ms``) for any of them to appear and then
    re-checks in order. Running out of time is a normal outcome.

    Returns:
        (element handle, selector) or (None, None)
    """

    async def _first_present() -> Tuple[Optional[Any], Optional[str]]:
        for selector in selectors:
            try:
                element = await page.query_selector(selector)
            except PlaywrightError as e:
                logger.debug(f"Suggestion selector {selector!r} failed: {e}")
                continue
            if element is not None:
                return element, selector
        return None, None

    element, selector = await _first_present()
    if element is not None:
        return element, selector

    try:
        await page.wait_for_selector(", ".join(selectors), state="visible", timeout=timeout_ms)
    except PlaywrightError:
        logger.debug("No autocomplete suggestion appeared")
        return None, None

    return await _first_present()


async def wait_for_navigation(
    page: Any,
    previous_url: str,
    timeout_ms: int = SETTLE_TIMEOUT_MS,
) -> bool:
    """Wait for the URL to change and the network to go quiet.

    Both waits are best-effort; a timeout is logged, not raised.

    Returns:
        True if the page URL changed from ``previous_url``
    """
    navigated = page.url != previous_url
    if not navigated:
        try:
            await page.wait_for_url(lambda url: url != previous_url, timeout=timeout_ms)
            navigated = True
        except PlaywrightError:
            logger.info("Search did not navigate; reading the current page")

    try:
        await page.wait_for_load_state("networkidle", timeout=timeout_ms)
    except PlaywrightError:
        logger.debug("Page did not settle before timeout, continuing")

    return navigated


async def submit_search(
    page: Any,
    search_term: str,
    input_selector: str = SEARCH_INPUT_SELECTOR,
    suggestion_selectors: Optional[List[str]] = None,
) -> SearchOutcome:
    """Type a search term into the loaded page and submit it."""
    selectors = suggestion_selectors if suggestion_selectors is not None else SUGGESTION_SELECTORS

    await fill_form(page, [FormFillAction(selector=input_selector, value=search_term)])
    await page.wait_for_timeout(AUTOCOMPLETE_DELAY_MS)

    previous_url = page.url
    submitted_via = "enter"

    suggestion, suggestion_selector = await find_suggestion(page, selectors)
    if suggestion is not None:
        try:
            await suggestion.click(timeout=SUGGESTION_TIMEOUT_MS)
            submitted_via = "suggestion"
            logger.info(f"Clicked autocomplete suggestion ({suggestion_selector})")
        except PlaywrightError as e:
            logger.warning(f"Could not click suggestion {suggestion_selector}: {e}")

    if submitted_via == "enter":
        try:
            await page.press(input_selector, "Enter")
        except PlaywrightError as e:
            logger.warning(f"Could not submit search with Enter: {e}")

    navigated = await wait_for_navigation(page, previous_url)

    # The page may have moved; read where we actually are
    return SearchOutcome(
        url=page.url,
        title=await page.title(),
        submitted_via=submitted_via,
        navigated=navigated,
    )


async def search(
    page: Any,
    site_url: str,
    search_term: str,
    input_selector: str = SEARCH_INPUT_SELECTOR,
    suggestion_selectors: Optional[List[str]] = None,
) -> SearchOutcome:
    """Open the site, wait for its search box and submit ``search_term``.

    Raises:
        playwright Error/TimeoutError if the site cannot be loaded or the
        search box never appears.
    """
    await page.goto(site_url, wait_until="networkidle", timeout=NAVIGATION_TIMEOUT_MS)
    await page.wait_for_selector(input_selector, timeout=WAIT_FOR_SELECTOR_TIMEOUT_MS)
    return await submit_search(page, search_term, input_selector, suggestion_selectors)


async def search_products(
    pool: Any,
    search_term: str,
    site_url: str = DEFAULT_SITE_URL,
    input_selector: str = SEARCH_INPUT_SELECTOR,
    suggestion_selectors: Optional[List[str]] = None,
) -> ScrapeResult:
    """Search a marketplace and extract the product cards it shows.

    Args:
        pool: BrowserPool (anything with an async ``page()`` context manager)
        search_term: Text typed into the search box
        site_url: Marketplace home page
        input_selector: CSS selector of the search box
        suggestion_selectors: Override for the autocomplete selector list

    Returns:
        ScrapeResult with ``products``. ``success`` is False only when the
        site could not be loaded or searched; an unsupported site or a page
        without cards is a success with no products.
    """
    try:
        site_url = validate_url(site_url)
    except URLValidationError as e:
        logger.error(f"URL validation failed: {e}")
        return ScrapeResult(success=False, url=site_url, error=f"Invalid URL: {e}")

    log_scrape_event("search_start", {"site_url": site_url, "search_term": search_term})

    try:
        async with pool.page() as page:
            outcome = await search(page, site_url, search_term, input_selector, suggestion_selectors)
            html = await page.content()
    except PlaywrightError as e:
        logger.error(f"Search on {site_url} failed: {e}")
        log_scrape_event(
            "scrape_error",
            {"site_url": site_url, "search_term": search_term, "error": str(e)},
        )
        return ScrapeResult(success=False, url=site_url, error=str(e))

    config = resolve_site_config(outcome.url) or resolve_site_config(site_url)
    products = extract_products(html, config) if config is not None else []
    if config is None:
        logger.info(f"No extraction configuration for {outcome.url}")

    result = ScrapeResult(
        success=True,
        url=outcome.url,
        title=outcome.title,
        products=products,
        metadata={
            "search_term": search_term,
            "site": config.name if config is not None else None,
            "submitted_via": outcome.submitted_via,
            "navigated": outcome.navigated,
        },
    )
    log_scrape_event(
        "search_complete",
        {
            "url": outcome.url,
            "search_term": search_term,
            "submitted_via": outcome.submitted_via,
            "navigated": outcome.navigated,
            "products": len(products),
        },
    )
    return result
