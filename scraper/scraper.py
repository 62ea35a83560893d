"""Core scraping logic: open a page, optionally fill a form, read it."""

from dataclasses import replace
from typing import Any, List, Optional

from bs4 import BeautifulSoup
from playwright.async_api import Error as PlaywrightError
from soupsieve import SelectorSyntaxError

from scraper.config import (
    FORM_FILL_DELAY_MS,
    NAVIGATION_TIMEOUT_MS,
    WAIT_FOR_SELECTOR_TIMEOUT_MS,
)
from scraper.extractor import extract_products
from scraper.html_utils import element_text, extract_images, extract_links, extract_page_text
from scraper.logging_config import get_logger, log_scrape_event
from scraper.models import FormFillAction, ScrapeOptions, ScrapeResult
from scraper.site_configs import resolve_site_config
from scraper.url_validation import URLValidationError, validate_url

__all__ = [
    "fill_form",
    "read_page",
    "scrape",
    "scrape_multiple",
]

logger = get_logger("scraper")


async def fill_form(
    page: Any,
    actions: List[FormFillAction],
    timeout_ms: int = WAIT_FOR_SELECTOR_TIMEOUT_MS,
) -> List[str]:
    """Fill form inputs one by one.

    A field that cannot be found or filled is logged and skipped; the
    remaining fields are still attempted.

    Returns:
        Selectors of the fields that were filled
    """
    filled: List[str] = []
    for action in actions:
        try:
            await page.wait_for_selector(action.selector, timeout=timeout_ms)
            await page.fill(action.selector, action.value)

            # Let reactive listeners (autocomplete, validation) see the new value
            if action.trigger_change:
                await page.dispatch_event(action.selector, "input")
                await page.dispatch_event(action.selector, "change")

            await page.wait_for_timeout(FORM_FILL_DELAY_MS)
            filled.append(action.selector)
        except PlaywrightError as e:
            logger.warning(f"Failed to fill form field {action.selector}: {e}")
            log_scrape_event(
                "form_fill_error",
                {"selector": action.selector, "error": str(e)},
            )
    return filled


def _select_texts(soup: BeautifulSoup, selector: str) -> List[str]:
    try:
        return [element_text(el) for el in soup.select(selector)]
    except (SelectorSyntaxError, ValueError, NotImplementedError) as e:
        logger.debug(f"Selector {selector!r} failed: {e}")
        return []


async def read_page(page: Any, options: ScrapeOptions, result: ScrapeResult) -> ScrapeResult:
    """Collect the requested data from the current page state into ``result``."""
    html = await page.content()
    soup = BeautifulSoup(html, "html.parser")
    current_url = page.url or result.url

    if options.extract_text:
        result.text = extract_page_text(soup)
    if options.extract_links:
        result.links = extract_links(soup, current_url)
    if options.extract_images:
        result.images = extract_images(soup, current_url)

    for selector in options.selectors:
        result.metadata.setdefault("selectors", {})[selector] = _select_texts(soup, selector)

    if options.extract_products:
        config = resolve_site_config(current_url) or resolve_site_config(options.url)
        if config is not None:
            result.products = extract_products(html, config)
            result.metadata["site"] = config.name
        else:
            logger.info(f"No extraction configuration for {current_url}, skipping products")
            result.metadata["site"] = None

    return result


async def scrape(pool: Any, options: ScrapeOptions) -> ScrapeResult:
    """Scrape a single URL in its own browser context.

    Args:
        pool: BrowserPool (anything with an async ``page()`` context manager)
        options: What to wait for, fill in and collect

    Returns:
        ScrapeResult; ``success`` is False when the URL is invalid or the
        page could not be loaded, in which case ``error`` says why.
    """
    try:
        url = validate_url(options.url)
    except URLValidationError as e:
        logger.error(f"URL validation failed: {e}")
        return ScrapeResult(success=False, url=options.url, error=f"Invalid URL: {e}")

    log_scrape_event("scrape_start", {"url": url})

    try:
        async with pool.page() as page:
            await page.goto(url, wait_until="networkidle", timeout=NAVIGATION_TIMEOUT_MS)
            result = ScrapeResult(success=True, url=page.url or url, title=await page.title())

            if options.wait_for_selector:
                await page.wait_for_selector(
                    options.wait_for_selector,
                    timeout=options.wait_for_timeout or WAIT_FOR_SELECTOR_TIMEOUT_MS,
                )

            if options.fill_form:
                await fill_form(
                    page,
                    options.fill_form,
                    options.wait_for_timeout or WAIT_FOR_SELECTOR_TIMEOUT_MS,
                )

            await read_page(page, options, result)

    except PlaywrightError as e:
        logger.error(f"Error scraping {url}: {e}")
        log_scrape_event("scrape_error", {"url": url, "error": str(e)})
        return ScrapeResult(success=False, url=url, error=str(e))

    log_scrape_event(
        "scrape_complete",
        {"url": result.url, "products": len(result.products)},
    )
    return result


async def scrape_multiple(
    pool: Any,
    urls: List[str],
    options: Optional[ScrapeOptions] = None,
) -> List[ScrapeResult]:
    """Scrape several URLs one after another, one result per URL in order."""
    template = options or ScrapeOptions(url="")
    results: List[ScrapeResult] = []
    for url in urls:
        results.append(await scrape(pool, replace(template, url=url)))
    return results
