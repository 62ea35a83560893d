"""Structured product extraction from search results pages.

The extractor is driven entirely by a SiteExtractionConfig: cards are
located with the ``card_container`` fallback list, then every field is
read from inside one card with its own fallback list. Failures are
isolated per selector attempt, so a broken selector costs one field of
one card, never the page.
"""

from typing import Any, Dict, List, Optional, Tuple

from bs4 import BeautifulSoup, Tag
from soupsieve import SelectorSyntaxError

from scraper.config import MAX_PRODUCTS
from scraper.html_utils import (
    classify_trade_in_label,
    element_text,
    extract_currency_amount,
    extract_rating,
    image_source,
    is_decorative_image,
    link_href,
)
from scraper.logging_config import get_logger, log_scrape_event
from scraper.models import ProductRecord
from scraper.site_configs import SiteExtractionConfig
from scraper.url_validation import resolve_url

__all__ = [
    "extract_products",
    "extract_from_page",
    "select_cards",
    "parse_card",
]

logger = get_logger("extractor")

_SELECTOR_ERRORS = (SelectorSyntaxError, ValueError, NotImplementedError)


# =============================================================================
# Selector Fallback Evaluation
# =============================================================================

def _safe_select(scope: Tag, selector: str) -> List[Tag]:
    """All matches for one selector, or [] if the selector itself is broken."""
    try:
        return list(scope.select(selector))
    except _SELECTOR_ERRORS as e:
        logger.debug(f"Selector {selector!r} failed: {e}")
        return []


def _first_match(scope: Tag, selectors: List[str]) -> Optional[Tag]:
    """First element found by the first selector that finds anything."""
    for selector in selectors:
        matches = _safe_select(scope, selector)
        if matches:
            return matches[0]
    return None


def select_cards(soup: Tag, selectors: List[str]) -> Tuple[List[Tag], Optional[str]]:
    """Locate product cards.

    Selectors are alternatives for the same cards, not complementary:
    the first one that matches at least one element is used and the
    rest are never evaluated.

    Returns:
        (cards in document order, winning selector)
    """
    for selector in selectors:
        cards = _safe_select(soup, selector)
        if cards:
            return cards, selector
    return [], None


# =============================================================================
# Field Readers
# =============================================================================

def _read_title(card: Tag, config: SiteExtractionConfig) -> Tuple[Optional[str], Optional[str]]:
    """Title and product URL.

    A title-as-link selector yields both at once; otherwise the title and
    the URL come from their own selector lists.
    """
    link = _first_match(card, config.selectors_for("title_link"))
    if link is not None:
        title = element_text(link)
        if title:
            return title, resolve_url(link_href(link), config.base_url)

    title_el = _first_match(card, config.selectors_for("title"))
    title = element_text(title_el) or None

    url_el = _first_match(card, config.selectors_for("product_url"))
    product_url = resolve_url(link_href(url_el), config.base_url) if url_el is not None else None
    return title, product_url


def _read_image(card: Tag, config: SiteExtractionConfig) -> Optional[str]:
    """Product photo URL, skipping badge and icon overlays."""
    for selector in config.selectors_for("image"):
        for img in _safe_select(card, selector):
            url = resolve_url(image_source(img), config.base_url)
            if url and not is_decorative_image(url):
                return url
    return None


def _read_text(card: Tag, selectors: List[str]) -> Optional[str]:
    return element_text(_first_match(card, selectors)) or None


def _read_amount(card: Tag, selectors: List[str]) -> Optional[str]:
    el = _first_match(card, selectors)
    if el is None:
        return None
    return extract_currency_amount(element_text(el))


def _is_inside(el: Tag, ancestor: Tag) -> bool:
    return any(parent is ancestor for parent in el.parents)


def _label_context(el: Tag, amounts: List[Tag], card: Tag) -> List[str]:
    """Text around an amount element, nearest first.

    1. the element's own text;
    2. each enclosing container, up to the card, that holds no other
       amount;
    3. the element with its following siblings, up to the next sibling
       holding another amount (flat markup with no wrappers).
    """
    texts = [element_text(el)]

    ancestor = el.parent
    while isinstance(ancestor, Tag):
        if any(other is not el and _is_inside(other, ancestor) for other in amounts):
            break
        texts.append(element_text(ancestor))
        if ancestor is card:
            break
        ancestor = ancestor.parent

    window = element_text(el)
    for sibling in el.next_siblings:
        if isinstance(sibling, Tag):
            if any(sibling is other or _is_inside(other, sibling) for other in amounts):
                break
            window = f"{window} {element_text(sibling)}"
        elif isinstance(sibling, str) and sibling.strip():
            window = f"{window} {sibling.strip()}"
    texts.append(window)
    return texts


def _read_trade_in(card: Tag, config: SiteExtractionConfig) -> Tuple[Optional[str], Optional[str]]:
    """Voucher and cash trade-in prices.

    Both usually sit under one container as sibling amount elements with
    no structural difference, so each amount is labelled by the words
    "Voucher" or "Cash" found nearest to it. Either may be absent.
    """
    elements: List[Tag] = []
    for field_name in ("trade_in_voucher", "trade_in_cash"):
        for selector in config.selectors_for(field_name):
            matches = _safe_select(card, selector)
            if matches:
                elements.extend(
                    m for m in matches if not any(m is seen for seen in elements)
                )
                break

    voucher: Optional[str] = None
    cash: Optional[str] = None
    for el in elements:
        amount = extract_currency_amount(element_text(el))
        if amount is None:
            continue
        label = classify_trade_in_label(_label_context(el, elements, card))
        if label == "voucher" and voucher is None:
            voucher = amount
        elif label == "cash" and cash is None:
            cash = amount
    return voucher, cash


def parse_card(card: Tag, config: SiteExtractionConfig) -> Optional[ProductRecord]:
    """Build a ProductRecord from one card element.

    Returns None for a card without a title.
    """
    title, product_url = _read_title(card, config)
    if not title:
        return None

    voucher, cash = _read_trade_in(card, config)

    return ProductRecord(
        title=title,
        source=config.name,
        image_url=_read_image(card, config),
        product_url=product_url,
        category=_read_text(card, config.selectors_for("category")),
        grade=_read_text(card, config.selectors_for("grade")),
        grade_title=_read_text(card, config.selectors_for("grade_title")),
        rating=extract_rating(_read_text(card, config.selectors_for("rating"))),
        price=_read_amount(card, config.selectors_for("price")),
        price_reduction=_read_amount(card, config.selectors_for("price_reduction")),
        trade_in_voucher=voucher,
        trade_in_cash=cash,
        warranty_badge=_first_match(card, config.selectors_for("warranty_badge")) is not None,
    )


# =============================================================================
# Page-Level Extraction
# =============================================================================

def extract_products(
    html: str,
    config: SiteExtractionConfig,
    max_products: int = MAX_PRODUCTS,
) -> List[ProductRecord]:
    """Extract product records from a results page.

    Args:
        html: Page markup as currently rendered
        config: Extraction rules for the page's site
        max_products: Safety limit on cards read

    Returns:
        Records in document order of their cards. Cards without a title
        are dropped; a page without cards yields [].
    """
    soup = BeautifulSoup(html or "", "html.parser")
    cards, card_selector = select_cards(soup, config.selectors_for("card_container"))

    products: List[ProductRecord] = []
    dropped = 0
    for position, card in enumerate(cards[:max_products]):
        try:
            product = parse_card(card, config)
        except Exception as e:
            # A card that cannot be read must not stop the remaining cards
            logger.warning(f"Failed to parse card {position} on {config.name}: {e}")
            dropped += 1
            continue
        if product is None:
            logger.debug(f"Dropping card {position} on {config.name}: no title")
            dropped += 1
            continue
        products.append(product)

    data: Dict[str, Any] = {
        "site": config.name,
        "card_selector": card_selector,
        "cards_found": len(cards),
        "products": len(products),
        "dropped": dropped,
    }
    log_scrape_event("extraction_complete", data)
    return products


async def extract_from_page(page: Any, config: SiteExtractionConfig) -> List[ProductRecord]:
    """Extract products from a live browser page."""
    html = await page.content()
    return extract_products(html, config)
