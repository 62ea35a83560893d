"""Text and markup helpers for reading product cards and pages."""

import re
from typing import Iterable, List, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

__all__ = [
    "PRICE_RE",
    "RATING_RE",
    "DECORATIVE_IMAGE_MARKERS",
    "clean_text",
    "element_text",
    "extract_currency_amount",
    "extract_rating",
    "is_decorative_image",
    "image_source",
    "link_href",
    "classify_trade_in_label",
    "extract_page_text",
    "extract_links",
    "extract_images",
]

# Currency symbol followed by digits, thousands separators and decimals
PRICE_RE = re.compile(r"[£$€]\s?\d[\d,]*(?:\.\d+)?")

RATING_RE = re.compile(r"\d+(?:\.\d+)?")

# Overlays (warranty badges, icons) that share an image block with the photo
DECORATIVE_IMAGE_MARKERS = ("badge", "icon", "warranty")

_WS_RE = re.compile(r"\s+")

_NON_TEXT_TAGS = {"script", "style", "noscript", "template"}


def clean_text(text: Optional[str]) -> str:
    """Collapse runs of whitespace and strip."""
    if not text:
        return ""
    return _WS_RE.sub(" ", text).strip()


def element_text(el: Optional[Tag]) -> str:
    if el is None:
        return ""
    return clean_text(el.get_text(" ", strip=True))


def extract_currency_amount(text: Optional[str]) -> Optional[str]:
    """Pull the first currency amount out of free text.

    "Sell £300.00 was £320" -> "£300.00". Returns None when no amount
    is present so that label-only text is never stored as a price.
    """
    if not text:
        return None
    match = PRICE_RE.search(text)
    if not match:
        return None
    return match.group(0).replace(" ", "")


def extract_rating(text: Optional[str]) -> Optional[float]:
    """Numeric part of a rating label, e.g. "4.5 (12 reviews)" -> 4.5."""
    if not text:
        return None
    match = RATING_RE.search(text)
    if not match:
        return None
    try:
        return float(match.group(0))
    except ValueError:
        return None


def is_decorative_image(url: Optional[str]) -> bool:
    if not url:
        return False
    lowered = url.lower()
    return any(marker in lowered for marker in DECORATIVE_IMAGE_MARKERS)


def image_source(img: Tag) -> Optional[str]:
    """Image URL from src, falling back to lazy-loading attributes."""
    for attr in ("src", "data-src", "data-lazy-src"):
        value = img.get(attr)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def link_href(el: Tag) -> Optional[str]:
    """href of an element, or of the first link inside it."""
    href = el.get("href")
    if isinstance(href, str) and href.strip():
        return href.strip()
    inner = el.find("a", href=True)
    if isinstance(inner, Tag):
        value = inner.get("href")
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def classify_trade_in_label(texts: Iterable[str]) -> Optional[str]:
    """Decide whether an amount is a voucher or a cash trade-in price.

    Scans the text surrounding the amount, nearest first, for the words
    "Voucher" and "Cash". The first text that mentions exactly one of
    them decides; text mentioning both is too far out to tell.

    Returns:
        "voucher", "cash", or None
    """
    for text in texts:
        lowered = text.lower()
        has_voucher = "voucher" in lowered
        has_cash = "cash" in lowered
        if has_voucher and not has_cash:
            return "voucher"
        if has_cash and not has_voucher:
            return "cash"
    return None


# =============================================================================
# Page-Level Helpers
# =============================================================================

def extract_page_text(soup: BeautifulSoup) -> str:
    """Readable text of the main content, without scripts and styles."""
    root = soup.find("main") or soup.body or soup
    texts = [
        s.strip()
        for s in root.find_all(string=True)
        if s.strip() and s.parent is not None and s.parent.name not in _NON_TEXT_TAGS
    ]
    return "\n".join(texts)


def extract_links(soup: BeautifulSoup, page_url: str) -> List[str]:
    """Absolute link targets on the page, minus javascript: pseudo-links."""
    links: List[str] = []
    for a in soup.find_all("a", href=True):
        href = a.get("href")
        if not isinstance(href, str) or href.strip().lower().startswith("javascript:"):
            continue
        links.append(urljoin(page_url, href.strip()))
    return links


def extract_images(soup: BeautifulSoup, page_url: str) -> List[str]:
    images: List[str] = []
    for img in soup.find_all("img"):
        src = image_source(img)
        if src:
            images.append(urljoin(page_url, src))
    return images
