"""Data models for scraped listings and scrape results."""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

__all__ = [
    "ProductRecord",
    "FormFillAction",
    "ScrapeOptions",
    "ScrapeResult",
    "SearchOutcome",
]


@dataclass(frozen=True)
class ProductRecord:
    """A single product card extracted from a search results page.

    Records are immutable; refinement narrows a list of them but never
    edits one. Only ``title`` and ``source`` are required.
    """

    title: str
    source: str

    image_url: Optional[str] = None
    product_url: Optional[str] = None
    category: Optional[str] = None
    grade: Optional[str] = None
    grade_title: Optional[str] = None
    rating: Optional[float] = None

    # Currency-formatted strings, e.g. "£300.00"
    price: Optional[str] = None
    price_reduction: Optional[str] = None
    trade_in_voucher: Optional[str] = None
    trade_in_cash: Optional[str] = None

    warranty_badge: bool = False
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProductRecord":
        """Create from dictionary, ignoring unknown keys."""
        return cls(
            title=data.get("title", ""),
            source=data.get("source", ""),
            image_url=data.get("image_url"),
            product_url=data.get("product_url"),
            category=data.get("category"),
            grade=data.get("grade"),
            grade_title=data.get("grade_title"),
            rating=data.get("rating"),
            price=data.get("price"),
            price_reduction=data.get("price_reduction"),
            trade_in_voucher=data.get("trade_in_voucher"),
            trade_in_cash=data.get("trade_in_cash"),
            warranty_badge=bool(data.get("warranty_badge", False)),
            metadata=dict(data.get("metadata") or {}),
        )


@dataclass
class FormFillAction:
    """Fill one form input before the page is read."""

    selector: str
    value: str
    trigger_change: bool = True  # dispatch input/change events after filling


@dataclass
class ScrapeOptions:
    """What to collect from a page."""

    url: str
    selectors: List[str] = field(default_factory=list)
    wait_for_selector: Optional[str] = None
    wait_for_timeout: Optional[int] = None
    extract_text: bool = True
    extract_links: bool = False
    extract_images: bool = False
    extract_products: bool = True
    fill_form: List[FormFillAction] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScrapeOptions":
        """Build options from a JSON request body."""
        return cls(
            url=data.get("url", ""),
            selectors=list(data.get("selectors") or []),
            wait_for_selector=data.get("wait_for_selector"),
            wait_for_timeout=data.get("wait_for_timeout"),
            extract_text=data.get("extract_text", True) is not False,
            extract_links=bool(data.get("extract_links", False)),
            extract_images=bool(data.get("extract_images", False)),
            extract_products=data.get("extract_products", True) is not False,
            fill_form=[
                FormFillAction(
                    selector=action.get("selector", ""),
                    value=action.get("value", ""),
                    trigger_change=action.get("trigger_change", True) is not False,
                )
                for action in data.get("fill_form") or []
            ],
        )


@dataclass
class ScrapeResult:
    """Outcome of loading and reading one page.

    ``success`` is False only when the page itself could not be loaded.
    An empty ``products`` list on a loaded page is still a success.
    """

    success: bool
    url: str
    title: Optional[str] = None
    text: Optional[str] = None
    links: Optional[List[str]] = None
    images: Optional[List[str]] = None
    products: List[ProductRecord] = field(default_factory=list)
    error: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "success": self.success,
            "url": self.url,
            "title": self.title,
            "text": self.text,
            "links": self.links,
            "images": self.images,
            "products": [p.to_dict() for p in self.products],
            "error": self.error,
            "metadata": self.metadata,
        }


@dataclass
class SearchOutcome:
    """Where the search interaction left the browser."""

    url: str
    title: str
    submitted_via: str  # "suggestion" or "enter"
    navigated: bool
