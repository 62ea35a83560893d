"""Per-site extraction configuration and the registry that resolves it.

Each supported marketplace is described by a plain record: the host
strings it answers to, the base URL for relative links, and for every
field an ordered list of CSS selectors. The first selector that matches
wins, so a list degrades gracefully when the markup changes. Adding a
site means adding a record here (or to the JSON file named by
SITE_CONFIGS_PATH), never touching the extractor.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from scraper.config import SITE_CONFIGS_PATH

__all__ = [
    "SiteExtractionConfig",
    "SITE_CONFIGS",
    "FIELD_NAMES",
    "get_site_configs",
    "load_site_configs",
    "resolve_site_config",
]

logger = logging.getLogger("scraper.site_configs")

# Selector map keys understood by the extractor
FIELD_NAMES = (
    "card_container",
    "title",
    "title_link",
    "product_url",
    "image",
    "category",
    "grade",
    "grade_title",
    "rating",
    "price",
    "price_reduction",
    "trade_in_voucher",
    "trade_in_cash",
    "warranty_badge",
)


@dataclass(frozen=True)
class SiteExtractionConfig:
    """Declarative extraction rules for one marketplace."""

    name: str
    domain: List[str]
    base_url: str
    selectors: Dict[str, List[str]] = field(default_factory=dict)

    def selectors_for(self, field_name: str) -> List[str]:
        """Ordered selector fallback list for a field (empty if unconfigured)."""
        return list(self.selectors.get(field_name, []))

    def matches(self, url: str) -> bool:
        return any(d and d in url for d in self.domain)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "domain": list(self.domain),
            "base_url": self.base_url,
            "selectors": {k: list(v) for k, v in self.selectors.items()},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SiteExtractionConfig":
        """Create from a plain record.

        ``domain`` may be a single string or a list of strings. Unknown
        selector keys are kept but ignored by the extractor.
        """
        raw_domain: Union[str, Sequence[str]] = data.get("domain", [])
        domains = [raw_domain] if isinstance(raw_domain, str) else list(raw_domain)
        if not domains:
            raise ValueError("Site configuration needs at least one domain")

        selectors: Dict[str, List[str]] = {}
        for key, value in (data.get("selectors") or {}).items():
            selectors[key] = [value] if isinstance(value, str) else list(value)

        if not selectors.get("card_container"):
            raise ValueError(f"Site configuration for {domains[0]} has no card_container selectors")

        return cls(
            name=data.get("name") or domains[0],
            domain=domains,
            base_url=data.get("base_url", ""),
            selectors=selectors,
        )


# =============================================================================
# Built-in Site Configurations
# =============================================================================

SITE_CONFIGS: List[Dict[str, Any]] = [
    {
        "name": "webuy",
        "domain": ["webuy.com", "cex.io"],
        "base_url": "https://uk.webuy.com",
        "selectors": {
            "card_container": [
                ".search-product-card",
                ".cx-card-product",
                "[class*='product-card']",
            ],
            "title": [
                ".card-title a",
                ".card-title",
                "h3",
                "[class*='title']",
            ],
            # Title inside a link: text and URL in one step
            "title_link": [
                ".card-title a",
            ],
            "product_url": [
                ".card-title a",
                "a[href*='product-detail']",
                "a[href*='product']",
            ],
            # The photo sits at .card-img > a > img; badge overlays share the block
            "image": [
                ".card-img > a > img",
                ".card-img a img",
                ".card-img img",
                ".thumbnail a img",
                ".thumbnail img",
                "img[src*='product_images']",
                "img[src*='product']",
            ],
            "category": [
                ".card-subtitle",
                "[class*='subtitle']",
                "[class*='category']",
            ],
            "grade": [
                ".grade-letter",
                "[class*='grade-letter']",
            ],
            "grade_title": [
                ".grade-title",
                "[class*='grade-title']",
            ],
            "rating": [
                ".card-rating span",
                "[class*='rating'] span",
            ],
            "price": [
                ".price-wrapper .product-main-price",
                ".product-main-price",
                "[class*='price']",
            ],
            "price_reduction": [
                ".price-wrapper .price-reduction",
                ".price-reduction",
            ],
            # Voucher and cash amounts share one container; told apart by label text
            "trade_in_voucher": [
                ".tradeInPrices .product-main-price",
            ],
            "trade_in_cash": [
                ".tradeInPrices .product-main-price",
            ],
            "warranty_badge": [
                ".cx-warranty-badge",
                "[class*='warranty']",
                "img[alt*='Warranty']",
            ],
        },
    },
]


def load_site_configs(path: Path) -> List[SiteExtractionConfig]:
    """Load extra site configurations from a JSON file.

    The file holds a list of records in the same shape as SITE_CONFIGS.
    Invalid records are logged and skipped.

    Args:
        path: JSON file path

    Returns:
        List of parsed configurations in file order
    """
    with open(path, "r", encoding="utf-8") as f:
        records = json.load(f)

    if not isinstance(records, list):
        raise ValueError(f"{path} must contain a JSON list of site configurations")

    configs: List[SiteExtractionConfig] = []
    for record in records:
        try:
            configs.append(SiteExtractionConfig.from_dict(record))
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Skipping invalid site configuration in {path}: {e}")
    return configs


def get_site_configs(extra_path: Optional[Path] = SITE_CONFIGS_PATH) -> List[SiteExtractionConfig]:
    """All registered configurations in registration order.

    Built-ins come first, then any loaded from ``extra_path``.
    """
    configs = [SiteExtractionConfig.from_dict(record) for record in SITE_CONFIGS]
    if extra_path is not None:
        try:
            configs.extend(load_site_configs(extra_path))
        except (OSError, ValueError) as e:
            logger.error(f"Could not load site configurations from {extra_path}: {e}")
    return configs


def resolve_site_config(
    url: Any,
    configs: Optional[Sequence[SiteExtractionConfig]] = None,
) -> Optional[SiteExtractionConfig]:
    """Get the extraction configuration for a URL.

    Matches by substring containment of any configured domain; the first
    matching configuration in registration order wins. An unsupported
    site yields None rather than an error.
    """
    if not isinstance(url, str) or not url:
        return None

    for config in configs if configs is not None else get_site_configs():
        if config.matches(url):
            return config
    return None
