"""Marketplace search and product card extraction package."""

__version__ = "0.1.0"

# Re-export main components for convenient imports
from scraper.browser import BrowserPool
from scraper.config import DEFAULT_SITE_URL, SEARCH_INPUT_SELECTOR
from scraper.extractor import extract_from_page, extract_products
from scraper.models import FormFillAction, ProductRecord, ScrapeOptions, ScrapeResult
from scraper.scraper import scrape, scrape_multiple
from scraper.search import search, search_products
from scraper.site_configs import SiteExtractionConfig, get_site_configs, resolve_site_config

__all__ = [
    # Version
    "__version__",
    # Config
    "DEFAULT_SITE_URL",
    "SEARCH_INPUT_SELECTOR",
    "SiteExtractionConfig",
    "get_site_configs",
    "resolve_site_config",
    # Models
    "ProductRecord",
    "FormFillAction",
    "ScrapeOptions",
    "ScrapeResult",
    # Core functions
    "BrowserPool",
    "extract_products",
    "extract_from_page",
    "scrape",
    "scrape_multiple",
    "search",
    "search_products",
]
