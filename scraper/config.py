"""Configuration and constants for the marketplace scraper."""

import os
from pathlib import Path
from typing import Dict, List, Optional

__all__ = [
    "DEFAULT_SITE_URL",
    "SEARCH_INPUT_SELECTOR",
    "SUGGESTION_SELECTORS",
    "NAVIGATION_TIMEOUT_MS",
    "WAIT_FOR_SELECTOR_TIMEOUT_MS",
    "SUGGESTION_TIMEOUT_MS",
    "SETTLE_TIMEOUT_MS",
    "FORM_FILL_DELAY_MS",
    "AUTOCOMPLETE_DELAY_MS",
    "HEADLESS",
    "VIEWPORT",
    "USER_AGENT",
    "LOCALE",
    "TIMEZONE_ID",
    "MAX_PRODUCTS",
    "SITE_CONFIGS_PATH",
    "SEARCH_SITE_KEYWORDS",
]

# Default marketplace to search
DEFAULT_SITE_URL = os.getenv("DEFAULT_SITE_URL", "https://uk.webuy.com")

# Search box on the marketplace home page
SEARCH_INPUT_SELECTOR = os.getenv("SEARCH_INPUT_SELECTOR", "#predictiveSearchText")

# Autocomplete suggestion rows, tried in order.
# Markup differs between sites and between redesigns of the same site.
SUGGESTION_SELECTORS: List[str] = [
    ".predictive-search-results a",
    ".predictive-search-result",
    "[class*='predictive'] li a",
    ".autocomplete-suggestions li",
    ".autocomplete-suggestion",
    "ul[role='listbox'] li",
    "[role='option']",
    ".search-suggestions a",
    ".dropdown-menu .dropdown-item",
]

# Timeouts (milliseconds), one per wait step
NAVIGATION_TIMEOUT_MS = int(os.getenv("NAVIGATION_TIMEOUT_MS", "30000"))
WAIT_FOR_SELECTOR_TIMEOUT_MS = int(os.getenv("WAIT_FOR_SELECTOR_TIMEOUT_MS", "15000"))
SUGGESTION_TIMEOUT_MS = int(os.getenv("SUGGESTION_TIMEOUT_MS", "2500"))
SETTLE_TIMEOUT_MS = int(os.getenv("SETTLE_TIMEOUT_MS", "10000"))

# Pause after filling a form field so reactive handlers can run
FORM_FILL_DELAY_MS = 500
# Pause before looking for autocomplete suggestions
AUTOCOMPLETE_DELAY_MS = int(os.getenv("AUTOCOMPLETE_DELAY_MS", "1500"))

# Browser settings
HEADLESS = os.getenv("HEADLESS", "True").lower() == "true"
VIEWPORT: Dict[str, int] = {"width": 1920, "height": 1080}
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)
LOCALE = "en-GB"
TIMEZONE_ID = "Europe/London"

# Safety limit on cards extracted from a single page
MAX_PRODUCTS = int(os.getenv("MAX_PRODUCTS", "200"))

# Optional JSON file with extra site configurations
SITE_CONFIGS_PATH: Optional[Path] = (
    Path(os.environ["SITE_CONFIGS_PATH"]) if os.getenv("SITE_CONFIGS_PATH") else None
)

# Words that mark a chat message as a marketplace search request
SEARCH_SITE_KEYWORDS: List[str] = [
    "webuy",
    "cex",
    "search webuy",
    "search cex",
    "find on webuy",
    "check webuy",
]
