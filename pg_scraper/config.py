"""
Settings for the PG listing scraper: request identity, timeouts, source site and curated pages.
"""

from dataclasses import dataclass
from pathlib import Path

from .models import KnownMetadata
from .tables import CLASSIFIERS

# --- Config ---
OUTPUT_JSON = Path("data") / "pg_listings.json"  # relative to the working directory
BASE_URL = "https://www.payingguestinbengaluru.com"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
REQUEST_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-IN,en;q=0.9",
}
DEFAULT_TIMEOUT_MS = 15000
DEFAULT_WORKERS = 4
RETRY_BACKOFF_SEC = 2  # double after each attempt
DEFAULT_CLASSIFIER = "positional"
CANCEL_POLL_SEC = 0.1  # how often the batch runner checks for cancellation
DETAIL_IMAGE_LIMIT = 5

# High-traffic area pages on payingguestinbengaluru.com (BASE_URL/<slug>.html)
PRIORITY_AREAS = [
    "koramangala",
    "marathahalli",
    "whitefield",
    "hsrlayout",
    "btmlayout",
    "indiranagar",
    "jayanagar",
    "electroniccity",
    "adugodi",
    "malleswaram",
]

# Hand-verified metadata for pages whose markup does not carry a table pair.
# Extracted images are still merged in; these fields win over anything extracted.
KNOWN_PAGES = {
    f"{BASE_URL}/Sri-Ram-Sai-Ladies-PG-in-JP-Nagar-Bangalore.html": KnownMetadata(
        name="Sri Ram Sai Ladies PG",
        location="JP Nagar, Bangalore",
        address="# 33, 2nd Cross, Venkatadri Layout, Panduranaga Nagar, JP Nagar 5th Phase, Bangalore - 560076",
        contact="GOPAL REDDY - 8792118431, 8123448478",
        amenities=frozenset({
            "New Building with Full Ventilation",
            "LED TV in Each room",
            "Hi-Speed WI-FI Connectivity",
            "Spring Matress",
            "Attached Western Bathrooms",
            "North & South Indian Homely Food",
            "Kitchen with Oven, Fridge, Water Filter",
            "Self Cooking",
            "3 times food, Dining Hall",
            "Fridge, Washing Machine & Laundry",
            "24 Hrs Hot Water",
            "Lift, Powerbackup",
            "Parking & Security with CCTV Cameras",
            "1, 2, 3 Sharing",
        }),
    ),
}


@dataclass
class ScrapeOptions:
    """Per-call options for page extraction. CLI flags map onto these fields."""

    timeout_ms: int = DEFAULT_TIMEOUT_MS
    user_agent: str = DEFAULT_USER_AGENT
    known_metadata: KnownMetadata | None = None
    location: str = ""
    classifier: str = DEFAULT_CLASSIFIER
    # fetch each listing's detail page for extra photos (one request per listing)
    follow_detail_pages: bool = False
    detail_image_limit: int = DETAIL_IMAGE_LIMIT

    def __post_init__(self):
        if self.classifier not in CLASSIFIERS:
            raise ValueError(f"Unknown classifier {self.classifier!r}; choose from {sorted(CLASSIFIERS)}")

    @property
    def timeout_sec(self) -> float:
        return self.timeout_ms / 1000.0
