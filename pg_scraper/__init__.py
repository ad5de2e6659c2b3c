"""
Bangalore PG listing scraper package
"""
from .assemble import assemble, assemble_known, dedupe_listings
from .config import ScrapeOptions
from .db import ListingSink, PersistenceError, persist
from .images import locate_images
from .models import (
    BatchResult,
    ExtractionFailure,
    FailureReason,
    ImageCandidate,
    KnownMetadata,
    Listing,
    ListingCandidate,
)
from .scraper import ParseError, extract_page, extract_pages
from .tables import KeywordClassifier, PositionalClassifier, correlate_listings

__version__ = "1.0.0"

__all__ = [
    "assemble",
    "assemble_known",
    "dedupe_listings",
    "ScrapeOptions",
    "ListingSink",
    "PersistenceError",
    "persist",
    "locate_images",
    "BatchResult",
    "ExtractionFailure",
    "FailureReason",
    "ImageCandidate",
    "KnownMetadata",
    "Listing",
    "ListingCandidate",
    "ParseError",
    "extract_page",
    "extract_pages",
    "KeywordClassifier",
    "PositionalClassifier",
    "correlate_listings",
]
