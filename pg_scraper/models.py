"""
Data models for the PG listing scraper.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


@dataclass(frozen=True)
class ImageCandidate:
    """One accepted, de-duplicated image reference on a page."""

    absolute_url: str
    alt_text: str
    position_index: int
    is_primary: bool

    def to_dict(self) -> dict:
        return {
            "url": self.absolute_url,
            "alt": self.alt_text,
            "index": self.position_index,
            "isPrimary": self.is_primary,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "ImageCandidate":
        return cls(
            absolute_url=d["url"],
            alt_text=d.get("alt") or "",
            position_index=int(d.get("index") or 0),
            is_primary=bool(d.get("isPrimary")),
        )


@dataclass(frozen=True)
class ListingCandidate:
    """A title table paired with the details table that follows it."""

    title_text: str
    detail_cells: tuple[str, ...]
    table_index_pair: tuple[int, int]
    # href values ending in .html found in the details table
    detail_links: tuple[str, ...] = ()


@dataclass(frozen=True)
class KnownMetadata:
    """Curated fields for a specific page; any field that is set overrides extraction."""

    name: str | None = None
    location: str | None = None
    address: str | None = None
    contact: str | None = None
    amenities: frozenset[str] | None = None


@dataclass(frozen=True)
class Listing:
    """Normalized PG / room record, the unit handed to the persistence sink."""

    name: str
    location: str
    address: str
    contact: str
    amenities: frozenset[str]
    images: tuple[ImageCandidate, ...]
    source_url: str
    extracted_at: datetime
    detail_url: str | None = None
    # photos from detail_url, filled only when detail pages are followed
    detail_images: tuple[ImageCandidate, ...] = ()

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "location": self.location,
            "address": self.address,
            "contact": self.contact,
            "amenities": sorted(self.amenities),
            "images": [img.to_dict() for img in self.images],
            "extractedAt": self.extracted_at.isoformat(),
            "source": self.source_url,
            "detailPageUrl": self.detail_url,
            "detailImages": [img.to_dict() for img in self.detail_images],
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Listing":
        return cls(
            name=d.get("name") or "",
            location=d.get("location") or "",
            address=d.get("address") or "",
            contact=d.get("contact") or "",
            amenities=frozenset(d.get("amenities") or ()),
            images=tuple(ImageCandidate.from_dict(i) for i in d.get("images") or ()),
            source_url=d.get("source") or "",
            extracted_at=datetime.fromisoformat(d["extractedAt"]),
            detail_url=d.get("detailPageUrl"),
            detail_images=tuple(ImageCandidate.from_dict(i) for i in d.get("detailImages") or ()),
        )


class FailureReason(str, Enum):
    NETWORK_ERROR = "NetworkError"
    PARSE_ERROR = "ParseError"
    CANCELLED = "Cancelled"
    UNEXPECTED_ERROR = "UnexpectedError"


@dataclass(frozen=True)
class ExtractionFailure:
    """Page-level failure: the page is excluded from the batch, siblings carry on."""

    url: str
    reason: FailureReason
    detail: str = ""


@dataclass
class BatchResult:
    listings: list[Listing] = field(default_factory=list)
    failures: list[ExtractionFailure] = field(default_factory=list)
