"""
Turn a correlated table pair plus the page's images into a normalized Listing.
"""
import re
from datetime import datetime
from typing import Iterable, Sequence

from .models import ImageCandidate, KnownMetadata, Listing, ListingCandidate
from .tables import FieldClassifier, PositionalClassifier
from .utils import clean_text, site_root, utc_now

AMENITY_DELIMITERS = re.compile(r"[\n,]")

_POSITIONAL = PositionalClassifier()


def split_amenities(text: str) -> frozenset[str]:
    """'LED TV, WiFi\\nLift' -> {'LED TV', 'WiFi', 'Lift'}"""
    if not text:
        return frozenset()
    return frozenset(item for item in (clean_text(part) for part in AMENITY_DELIMITERS.split(text)) if item)


def _resolve_link(href: str, source_url: str) -> str:
    if href.startswith("http"):
        return href
    return site_root(source_url) + "/" + href.lstrip("/")


def assemble(
    candidate: ListingCandidate,
    images: Sequence[ImageCandidate],
    source_url: str,
    known_metadata: KnownMetadata | None = None,
    classifier: FieldClassifier | None = None,
    location: str = "",
    extracted_at: datetime | None = None,
) -> Listing:
    """
    Build a Listing from one promoted candidate. Images are attached page-wide: the
    markup gives no way to tell which photo belongs to which listing. Fields set on
    known_metadata override extracted values.
    """
    fields = (classifier or _POSITIONAL).classify(candidate.detail_cells)
    name = clean_text(candidate.title_text)
    address = clean_text(fields.address)
    contact = clean_text(fields.contact)
    amenities = split_amenities(fields.amenities_text)
    location = clean_text(location)

    if known_metadata is not None:
        if known_metadata.name is not None:
            name = clean_text(known_metadata.name)
        if known_metadata.location is not None:
            location = clean_text(known_metadata.location)
        if known_metadata.address is not None:
            address = clean_text(known_metadata.address)
        if known_metadata.contact is not None:
            contact = clean_text(known_metadata.contact)
        if known_metadata.amenities is not None:
            amenities = frozenset(a for a in (clean_text(x) for x in known_metadata.amenities) if a)

    detail_url = _resolve_link(candidate.detail_links[0], source_url) if candidate.detail_links else None

    return Listing(
        name=name,
        location=location,
        address=address,
        contact=contact,
        amenities=amenities,
        images=tuple(images),
        source_url=source_url,
        extracted_at=extracted_at or utc_now(),
        detail_url=detail_url,
    )


def assemble_known(
    known_metadata: KnownMetadata,
    images: Sequence[ImageCandidate],
    source_url: str,
    location: str = "",
    extracted_at: datetime | None = None,
) -> Listing:
    """Hybrid record for a curated page with no table pair: hand-verified fields + extracted images."""
    empty = ListingCandidate(title_text="", detail_cells=(), table_index_pair=(-1, -1))
    return assemble(empty, images, source_url, known_metadata=known_metadata,
                    location=location, extracted_at=extracted_at)


def dedupe_listings(listings: Iterable[Listing]) -> list[Listing]:
    """Drop repeats of the same PG seen on several pages; key is case-folded (name, address)."""
    seen = set()
    unique = []
    for listing in listings:
        key = (listing.name.casefold(), listing.address.casefold())
        if key in seen:
            continue
        seen.add(key)
        unique.append(listing)
    return unique
