"""
Recover listings from pages that lay each PG out as two consecutive <table>s:
a heading table with the title, then a details table whose cells hold amenities,
address and contact. Nothing else (ids, classes) marks a listing.
"""

import logging
import re
from dataclasses import dataclass
from typing import Protocol, Sequence

from bs4 import BeautifulSoup

from .models import ListingCandidate

logger = logging.getLogger("pg_scraper")

HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]
MIN_TITLE_CHARS = 5  # title must be strictly longer
MIN_DETAIL_CELLS = 2


def _table_title(table) -> str:
    heading = table.find(HEADING_TAGS)
    if heading is None:
        heading = table.find("td")
    if heading is None:
        return ""
    return heading.get_text(separator=" ", strip=True)


def _detail_links(table) -> tuple[str, ...]:
    links = []
    for a in table.find_all("a", href=True):
        href = str(a.get("href") or "").strip()
        if href.lower().endswith(".html") and href not in links:
            links.append(href)
    return tuple(links)


def correlate_listings(document: BeautifulSoup, diagnostics: list[str] | None = None) -> list[ListingCandidate]:
    """
    Pair tables (0,1), (2,3), ... in document order and keep the pairs that look like a listing.
    A table is never reused across pairs; an odd trailing table is ignored.
    """
    notes = diagnostics if diagnostics is not None else []
    tables = document.find_all("table")
    candidates = []

    for i in range(0, len(tables) - 1, 2):
        title_table, details_table = tables[i], tables[i + 1]
        try:
            title = _table_title(title_table)
            cells = tuple(td.get_text(separator="\n", strip=True) for td in details_table.find_all("td"))
            links = _detail_links(details_table)
        except (AttributeError, TypeError) as e:
            notes.append(f"tables ({i}, {i + 1}): malformed ({e})")
            logger.debug("Malformed table pair (%d, %d): %s", i, i + 1, e)
            continue

        if len(title.strip()) <= MIN_TITLE_CHARS:
            notes.append(f"tables ({i}, {i + 1}): title too short {title!r}")
            continue
        if len(cells) < MIN_DETAIL_CELLS:
            notes.append(f"tables ({i}, {i + 1}): {len(cells)} detail cells")
            continue
        candidates.append(ListingCandidate(
            title_text=title,
            detail_cells=cells,
            table_index_pair=(i, i + 1),
            detail_links=links,
        ))

    if len(tables) % 2:
        notes.append(f"table {len(tables) - 1}: unpaired")
    logger.debug("Correlated %d candidates from %d tables", len(candidates), len(tables))
    return candidates


# --- Field classification ---

@dataclass(frozen=True)
class ClassifiedFields:
    amenities_text: str
    address: str
    contact: str


class FieldClassifier(Protocol):
    def classify(self, cells: Sequence[str]) -> ClassifiedFields: ...


class PositionalClassifier:
    """Cell 0 -> amenities, cell 1 -> address, cell 2 -> contact. Matches the reference site's fixed layout."""

    def classify(self, cells: Sequence[str]) -> ClassifiedFields:
        return ClassifiedFields(
            amenities_text=cells[0] if len(cells) > 0 else "",
            address=cells[1] if len(cells) > 1 else "",
            contact=cells[2] if len(cells) > 2 else "",
        )


ADDRESS_RE = re.compile(r"Address\s*:\s*(.+?)(?:\n|$)", re.I)
LANDMARK_RE = re.compile(r"Landmark\s*:\s*(.+?)(?:\n|$)", re.I)
PHONE_RE = re.compile(r"(?<!\d)\d{10}(?!\d)")
CONTACT_BOILERPLATE = [
    re.compile(r"Please\s+mention\s+that\s+you\s+found\s+the\s+AD\s+in\s+payingguestinbengaluru\.com", re.I),
    re.compile(r"PG\s+photo'?s?\s*&\s*More\s+details", re.I),
]

AMENITY_KEYWORDS = {
    "wifi": ["wifi", "wi-fi", "internet", "high speed", "hi-speed"],
    "ac": ["ac", "air conditioning", "air conditioner"],
    "tv": ["tv", "led tv", "television"],
    "parking": ["parking", "2 wheeler", "4 wheeler", "vehicle"],
    "meals": ["food", "meals", "north indian", "south indian", "homely food"],
    "laundry": ["washing machine", "laundry"],
    "security": ["security", "cctv", "24 hrs security", "24x7"],
    "gym": ["gym", "fitness"],
    "cctv": ["cctv", "camera", "cameras"],
    "kitchen": ["kitchen", "cooking"],
    "refrigerator": ["fridge", "refrigerator"],
    "microwave": ["microwave", "oven"],
    "iron": ["iron", "ironing"],
    "heater": ["heater", "geyser"],
    "balcony": ["balcony", "terrace"],
}
_AMENITY_PATTERNS = {
    tag: re.compile(r"\b(?:" + "|".join(re.escape(k) for k in keywords) + r")\b", re.I)
    for tag, keywords in AMENITY_KEYWORDS.items()
}


def amenity_tags(text: str) -> list[str]:
    """Canonical amenity tags mentioned in free text, in AMENITY_KEYWORDS order. Whole-word matches only."""
    if not text:
        return []
    return [tag for tag, pattern in _AMENITY_PATTERNS.items() if pattern.search(text)]


def strip_contact_boilerplate(text: str) -> str:
    for pattern in CONTACT_BOILERPLATE:
        text = pattern.sub("", text)
    return text.strip()


class KeywordClassifier:
    """
    Content-sniffing alternative to PositionalClassifier for pages whose cell order varies.
    - address: 'Address:' / 'Landmark:' labels anywhere, else cell 1
    - contact: first 10-digit number once the site's boilerplate is removed
    - amenities: remaining cells, reduced to canonical tags when any keyword matches
    """

    def __init__(self, canonical_amenities: bool = True):
        self.canonical_amenities = canonical_amenities

    def classify(self, cells: Sequence[str]) -> ClassifiedFields:
        address, address_idx = "", None
        for idx, cell in enumerate(cells):
            m = ADDRESS_RE.search(cell)
            landmark = LANDMARK_RE.search(cell)
            if m or landmark:
                address = m.group(1).strip() if m else ""
                if landmark:
                    address = f"{address} Landmark: {landmark.group(1).strip()}".strip()
                address_idx = idx
                break
        if address_idx is None and len(cells) > 1:
            address, address_idx = cells[1], 1

        contact, contact_idx = "", None
        for idx, cell in enumerate(cells):
            if idx == address_idx:
                continue
            m = PHONE_RE.search(strip_contact_boilerplate(cell))
            if m:
                contact, contact_idx = m.group(0), idx
                break

        rest = [c for idx, c in enumerate(cells) if idx not in (address_idx, contact_idx)]
        amenities_text = "\n".join(rest)
        if self.canonical_amenities:
            tags = amenity_tags(amenities_text)
            if tags:
                amenities_text = "\n".join(tags)
        return ClassifiedFields(amenities_text=amenities_text, address=address, contact=contact)


CLASSIFIERS: dict[str, FieldClassifier] = {
    "positional": PositionalClassifier(),
    "keyword": KeywordClassifier(),
}


def get_classifier(name: str | None) -> FieldClassifier:
    if not name:
        return CLASSIFIERS["positional"]
    try:
        return CLASSIFIERS[name]
    except KeyError:
        raise ValueError(f"Unknown classifier {name!r}; choose from {sorted(CLASSIFIERS)}") from None
