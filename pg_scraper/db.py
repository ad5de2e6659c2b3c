"""
Persistence for extracted listings: JSON file (what the viewer reads), SQLite, and CSV export.
Every write is all-or-nothing for one batch; a failed write leaves earlier output as it was.
"""
import contextlib
import json
import logging
import os
import sqlite3
import tempfile
import threading
from pathlib import Path
from typing import Iterable

import pandas as pd

from .models import Listing

logger = logging.getLogger("pg_scraper")

DB_PATH = Path("data") / "pg_listings.db"


class PersistenceError(RuntimeError):
    """A batch could not be written; the destination keeps its previous content."""


@contextlib.contextmanager
def _atomic_path(path: Path):
    """Yield a temp path beside `path`; move it over `path` only if the block succeeds."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    os.close(fd)
    try:
        yield Path(tmp)
        os.replace(tmp, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp)
        raise


# --- JSON ---

def write_json(listings: Iterable[Listing], destination: str | Path) -> int:
    path = Path(destination)
    payload = [listing.to_dict() for listing in listings]
    try:
        with _atomic_path(path) as tmp:
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
    except (OSError, TypeError, ValueError) as e:
        raise PersistenceError(f"Could not write {path}: {e}") from e
    logger.info("Saved %d listings to %s", len(payload), path)
    return len(payload)


def read_json(source: str | Path) -> list[Listing]:
    with open(source, encoding="utf-8") as f:
        return [Listing.from_dict(d) for d in json.load(f)]


# --- SQLite ---

def get_connection(path: str | Path = DB_PATH) -> sqlite3.Connection:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    return conn


def init_schema(conn: sqlite3.Connection) -> None:
    conn.executescript("""
    CREATE TABLE IF NOT EXISTS listings (
        source TEXT NOT NULL,
        name TEXT NOT NULL,
        address TEXT NOT NULL,
        location TEXT,
        contact TEXT,
        amenities TEXT,
        images TEXT,
        detail_url TEXT,
        detail_images TEXT,
        extracted_at TEXT,
        updated_at TEXT DEFAULT (datetime('now')),
        PRIMARY KEY (source, name, address)
    );
    CREATE INDEX IF NOT EXISTS idx_listings_location ON listings(location);
    """)


def save_listings(conn: sqlite3.Connection, listings: Iterable[Listing]) -> int:
    """Upsert one batch inside a single transaction; on error nothing from the batch is kept."""
    rows = []
    for listing in listings:
        d = listing.to_dict()
        rows.append((
            d["source"],
            d["name"],
            d["address"],
            d["location"],
            d["contact"],
            json.dumps(d["amenities"], ensure_ascii=False),
            json.dumps(d["images"], ensure_ascii=False),
            d["detailPageUrl"],
            json.dumps(d["detailImages"], ensure_ascii=False),
            d["extractedAt"],
        ))
    try:
        init_schema(conn)
        with conn:
            conn.executemany("""
            INSERT OR REPLACE INTO listings (
                source, name, address, location, contact, amenities, images, detail_url, detail_images, extracted_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, rows)
    except sqlite3.Error as e:
        raise PersistenceError(f"Could not save {len(rows)} listings: {e}") from e
    return len(rows)


def listing_row_to_dict(row: sqlite3.Row) -> dict:
    return {
        "source": row["source"],
        "name": row["name"],
        "address": row["address"],
        "location": row["location"] or "",
        "contact": row["contact"] or "",
        "amenities": json.loads(row["amenities"] or "[]"),
        "images": json.loads(row["images"] or "[]"),
        "detailPageUrl": row["detail_url"],
        "detailImages": json.loads(row["detail_images"] or "[]"),
        "extractedAt": row["extracted_at"],
    }


def load_listings(conn: sqlite3.Connection, location: str | None = None) -> list[Listing]:
    init_schema(conn)
    if location:
        cur = conn.execute("SELECT * FROM listings WHERE location = ? ORDER BY rowid", (location,))
    else:
        cur = conn.execute("SELECT * FROM listings ORDER BY rowid")
    return [Listing.from_dict(listing_row_to_dict(row)) for row in cur.fetchall()]


# --- CSV ---

CSV_COLUMNS = [
    "PG_Name", "Address", "Location", "Contact", "Amenities", "Primary_Image_URL",
    "All_Image_URLs", "Image_Count", "Detail_Page_URL", "Source", "Extracted_At",
]


def listings_to_frame(listings: Iterable[Listing]) -> pd.DataFrame:
    rows = []
    for x in listings:
        primary = next((img for img in x.images if img.is_primary), x.images[0] if x.images else None)
        rows.append({
            "PG_Name": x.name,
            "Address": x.address,
            "Location": x.location,
            "Contact": x.contact,
            "Amenities": "; ".join(sorted(x.amenities)),
            "Primary_Image_URL": primary.absolute_url if primary else "",
            "All_Image_URLs": "; ".join(img.absolute_url for img in x.images),
            "Image_Count": len(x.images),
            "Detail_Page_URL": x.detail_url or "",
            "Source": x.source_url,
            "Extracted_At": x.extracted_at.isoformat(),
        })
    return pd.DataFrame(rows, columns=CSV_COLUMNS)


def export_csv(listings: Iterable[Listing], destination: str | Path) -> int:
    path = Path(destination)
    df = listings_to_frame(listings)
    try:
        with _atomic_path(path) as tmp:
            df.to_csv(tmp, index=False)
    except OSError as e:
        raise PersistenceError(f"Could not write {path}: {e}") from e
    logger.info("Saved %d rows to %s", len(df), path)
    return len(df)


# --- Dispatch ---

def persist(listings: Iterable[Listing], destination: str | Path) -> int:
    """Write one batch to `destination`, picking the format from its suffix (.json, .db/.sqlite, .csv)."""
    path = Path(destination)
    suffix = path.suffix.lower()
    listings = list(listings)
    if suffix == ".json":
        return write_json(listings, path)
    if suffix == ".csv":
        return export_csv(listings, path)
    if suffix in (".db", ".sqlite", ".sqlite3"):
        try:
            conn = get_connection(path)
        except (OSError, sqlite3.Error) as e:
            raise PersistenceError(f"Could not open {path}: {e}") from e
        try:
            count = save_listings(conn, listings)
        finally:
            conn.close()
        logger.info("Saved %d listings to %s", count, path)
        return count
    raise PersistenceError(f"Unsupported destination {path} (use .json, .csv, .db or .sqlite)")


class ListingSink:
    """
    Shared writer for one destination. Batches are serialized by a lock so concurrent
    producers cannot interleave partial writes.
    """

    def __init__(self, destination: str | Path):
        self.destination = Path(destination)
        self._lock = threading.Lock()
        self.written = 0

    def write(self, listings: Iterable[Listing]) -> int:
        with self._lock:
            count = persist(listings, self.destination)
            self.written += count
            return count
