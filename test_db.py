"""Persistence sink: JSON round-trip, atomic writes, SQLite batches, CSV export."""
import json
from datetime import datetime, timezone
from unittest.mock import patch

import pandas as pd
import pytest

from pg_scraper import db
from pg_scraper.db import (
    ListingSink,
    PersistenceError,
    export_csv,
    get_connection,
    load_listings,
    persist,
    read_json,
    save_listings,
    write_json,
)
from pg_scraper.models import ImageCandidate, Listing

STAMP = datetime(2026, 10, 19, 8, 30, tzinfo=timezone.utc)


def make_listing(name="Sri Ram Sai Ladies PG", address="JP Nagar, Bangalore", **kw):
    fields = dict(
        name=name,
        location="jpnagar",
        address=address,
        contact="9999999999",
        amenities=frozenset({"WiFi", "LED TV"}),
        images=(
            ImageCandidate("https://www.payingguestinbengaluru.com/room1.jpg", "Room 1", 0, True),
            ImageCandidate("https://cdn.example.com/dining.webp", "", 1, False),
        ),
        source_url="https://www.payingguestinbengaluru.com/jpnagar.html",
        extracted_at=STAMP,
        detail_url="https://www.payingguestinbengaluru.com/Sri-Ram-Sai.html",
    )
    fields.update(kw)
    return Listing(**fields)


def test_output_record_shape():
    d = make_listing().to_dict()
    assert set(d) == {"name", "location", "address", "contact", "amenities", "images",
                      "extractedAt", "source", "detailPageUrl", "detailImages"}
    assert d["detailImages"] == []
    assert d["amenities"] == ["LED TV", "WiFi"]
    assert d["images"][0] == {"url": "https://www.payingguestinbengaluru.com/room1.jpg",
                              "alt": "Room 1", "index": 0, "isPrimary": True}
    assert d["extractedAt"] == "2026-10-19T08:30:00+00:00"


def test_json_round_trip():
    listing = make_listing()
    assert Listing.from_dict(json.loads(json.dumps(listing.to_dict()))) == listing


def test_write_and_read_json(tmp_path):
    path = tmp_path / "out" / "pg.json"
    listings = [make_listing(), make_listing(name="Green Nest Executive PG", detail_url=None)]
    assert write_json(listings, path) == 2
    assert read_json(path) == listings
    assert list(path.parent.glob("*.tmp")) == []


def test_failed_json_write_keeps_previous_output(tmp_path):
    path = tmp_path / "pg.json"
    write_json([make_listing()], path)
    before = path.read_text(encoding="utf-8")
    with patch.object(db.json, "dump", side_effect=OSError("disk full")):
        with pytest.raises(PersistenceError):
            write_json([make_listing(name="Other PG")], path)
    assert path.read_text(encoding="utf-8") == before
    assert list(tmp_path.glob("*.tmp")) == []


def test_sqlite_save_and_load(tmp_path):
    conn = get_connection(tmp_path / "pg.db")
    try:
        first = make_listing()
        assert save_listings(conn, [first, make_listing(name="Green Nest Executive PG")]) == 2
        # same key replaces, it does not duplicate
        save_listings(conn, [make_listing(contact="8123448478")])
        loaded = load_listings(conn)
        assert len(loaded) == 2
        by_name = {x.name: x for x in loaded}
        assert by_name[first.name].contact == "8123448478"
        assert by_name[first.name].images == first.images
        assert by_name[first.name].amenities == first.amenities
        assert load_listings(conn, location="nowhere") == []
    finally:
        conn.close()


def test_sqlite_batch_is_all_or_nothing(tmp_path):
    conn = get_connection(tmp_path / "pg.db")
    try:
        with pytest.raises(PersistenceError):
            save_listings(conn, [make_listing(), make_listing(name=None)])
        assert load_listings(conn) == []
    finally:
        conn.close()


def test_export_csv(tmp_path):
    path = tmp_path / "pg.csv"
    assert export_csv([make_listing()], path) == 1
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    assert list(df.columns) == db.CSV_COLUMNS
    row = df.iloc[0]
    assert row["PG_Name"] == "Sri Ram Sai Ladies PG"
    assert row["Primary_Image_URL"] == "https://www.payingguestinbengaluru.com/room1.jpg"
    assert row["Image_Count"] == "2"
    assert row["Amenities"] == "LED TV; WiFi"


def test_persist_dispatch(tmp_path):
    listings = [make_listing()]
    assert persist(listings, tmp_path / "a.json") == 1
    assert persist(listings, tmp_path / "a.csv") == 1
    assert persist(listings, tmp_path / "a.sqlite") == 1
    with pytest.raises(PersistenceError):
        persist(listings, tmp_path / "a.xml")


def test_listing_sink_counts_writes(tmp_path):
    sink = ListingSink(tmp_path / "pg.db")
    sink.write([make_listing()])
    sink.write([make_listing(name="Green Nest Executive PG")])
    assert sink.written == 2
    conn = get_connection(tmp_path / "pg.db")
    try:
        assert len(load_listings(conn)) == 2
    finally:
        conn.close()


def test_default_output_paths_are_relative():
    from pg_scraper.config import OUTPUT_JSON

    assert not OUTPUT_JSON.is_absolute()
    assert not db.DB_PATH.is_absolute()


def test_detail_images_survive_sqlite(tmp_path):
    extra = (ImageCandidate("https://www.payingguestinbengaluru.com/pics/p1.jpg", "Photo 1", 0, True),)
    conn = get_connection(tmp_path / "pg.db")
    try:
        save_listings(conn, [make_listing(detail_images=extra)])
        [loaded] = load_listings(conn)
    finally:
        conn.close()
    assert loaded.detail_images == extra
