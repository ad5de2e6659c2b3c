"""Listing correlator and the field classifiers."""
from conftest import AREA_HTML, SCENARIO_A_HTML
from pg_scraper.tables import (
    KeywordClassifier,
    PositionalClassifier,
    amenity_tags,
    correlate_listings,
    get_classifier,
    strip_contact_boilerplate,
)

import pytest


def test_scenario_a_pair(soup):
    candidates = correlate_listings(soup(SCENARIO_A_HTML))
    assert len(candidates) == 1
    c = candidates[0]
    assert c.title_text == "Sri Ram Sai Ladies PG"
    assert c.detail_cells == ("LED TV, WiFi", "JP Nagar, Bangalore", "9999999999")
    assert c.table_index_pair == (0, 1)


def test_area_page_pairs(soup):
    notes = []
    candidates = correlate_listings(soup(AREA_HTML), notes)
    assert [c.title_text for c in candidates] == ["SRI BALAJI LUXURY PG FOR MEN", "Green Nest Executive PG"]
    assert [c.table_index_pair for c in candidates] == [(0, 1), (4, 5)]
    assert candidates[0].detail_links == ("Sri-Balaji-Luxury-PG-JP-Nagar.html",)
    assert candidates[0].detail_cells[0] == "LED TV\nHi-Speed WiFi, Homely Food\nWashing Machine"
    assert any("title too short" in n for n in notes)
    assert any("unpaired" in n for n in notes)


def test_short_title_discarded(soup):
    html = "<table><tr><td><h3>Hi</h3></td></tr></table><table><tr><td>a</td><td>b</td></tr></table>"
    assert correlate_listings(soup(html)) == []


def test_title_of_exactly_five_chars_discarded(soup):
    html = "<table><tr><td>  Rooms  </td></tr></table><table><tr><td>a</td><td>b</td></tr></table>"
    assert correlate_listings(soup(html)) == []


def test_single_detail_cell_discarded(soup):
    html = "<table><tr><td><h2>Comfort Stay PG</h2></td></tr></table><table><tr><td>only one</td></tr></table>"
    assert correlate_listings(soup(html)) == []


def test_empty_details_table_discarded(soup):
    html = "<table><tr><td><h2>Comfort Stay PG</h2></td></tr></table><table></table>"
    assert correlate_listings(soup(html)) == []


def test_first_cell_fallback_when_no_heading(soup):
    html = ("<table><tr><td>Comfort Stay PG</td><td>ignored</td></tr></table>"
            "<table><tr><td>Wifi</td><td>BTM Layout</td></tr></table>")
    [c] = correlate_listings(soup(html))
    assert c.title_text == "Comfort Stay PG"


def test_pairs_only_start_at_even_indexes(soup):
    # table 0 is layout; the real title sits at index 1 and must not be paired with 2
    html = ("<table><tr><td>x</td></tr></table>"
            "<table><tr><td><h3>Misaligned Title PG</h3></td></tr></table>"
            "<table><tr><td>a</td><td>b</td></tr></table>")
    assert correlate_listings(soup(html)) == []


def test_tables_never_reused(soup):
    pair = "<table><tr><td><h3>Listing Number {n}</h3></td></tr></table><table><tr><td>a</td><td>b</td></tr></table>"
    html = "".join(pair.format(n=n) for n in range(4))
    candidates = correlate_listings(soup(html))
    used = [i for c in candidates for i in c.table_index_pair]
    assert len(used) == len(set(used)) == 8
    assert all(c.table_index_pair[0] % 2 == 0 for c in candidates)


def test_no_tables(soup):
    assert correlate_listings(soup("<div>no tables</div>")) == []


def test_positional_classifier():
    fields = PositionalClassifier().classify(["amen", "addr", "phone", "extra"])
    assert (fields.amenities_text, fields.address, fields.contact) == ("amen", "addr", "phone")
    fields = PositionalClassifier().classify(["amen", "addr"])
    assert fields.contact == ""


def test_keyword_classifier_labels_and_phone():
    cells = [
        "Ramesh 9876543210\nPlease mention that you found the AD in payingguestinbengaluru.com",
        "LED TV, Hi-Speed WiFi\nHomely food",
        "Address: 12, 3rd Cross, JP Nagar\nLandmark: Near Ranga Shankara",
    ]
    fields = KeywordClassifier().classify(cells)
    assert fields.address == "12, 3rd Cross, JP Nagar Landmark: Near Ranga Shankara"
    assert fields.contact == "9876543210"
    assert fields.amenities_text.split("\n") == ["wifi", "tv", "meals"]


def test_keyword_classifier_raw_amenities_when_no_keyword():
    fields = KeywordClassifier().classify(["Spring mattress", "Address: Hoodi Main Road"])
    assert fields.amenities_text == "Spring mattress"
    assert fields.address == "Hoodi Main Road"
    assert fields.contact == ""


def test_amenity_tags_whole_words():
    assert amenity_tags("Spacious rooms near the lake") == []
    assert amenity_tags("AC, CCTV cameras") == ["ac", "security", "cctv"]
    assert amenity_tags("") == []


def test_strip_contact_boilerplate():
    text = "9999999999 PG photo's & More details"
    assert strip_contact_boilerplate(text) == "9999999999"


def test_get_classifier():
    assert isinstance(get_classifier(None), PositionalClassifier)
    assert isinstance(get_classifier("keyword"), KeywordClassifier)
    with pytest.raises(ValueError):
        get_classifier("regex")
