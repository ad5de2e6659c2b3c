"""Shared HTML fixtures modelled on payingguestinbengaluru.com area and detail pages."""
import pytest
from bs4 import BeautifulSoup

AREA_URL = "https://www.payingguestinbengaluru.com/jpnagar.html"

SCENARIO_A_HTML = """
<html><body>
<table><tr><td><h3>Sri Ram Sai Ladies PG</h3></td></tr></table>
<table><tr>
  <td>LED TV, WiFi</td>
  <td>JP Nagar, Bangalore</td>
  <td>9999999999</td>
</tr></table>
</body></html>
"""

AREA_HTML = """
<html><head><title>PG in JP Nagar</title></head><body>
<img src="images/site-logo.png" alt="logo">
<table><tr><td><h3>SRI BALAJI LUXURY PG FOR MEN</h3></td></tr></table>
<table><tr>
  <td>LED TV<br>Hi-Speed WiFi, Homely Food<br>Washing Machine</td>
  <td>Address: # 12, 3rd Cross, JP Nagar 6th Phase
Landmark: Near Ranga Shankara</td>
  <td>Ramesh - 9876543210<br>Please mention that you found the AD in payingguestinbengaluru.com
      <a href="Sri-Balaji-Luxury-PG-JP-Nagar.html">PG photo's &amp; More details</a></td>
</tr></table>
<table><tr><td>Hi</td></tr></table>
<table><tr><td>spacer</td><td>spacer</td></tr></table>
<table><tr><td><h3>Green Nest Executive PG</h3></td></tr></table>
<table><tr>
  <td>AC rooms, Gym, Parking</td>
  <td>Address: 45, 24th Main, JP Nagar 2nd Phase</td>
</tr></table>
<div class="gallery">
  <img src="photos/room1.jpg" alt="Room 1">
  <img src="/photos/room2.JPG" alt="Room 2">
  <img src="https://cdn.example.com/pg/dining.webp">
  <img src="staff-avatar.jpg">
  <img src="photos/room1.jpg" alt="Room 1 again">
  <img alt="no source">
</div>
<table><tr><td>Footer table</td></tr></table>
</body></html>
"""


@pytest.fixture
def soup():
    def _make(html):
        return BeautifulSoup(html, "html.parser")
    return _make


@pytest.fixture
def area_html():
    return AREA_HTML


@pytest.fixture
def scenario_a_html():
    return SCENARIO_A_HTML
