import pytest
import requests
from bs4 import BeautifulSoup

from opelo import scraper
from opelo.errors import UpstreamFetchError
from opelo.scraper import (
    SKIP_DUPLICATE, SKIP_HEADER, SKIP_NO_LINK, SKIP_TOO_FEW_CELLS,
    character_page_url, parse_character_image, parse_roster_page, parse_roster_row,
)

LISTING = """
<html><body>
<table>
  <tr><th>Name</th><th>Chapter</th></tr>
  <tr><td><a href="/wiki/Name">Name</a></td><td>Ep.</td></tr>
  <tr><td><img src="data:image/gif;base64,R0lGOD" data-src="https://img.example/luffy.png"></td>
      <td><a href="/wiki/Monkey_D._Luffy">Monkey  D.
          Luffy</a></td><td><a href="/wiki/Chapter_1">Chapter 1</a></td></tr>
  <tr><td>1</td><td><a href="/wiki/Roronoa_Zoro">Roronoa Zoro</a></td>
      <td><img src="https://img.example/zoro.png"></td></tr>
  <tr><td><a href="/wiki/Nami">Nami</a></td><td>Chapter 8</td></tr>
  <tr><td>plain</td><td>text only</td></tr>
  <tr><td><a href="/wiki/X">X</a></td><td><a href="/wiki/Usopp">Usopp</a></td></tr>
  <tr><td><a href="/wiki/Nami">Nami</a></td><td>again</td></tr>
  <tr><td>lonely cell</td></tr>
</table>
</body></html>
"""


def _row(html):
    return BeautifulSoup(f"<table>{html}</table>", "html.parser").find("tr")


class TestParseRosterRow:

    def test_header_cells_only(self):
        assert parse_roster_row(_row("<tr><th>Name</th><th>Age</th></tr>")).skip_reason == SKIP_TOO_FEW_CELLS

    def test_header_token_link(self):
        result = parse_roster_row(_row('<tr><td><a>Name</a></td><td>x</td></tr>'))
        assert result.entry is None
        assert result.skip_reason == SKIP_HEADER

    def test_no_link(self):
        assert parse_roster_row(_row("<tr><td>a</td><td>b</td></tr>")).skip_reason == SKIP_NO_LINK

    def test_first_qualifying_link_wins(self):
        result = parse_roster_row(_row(
            '<tr><td><a>Jinbe</a></td><td><a>Brook</a></td></tr>'))
        assert result.entry.first_name == "Jinbe"
        assert result.entry.image_path is None

    def test_name_beyond_scanned_cells_is_ignored(self):
        cells = "<td>-</td>" * 5 + "<td><a>Chopper</a></td>"
        assert parse_roster_row(_row(f"<tr>{cells}</tr>")).skip_reason == SKIP_NO_LINK

    def test_duplicate_against_seen(self):
        seen = {"Sanji"}
        result = parse_roster_row(_row('<tr><td><a>Sanji</a></td><td>x</td></tr>'), seen)
        assert result.skip_reason == SKIP_DUPLICATE

    def test_entry_defaults(self):
        entry = parse_roster_row(_row('<tr><td><a>Franky</a></td><td>x</td></tr>')).entry
        assert entry.to_record() == {
            "first_name": "Franky", "last_name": "", "title": "", "image_path": None,
            "rating": 1000, "recent_change": 0, "wins": 0, "losses": 0,
        }


def test_parse_roster_page():
    entries = parse_roster_page(LISTING)
    assert [e.first_name for e in entries] == ["Monkey D. Luffy", "Roronoa Zoro", "Nami", "Usopp"]
    assert entries[0].image_path == "https://img.example/luffy.png"
    assert entries[1].image_path == "https://img.example/zoro.png"
    assert entries[2].image_path is None


class FakeResponse:

    def __init__(self, text="", status_code=200):
        self.text = text
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


def test_fetch_roster(monkeypatch):
    calls = []

    def fake_get(url, headers=None, timeout=None):
        calls.append(url)
        return FakeResponse(LISTING)

    monkeypatch.setattr(scraper.requests, "get", fake_get)
    entries = scraper.fetch_roster("https://wiki.example/list")
    assert calls == ["https://wiki.example/list"]
    assert len(entries) == 4


@pytest.mark.parametrize("failure", [
    requests.ConnectionError("down"),
    requests.Timeout("slow"),
])
def test_fetch_roster_network_error(monkeypatch, failure):
    def fake_get(url, headers=None, timeout=None):
        raise failure

    monkeypatch.setattr(scraper.requests, "get", fake_get)
    with pytest.raises(UpstreamFetchError):
        scraper.fetch_roster("https://wiki.example/list")


def test_fetch_roster_http_error(monkeypatch):
    monkeypatch.setattr(scraper.requests, "get", lambda url, headers=None, timeout=None: FakeResponse(status_code=503))
    with pytest.raises(UpstreamFetchError):
        scraper.fetch_roster("https://wiki.example/list")


def test_character_page_url():
    assert character_page_url("Monkey D. Luffy", base="https://wiki.example/") == \
        "https://wiki.example/Monkey_D._Luffy"
    assert character_page_url("Charlotte  Linlin", base="https://wiki.example/") == \
        "https://wiki.example/Charlotte_Linlin"


def test_parse_character_image():
    page = '<aside><img class="pi-image-thumbnail" src="https://img.example/nami.png"></aside>'
    assert parse_character_image(page) == "https://img.example/nami.png"

    lazy = '<img class="pi-image-thumbnail" data-src="https://img.example/lazy.png">'
    assert parse_character_image(lazy) == "https://img.example/lazy.png"

    assert parse_character_image('<img class="other" src="x.png">') is None


def test_fetch_character_image_uses_session():
    class FakeSession:
        def __init__(self):
            self.urls = []

        def get(self, url, headers=None, timeout=None):
            self.urls.append(url)
            return FakeResponse('<img class="pi-image-thumbnail" src="https://img.example/robin.png">')

    session = FakeSession()
    assert scraper.fetch_character_image("Nico Robin", session=session) == "https://img.example/robin.png"
    assert session.urls[0].endswith("/Nico_Robin")
