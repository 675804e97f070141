# opelo/scraper.py

import logging
import re
from collections import Counter
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Set
from urllib.parse import quote

import requests
from bs4 import BeautifulSoup
from bs4.element import Tag

from opelo.config import DEFAULT_RATING, get_settings
from opelo.errors import UpstreamFetchError

logger = logging.getLogger(__name__)

HEADER_TOKENS = {"Name"}
MAX_NAME_CELLS = 5          # the name column sits somewhere in the first few cells
MIN_CELLS = 2

SKIP_TOO_FEW_CELLS = "too_few_cells"
SKIP_HEADER = "header"
SKIP_NO_LINK = "no_link"
SKIP_DUPLICATE = "duplicate"


@dataclass
class RosterEntry:
    first_name: str
    last_name: str = ""
    title: str = ""
    image_path: Optional[str] = None
    rating: int = DEFAULT_RATING
    recent_change: int = 0
    wins: int = 0
    losses: int = 0

    def to_record(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class RowResult:
    entry: Optional[RosterEntry]
    skip_reason: Optional[str] = None


def clean_name(text: str) -> str:
    return re.sub(r'\s+', ' ', text).strip()


def extract_image_src(img: Optional[Tag]) -> Optional[str]:
    """
    Wikia tables lazy-load images: `src` is often an inline data: gif and
    the real URL sits in `data-src`.
    """
    if img is None:
        return None
    src = img.get('src')
    if src and not src.startswith('data:'):
        return src
    return img.get('data-src') or None


def parse_roster_row(row: Tag, seen: Optional[Set[str]] = None) -> RowResult:
    """
    Turn one <tr> into a roster entry, or say why it was skipped.
    Only the first linked name in the row counts, so multi-column layouts
    don't produce the same character twice.
    """
    cells = row.find_all('td')
    if len(cells) < MIN_CELLS:
        return RowResult(None, SKIP_TOO_FEW_CELLS)

    name = None
    saw_header = False
    for cell in cells[:MAX_NAME_CELLS]:
        link = cell.find('a')
        if link is None:
            continue
        text = clean_name(link.get_text())
        if text in HEADER_TOKENS:
            saw_header = True
            continue
        if len(text) > 1:
            name = text
            break

    if name is None:
        return RowResult(None, SKIP_HEADER if saw_header else SKIP_NO_LINK)

    if seen is not None:
        if name in seen:
            return RowResult(None, SKIP_DUPLICATE)
        seen.add(name)

    return RowResult(RosterEntry(first_name=name, image_path=extract_image_src(row.find('img'))))


def parse_roster_page(html: str) -> List[RosterEntry]:
    soup = BeautifulSoup(html, 'html.parser')
    entries: List[RosterEntry] = []
    skipped: Counter = Counter()
    seen: Set[str] = set()

    for row in soup.select('table tr'):
        result = parse_roster_row(row, seen)
        if result.entry is None:
            skipped[result.skip_reason] += 1
        else:
            entries.append(result.entry)

    logger.debug("Skipped rows: %s", dict(skipped))
    return entries


def fetch_page(url: str, session: Optional[requests.Session] = None) -> str:
    settings = get_settings()
    getter = session.get if session is not None else requests.get
    try:
        resp = getter(url, headers={'User-Agent': settings.user_agent},
                      timeout=settings.scrape_timeout)
        resp.raise_for_status()
    except requests.RequestException as exc:
        raise UpstreamFetchError(f"failed to fetch {url}: {exc}") from exc
    return resp.text


def fetch_roster(url: Optional[str] = None) -> List[RosterEntry]:
    """Scrape the character listing page. Every call is a fresh request."""
    url = url or get_settings().roster_url
    logger.info("Scraping roster from %s", url)
    entries = parse_roster_page(fetch_page(url))
    logger.info("Scraped %d characters", len(entries))
    return entries


def character_page_url(name: str, base: Optional[str] = None) -> str:
    base = base or get_settings().character_url_base
    return base + quote(re.sub(r'\s+', '_', name.strip()), safe="()'!*~")


def parse_character_image(html: str) -> Optional[str]:
    soup = BeautifulSoup(html, 'html.parser')
    thumb = soup.select_one('img.pi-image-thumbnail')
    if thumb is None:
        return None
    return thumb.get('src') or thumb.get('data-src') or None


def fetch_character_image(name: str, session: Optional[requests.Session] = None) -> Optional[str]:
    """
    Image URL from a character's own page, None when the page has no
    infobox thumbnail. Network and HTTP errors raise UpstreamFetchError.
    """
    url = character_page_url(name)
    logger.debug("Fetching image for %s from %s", name, url)
    return parse_character_image(fetch_page(url, session=session))
