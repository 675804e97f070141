# opelo/roster.py

import logging
from typing import Callable, Dict, Iterable, List

from sqlalchemy import delete, insert

from opelo.errors import StorageError
from opelo.models import characters
from opelo.scraper import RosterEntry, fetch_roster
from opelo.storage import Storage

logger = logging.getLogger(__name__)


def refresh_roster(storage: Storage,
                   fetch: Callable[[], List[RosterEntry]] = fetch_roster) -> List[RosterEntry]:
    """
    Replace the characters table with a fresh scrape.

    An empty scrape leaves the table untouched, since a broken page should
    never wipe the roster. Otherwise the delete and the bulk insert share
    one transaction: readers see either the old roster or the new one.
    Every inserted row gets a new id.
    """
    entries = fetch()
    if not entries:
        logger.warning("Scrape returned no characters; roster left unchanged")
        return entries

    with storage.begin() as conn:
        # 1) remove all existing rows
        conn.execute(delete(characters))

        # 2) insert the fresh roster
        conn.execute(insert(characters), [e.to_record() for e in entries])

    logger.info("Replaced roster with %d characters", len(entries))
    return entries


def seed_roster(storage: Storage, entries: Iterable[RosterEntry]) -> Dict[str, int]:
    """
    Append entries one row at a time, e.g. from a snapshot of another
    database. A row that fails is logged and counted; the rest still go in.
    """
    added = 0
    failed = 0
    for entry in entries:
        try:
            with storage.begin() as conn:
                conn.execute(insert(characters), [entry.to_record()])
        except StorageError as exc:
            failed += 1
            logger.error("Failed to add %s: %s", entry.first_name, exc)
            continue
        added += 1
        logger.debug("Added %s", entry.first_name)

    logger.info("Seeded roster: %d added, %d failed", added, failed)
    return {"added": added, "failed": failed}
