# opelo/images.py

import logging
import threading
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

import requests
from sqlalchemy import select, update

from opelo.errors import RosterError
from opelo.models import characters
from opelo.scraper import fetch_character_image
from opelo.storage import Storage

logger = logging.getLogger(__name__)

DEFAULT_DELAY_MS = 1000


class RateLimiter:
    """
    Fixed pause before each outbound request. The pause waits on an Event,
    so setting it from another thread cuts the wait short and marks the
    batch as cancelled.
    """

    def __init__(self, delay_seconds: float, cancel_event: Optional[threading.Event] = None):
        self.delay_seconds = max(0.0, delay_seconds)
        self.cancel_event = cancel_event or threading.Event()

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def wait(self) -> bool:
        """Returns False if the batch was cancelled instead of waiting out the delay."""
        if self.delay_seconds > 0:
            self.cancel_event.wait(self.delay_seconds)
        return not self.cancelled


@dataclass
class BackfillSummary:
    total: int
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    cancelled: bool = False
    timestamp: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def update_character_images(
    storage: Storage,
    delay_ms: int = DEFAULT_DELAY_MS,
    fetch_image: Callable[..., Optional[str]] = fetch_character_image,
    cancel_event: Optional[threading.Event] = None,
) -> BackfillSummary:
    """
    Visit each character's wiki page, one at a time and alphabetically, and
    store the infobox thumbnail as its image_path.

    Found image -> updated; page without one -> skipped; fetch/parse/store
    error -> failed. A failure never stops the batch.
    """
    with storage.begin() as conn:
        rows = conn.execute(
            select(characters.c.id, characters.c.first_name, characters.c.image_path)
            .order_by(characters.c.first_name)
        ).all()

    logger.info("Found %d characters to update (delay %dms)", len(rows), delay_ms)
    limiter = RateLimiter(delay_ms / 1000.0, cancel_event)
    summary = BackfillSummary(total=len(rows))

    with requests.Session() as session:
        for row in rows:
            if not limiter.wait():
                summary.cancelled = True
                logger.warning("Image update cancelled after %d of %d characters",
                               summary.updated + summary.skipped + summary.failed, summary.total)
                break

            try:
                image_url = fetch_image(row.first_name, session=session)
                if image_url is None:
                    summary.skipped += 1
                    logger.info("Skipped %s - no image found", row.first_name)
                    continue

                with storage.begin() as conn:
                    conn.execute(
                        update(characters)
                        .where(characters.c.id == row.id)
                        .values(image_path=image_url)
                    )
            except RosterError as exc:
                summary.failed += 1
                logger.error("Failed to update %s: %s", row.first_name, exc)
                continue
            except Exception as exc:
                summary.failed += 1
                logger.error("Failed to update %s: %s", row.first_name, exc, exc_info=exc)
                continue

            summary.updated += 1
            logger.info("Updated image for %s", row.first_name)

    summary.timestamp = datetime.now(timezone.utc).isoformat()
    logger.info("Character image update summary: %s", summary.to_dict())
    return summary
