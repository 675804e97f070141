from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from fastapi import APIRouter, Depends, Query

from opelo.api.characters import get_storage
from opelo.config import get_settings
from opelo.images import update_character_images
from opelo.roster import refresh_roster
from opelo.scraper import fetch_character_image, fetch_roster
from opelo.storage import Storage

router = APIRouter(tags=["roster"])


def get_roster_fetcher() -> Callable:
    return fetch_roster


def get_image_fetcher() -> Callable:
    return fetch_character_image


@router.post("/scrape-characters")
def scrape_characters(
    storage: Storage = Depends(get_storage),
    fetch: Callable = Depends(get_roster_fetcher),
) -> Dict[str, Any]:
    entries = refresh_roster(storage, fetch=fetch)
    return {
        "message": "Characters scraped and saved successfully" if entries
                   else "No characters scraped; roster left unchanged",
        "count": len(entries),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.post("/update-character-images")
def update_images(
    storage: Storage = Depends(get_storage),
    fetch_image: Callable = Depends(get_image_fetcher),
    delay: Optional[int] = Query(None, ge=0, description="Pause between page requests in ms; 0 disables it"),
) -> Dict[str, Any]:
    if delay is None:
        delay = get_settings().image_delay_ms
    summary = update_character_images(storage, delay_ms=delay, fetch_image=fetch_image)
    return {"message": "Character images updated successfully", "summary": summary.to_dict()}
