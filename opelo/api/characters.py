from fastapi import APIRouter, Body, Depends, Query, Request
from typing import Any, Dict, List

from opelo.elo import apply_elo_update, get_character, list_characters
from opelo.storage import Storage

router = APIRouter(prefix="/characters", tags=["characters"])


def get_storage(request: Request) -> Storage:
    return request.app.state.storage


@router.get("", response_model=List[dict])
def list_all_characters(
    storage: Storage = Depends(get_storage),
    order: str = Query("rating", pattern="^(rating|name)$",
                       description="'rating' (highest first) or 'name'"),
):
    return list_characters(storage, order=order)


@router.get("/{character_id}", response_model=List[dict])
def read_character(character_id: str, storage: Storage = Depends(get_storage)):
    """Matching rows; an unknown id gives an empty list."""
    return get_character(storage, character_id)


@router.put("/{character_id}/elo")
def update_character_elo(
    character_id: str,
    payload: Any = Body(None),
    storage: Storage = Depends(get_storage),
) -> Dict[str, Any]:
    """
    Body: {wins_change, losses_change, elo_change, recent_change}, all
    integers and nothing else. Deltas are added to the stored values.
    """
    character = apply_elo_update(storage, character_id, payload)
    return {"message": "Character ELO updated successfully", "character": character}
