# opelo/elo.py

import logging
from typing import Any, Dict, List

import pydantic
from pydantic import BaseModel, ConfigDict, field_validator
from sqlalchemy import select, update

from opelo.errors import NotFoundError, ValidationError
from opelo.models import characters
from opelo.storage import Storage

logger = logging.getLogger(__name__)

UPDATE_FIELDS = ("wins_change", "losses_change", "elo_change", "recent_change")


class EloUpdate(BaseModel):
    """Body of PUT /characters/{id}/elo. All four deltas, nothing else."""

    model_config = ConfigDict(extra="forbid")

    wins_change: int
    losses_change: int
    elo_change: int
    recent_change: int

    @field_validator(*UPDATE_FIELDS, mode="before")
    @classmethod
    def reject_booleans(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError("must be a number, not a boolean")
        return value


def merge_recent_change(elo_change: int, recent_change: int) -> int:
    """
    Fold a new rating delta into the previous trend.

    Same direction (zero counts as either) keeps accumulating; a delta
    pointing the other way resets the trend to that delta alone.
    """
    if (elo_change >= 0 and recent_change >= 0) or (elo_change <= 0 and recent_change <= 0):
        return recent_change + elo_change
    return elo_change


def validate_elo_update(payload: Any) -> EloUpdate:
    """
    Check a raw request body against EloUpdate. Every offending field is
    reported, grouped by the rule it broke.
    """
    try:
        return EloUpdate.model_validate(payload)
    except pydantic.ValidationError as exc:
        missing: List[str] = []
        unexpected: List[str] = []
        non_numeric: List[str] = []
        for err in exc.errors():
            if not err["loc"]:
                raise ValidationError("Request body must be a JSON object") from None
            field = str(err["loc"][0])
            if err["type"] == "missing":
                missing.append(field)
            elif err["type"] == "extra_forbidden":
                unexpected.append(field)
            else:
                non_numeric.append(field)

    problems = []
    if missing:
        problems.append(f"missing required fields: {', '.join(missing)}")
    if unexpected:
        problems.append(f"fields not allowed: {', '.join(unexpected)}")
    if non_numeric:
        problems.append(f"fields must be integers: {', '.join(non_numeric)}")
    problems.append(f"only these fields are allowed: {', '.join(UPDATE_FIELDS)}")
    raise ValidationError("; ".join(problems), missing=missing,
                          unexpected=unexpected, non_numeric=non_numeric)


def apply_elo_update(storage: Storage, character_id: str, payload: Any) -> Dict[str, Any]:
    """
    Apply win/loss/rating deltas to one character in a single UPDATE ...
    RETURNING, so concurrent updates to the same row never overwrite each
    other. Returns the row as it is after the update.
    """
    deltas = payload if isinstance(payload, EloUpdate) else validate_elo_update(payload)
    trend = merge_recent_change(deltas.elo_change, deltas.recent_change)

    stmt = (
        update(characters)
        .where(characters.c.id == character_id)
        .values(
            wins=characters.c.wins + deltas.wins_change,
            losses=characters.c.losses + deltas.losses_change,
            rating=characters.c.rating + deltas.elo_change,
            recent_change=trend,
        )
        .returning(*characters.c)
    )
    with storage.begin() as conn:
        row = conn.execute(stmt).mappings().first()

    if row is None:
        raise NotFoundError(f"No character found with id: {character_id}")

    logger.info("Updated character %s (%s): elo %+d, trend %d",
                row["first_name"], character_id, deltas.elo_change, trend)
    return dict(row)


def list_characters(storage: Storage, order: str = "rating") -> List[Dict[str, Any]]:
    """Whole roster, best rated first (or alphabetical with order='name')."""
    stmt = select(characters)
    if order == "name":
        stmt = stmt.order_by(characters.c.first_name.asc())
    else:
        stmt = stmt.order_by(characters.c.rating.desc(), characters.c.first_name.asc())
    with storage.begin() as conn:
        return [dict(r) for r in conn.execute(stmt).mappings().all()]


def get_character(storage: Storage, character_id: str) -> List[Dict[str, Any]]:
    stmt = select(characters).where(characters.c.id == character_id)
    with storage.begin() as conn:
        return [dict(r) for r in conn.execute(stmt).mappings().all()]
