# opelo/models.py

import uuid

from sqlalchemy import Table, Column, Integer, String

from opelo.config import DEFAULT_RATING
from opelo.db import metadata


def new_character_id() -> str:
    return str(uuid.uuid4())


# One row per roster entity. Ids are regenerated on every full resync.
characters = Table(
    "characters",
    metadata,
    Column("id",            String(36), primary_key=True, default=new_character_id),
    Column("first_name",    String,     nullable=False),
    Column("last_name",     String,     nullable=True),
    Column("title",         String,     nullable=True),
    Column("image_path",    String,     nullable=True),   # absolute URL or wiki-relative path
    Column("rating",        Integer,    nullable=False, default=DEFAULT_RATING, server_default=str(DEFAULT_RATING)),
    Column("recent_change", Integer,    nullable=False, default=0, server_default="0"),  # trend, see elo.merge_recent_change
    Column("wins",          Integer,    nullable=False, default=0, server_default="0"),
    Column("losses",        Integer,    nullable=False, default=0, server_default="0"),
)
