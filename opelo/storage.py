# opelo/storage.py
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Union

import pandas as pd
from sqlalchemy import select
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from opelo.db import DATABASE_URL, make_engine, metadata
from opelo.errors import StorageError
from opelo.models import characters
from opelo.scraper import RosterEntry

logger = logging.getLogger(__name__)

SNAPSHOT_COLUMNS = ["first_name", "last_name", "title", "image_path"]


class Storage:
    """
    Handle on the roster database. Components receive it explicitly;
    nothing in the package reaches for a global engine.

        with Storage("sqlite:///./opelo.db") as storage:
            list_characters(storage)
    """

    def __init__(self, url: str = DATABASE_URL, echo: bool = False,
                 engine: Optional[Engine] = None) -> None:
        self.url = url
        self.echo = echo
        self._engine = engine

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise StorageError("storage is not open")
        return self._engine

    def open(self) -> "Storage":
        if self._engine is None:
            self._engine = make_engine(self.url, echo=self.echo)
        try:
            metadata.create_all(self._engine)
        except SQLAlchemyError as exc:
            raise StorageError(f"could not initialise schema: {exc}") from exc
        logger.info("Storage opened (%s)", self._engine.dialect.name)
        return self

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            logger.info("Database connections closed")

    @contextmanager
    def begin(self) -> Iterator[Connection]:
        """One transaction: commits on success, rolls back on any error."""
        try:
            with self.engine.begin() as conn:
                yield conn
        except SQLAlchemyError as exc:
            raise StorageError(str(exc)) from exc

    def __enter__(self) -> "Storage":
        return self.open()

    def __exit__(self, *exc_info) -> None:
        self.close()


def export_roster(storage: Storage, path: Union[str, Path]) -> int:
    """
    Save the roster to CSV, or to JSON when the path ends in .json.
    Returns the number of rows written.
    """
    path = Path(path)
    with storage.begin() as conn:
        rows = conn.execute(
            select(characters).order_by(characters.c.first_name)
        ).mappings().all()

    df = pd.DataFrame([dict(r) for r in rows], columns=[c.name for c in characters.columns])
    if path.suffix.lower() == ".json":
        df.to_json(path, orient="records", indent=2)
    else:
        df.to_csv(path, index=False)
    logger.info("Exported %d characters to %s", len(df), path)
    return len(df)


def load_roster_snapshot(path: Union[str, Path]) -> List[RosterEntry]:
    """
    Read a CSV/JSON snapshot back into roster entries. Only identity and
    image columns are kept; ratings and records start from the defaults.
    """
    path = Path(path)
    if path.suffix.lower() == ".json":
        df = pd.read_json(path, orient="records", dtype=False)
    else:
        df = pd.read_csv(path, dtype=str, keep_default_na=False)

    if "first_name" not in df.columns:
        raise ValueError(f"{path} has no first_name column")

    df = df.reindex(columns=SNAPSHOT_COLUMNS)
    df = df.astype(object).where(pd.notna(df), None)

    entries: List[RosterEntry] = []
    for rec in df.to_dict(orient="records"):
        name = str(rec["first_name"] or "").strip()
        if not name:
            continue
        entries.append(RosterEntry(
            first_name=name,
            last_name=rec["last_name"] or "",
            title=rec["title"] or "",
            image_path=rec["image_path"] or None,
        ))
    return entries
