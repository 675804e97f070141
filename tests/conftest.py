import pytest
from sqlalchemy import func, insert, select

from opelo.models import characters
from opelo.scraper import RosterEntry
from opelo.storage import Storage


@pytest.fixture()
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'opelo-test.db'}"


@pytest.fixture()
def storage(db_url):
    handle = Storage(db_url).open()
    yield handle
    handle.close()


def add_character(storage, first_name, **values):
    record = RosterEntry(first_name=first_name).to_record()
    record.update(values)
    with storage.begin() as conn:
        row = conn.execute(insert(characters).returning(characters.c.id), [record]).first()
    return row.id


def count_characters(storage):
    with storage.begin() as conn:
        return conn.execute(select(func.count()).select_from(characters)).scalar_one()


@pytest.fixture()
def crew(storage):
    """Three characters, returned as {name: id}."""
    return {
        name: add_character(storage, name, rating=rating)
        for name, rating in [("Monkey D. Luffy", 1200), ("Roronoa Zoro", 1100), ("Nami", 1100)]
    }
