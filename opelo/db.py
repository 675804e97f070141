from sqlalchemy import create_engine, MetaData
from sqlalchemy.engine import Engine

from opelo.config import get_settings

# picks up DATABASE_URL like: postgresql://user:pass@db:5432/opelo
DATABASE_URL = get_settings().database_url

metadata = MetaData()


def make_engine(url: str = DATABASE_URL, echo: bool = False) -> Engine:
    return create_engine(
        url,
        connect_args={"check_same_thread": False} if url.startswith("sqlite") else {},
        echo=echo,
    )
