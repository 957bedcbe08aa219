import os
from functools import lru_cache
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from inferno.infra.db.tables import metadata


@lru_cache(maxsize=1)
def get_engine() -> Optional[Engine]:
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        return None
    engine = create_engine(database_url, future=True)
    metadata.create_all(engine)
    return engine
