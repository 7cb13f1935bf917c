"""Database session management"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from debt_ledger.config import settings


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    # Server databases: verify pooled connections and recycle them hourly
    return {"pool_pre_ping": True, "pool_size": 10, "max_overflow": 10, "pool_recycle": 3600}


engine = create_engine(settings.database_url, **_engine_options(settings.database_url))

SessionLocal = sessionmaker(autoflush=False, bind=engine)
