from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

import settings

# Default local SQLite DB (DATABASE_URL can point at Postgres for shared deployments)
SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL
DATABASE_ENABLED = settings.DATABASE_ENABLED


def make_engine(url: str):
    engine_kwargs = {}
    if url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}
    return create_engine(url, **engine_kwargs)


engine = None
SessionLocal = None
if DATABASE_ENABLED:
    engine = make_engine(SQLALCHEMY_DATABASE_URL)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Yield DB session; yield None when DB is disabled."""
    if not DATABASE_ENABLED or SessionLocal is None:
        yield None
        return

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
