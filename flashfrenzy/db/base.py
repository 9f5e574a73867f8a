from sqlmodel import SQLModel, create_engine

from flashfrenzy.config.settings import get_settings

_engine = None


def get_engine():
    global _engine
    if _engine is None:
        database_url = get_settings().database_url
        connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
        _engine = create_engine(database_url, echo=False, connect_args=connect_args)
    return _engine


def init_db() -> None:
    """Create tables for every registered schema."""
    import flashfrenzy.db.schemas  # noqa: F401

    SQLModel.metadata.create_all(get_engine())
