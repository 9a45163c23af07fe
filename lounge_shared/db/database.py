from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker


def get_engine(database_url: str, timeout_sec: float = 5.0):
    kwargs = {"pool_pre_ping": True, "future": True}
    if not database_url.startswith("sqlite"):
        kwargs["pool_timeout"] = timeout_sec
    return create_engine(database_url, **kwargs)


def get_sessionmaker(database_url: str, timeout_sec: float = 5.0) -> sessionmaker:
    engine = get_engine(database_url, timeout_sec)
    return sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
        future=True,
    )
