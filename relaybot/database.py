"""SQLModel engine setup for the SQL state backend."""
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine


def build_engine(database_url: str) -> Engine:
    """Create an engine; SQLite connections are shared across the threadpool."""
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(database_url, connect_args=connect_args)


def init_db(engine: Engine) -> None:
    """Create state tables if they do not exist."""
    # Import models so their tables register on the metadata
    from relaybot.models import state  # noqa: F401

    SQLModel.metadata.create_all(engine)
