from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine

from wanda.config import settings


def build_engine(database_url: str) -> Engine:
    connect_args = {}
    if database_url.startswith("sqlite"):
        # FastAPI serves sync endpoints from a threadpool
        connect_args["check_same_thread"] = False
    return create_engine(database_url, connect_args=connect_args)


engine = build_engine(settings.DATABASE_URL)


def create_db_and_tables(target: Engine = engine):
    # Import for the side effect of registering the tables on the metadata.
    import wanda.models  # noqa: F401

    SQLModel.metadata.create_all(target)
