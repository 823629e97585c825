from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine, Session

from config import DATABASE_URL


def make_engine(url: str, **kwargs) -> Engine:
    """
    Build an engine for url. SQLite transactions start with BEGIN IMMEDIATE so a
    timer operation holds the write lock from its first registry read to commit.
    """
    if not url.startswith("sqlite"):
        return create_engine(url, echo=False, **kwargs)

    connect_args = kwargs.pop("connect_args", {})
    connect_args.setdefault("check_same_thread", False)
    engine = create_engine(url, echo=False, connect_args=connect_args, **kwargs)

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        # Let SQLAlchemy emit BEGIN itself instead of pysqlite's deferred one.
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


engine = make_engine(DATABASE_URL)


def init_db(bind: Engine = engine) -> None:
    import models  # noqa: F401  registers the tables on SQLModel.metadata

    SQLModel.metadata.create_all(bind)


def get_session():
    with Session(engine) as session:
        yield session
