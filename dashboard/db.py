import time
import logging
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from .config import settings

logger = logging.getLogger(__name__)

def normalize_database_url(db_url: str) -> str:
    if db_url.startswith("postgres://"):
        db_url = db_url.replace("postgres://", "postgresql://", 1)
    if db_url.startswith("postgresql://") and "+psycopg" not in db_url:
        db_url = db_url.replace("postgresql://", "postgresql+psycopg://", 1)
    return db_url

def _install_sqlite_pragmas(engine: Engine, in_memory: bool) -> None:
    # SQLite ships with FK enforcement off; cascades depend on it.
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        if not in_memory:
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.close()

def create_db_engine(db_url: str, retries: int = 3, backoff: float = 2) -> Engine:
    """Build an engine for db_url and make sure it answers before returning it."""
    db_url = normalize_database_url(db_url)
    is_sqlite = db_url.startswith("sqlite")
    in_memory = is_sqlite and (db_url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in db_url)

    kwargs = {"pool_pre_ping": True}
    if is_sqlite:
        kwargs["connect_args"] = {"check_same_thread": False}
        if in_memory:
            # one shared connection, otherwise every checkout sees an empty database
            kwargs["poolclass"] = StaticPool
    engine = create_engine(db_url, **kwargs)
    if is_sqlite:
        _install_sqlite_pragmas(engine, in_memory)

    for attempt in range(retries):
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return engine
        except Exception as e:
            if attempt < retries - 1:
                logger.warning(f"Database connection failed. Retrying in {backoff}s... ({e})")
                time.sleep(backoff)
                backoff *= 2
            else:
                logger.error(f"Failed all DB connection attempts for {engine.url.render_as_string(hide_password=True)}.")
                engine.dispose()
                raise
    return engine

_engine: Engine | None = None

def get_engine() -> Engine:
    """The application engine, built on first use."""
    global _engine
    if _engine is None:
        _engine = create_db_engine(settings.database_url, retries=settings.db_connect_retries)
    return _engine

SessionLocal = sessionmaker(autocommit=False, autoflush=False)

def get_db():
    db = SessionLocal(bind=get_engine())
    try:
        yield db
    finally:
        db.close()
