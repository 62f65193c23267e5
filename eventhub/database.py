"""SQLAlchemy engine, session factory and the request-scoped session dependency."""
from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

from eventhub.config import settings


def build_engine(url: str, timeout: float):
    """Create an engine whose store calls give up after ``timeout`` seconds."""
    if url.startswith("sqlite"):
        # busy timeout: how long a writer waits on the database lock
        return create_engine(url, connect_args={"check_same_thread": False, "timeout": timeout})

    engine = create_engine(url, pool_pre_ping=True, pool_timeout=timeout)

    if url.startswith("postgresql"):
        @event.listens_for(engine, "connect")
        def _set_statement_timeout(dbapi_conn, connection_record):
            cursor = dbapi_conn.cursor()
            cursor.execute(f"SET statement_timeout = {int(timeout * 1000)}")
            cursor.close()

    return engine


engine = build_engine(settings.DATABASE_URL, settings.STORE_TIMEOUT_SECONDS)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """Yield a session for one request and close it afterwards."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
