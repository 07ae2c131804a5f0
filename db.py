from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from config import settings

from utils.structured_logging import get_logger, LogCategory

logger = get_logger("database")

if settings.is_sqlite:
    engine = create_engine(settings.DATABASE_URL, connect_args={"check_same_thread": False})
else:
    engine = create_engine(
        settings.DATABASE_URL,
        pool_size=10,  # Number of connections to maintain in the pool
        max_overflow=20,  # Additional connections beyond pool_size
        pool_pre_ping=True,  # Validate connections before use
        pool_recycle=3600,  # Recycle connections every hour
        pool_timeout=30,
        echo=False,
    )


@event.listens_for(engine, "connect")
def on_connect(dbapi_connection, connection_record):
    """Log new DBAPI connections"""
    logger.debug("Database connection opened", category=LogCategory.DATABASE, extra={"url": engine.url.render_as_string()})


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind=None) -> None:
    """Create all document tables if they do not exist yet"""
    from models import Base  # Local import keeps models free of engine setup

    Base.metadata.create_all(bind=bind or engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
