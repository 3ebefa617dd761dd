# database.py

import logging
import os
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from utils.config_utils import get_setting, get_section

logger = logging.getLogger(__name__)

# --- 1. SECURE CONFIGURATION ---
# Credentials live under [vehicle_db] in .streamlit/secrets.toml; env vars win.
_db = get_section("vehicle_db", keys=("DB_USER", "DB_PASS", "DB_HOST", "DB_PORT", "DB_NAME"))
DB_USER = _db.get("DB_USER")
DB_PASS = _db.get("DB_PASS")
DB_HOST = _db.get("DB_HOST")
DB_PORT = _db.get("DB_PORT") or "3306"
DB_NAME = _db.get("DB_NAME")


# --- 2. DATABASE URL ---
if os.getenv("DATABASE_URL"):
    SQLALCHEMY_DATABASE_URL = os.environ["DATABASE_URL"]
elif DB_HOST and DB_USER and DB_PASS and DB_NAME:
    SQLALCHEMY_DATABASE_URL = (
        f"mysql+pymysql://{DB_USER}:{DB_PASS}@{DB_HOST}:{DB_PORT}/{DB_NAME}"
    )
else:
    # Local development only
    logger.warning("No database credentials configured, using local SQLite file.")
    SQLALCHEMY_DATABASE_URL = "sqlite:///./vehicle_books_dev.db"


# --- 3. CREATE ENGINE ---
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    pool_pre_ping=True,
    echo=str(get_setting("SQL_ECHO", "false")).lower() in {"1", "true", "yes", "on"},
)

# --- 4. SESSION AND BASE ---

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def init_db() -> None:
    """Creates any missing tables."""
    import models  # noqa: F401  (registers mappers on Base)

    Base.metadata.create_all(bind=engine)


# Dependency to get the database session
def get_db() -> Generator:
    """Provides a database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
