import logging
import os

from alembic.config import Config
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url

from alembic import command
from invoicely.settings import settings

logger = logging.getLogger(__name__)

_engine: Engine | None = None

PACKAGE_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # Line items cascade with their invoice; SQLite ignores FKs unless asked.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys = ON")
    cursor.close()


def create_db_engine(db_url: str) -> Engine:
    url = make_url(db_url)
    if url.get_backend_name() == "sqlite":
        engine = create_engine(url, connect_args={"check_same_thread": False})
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    else:
        engine = create_engine(url, pool_pre_ping=True, pool_recycle=1800)
    logger.info("Database engine created: backend=%s", url.get_backend_name())
    return engine


def get_engine() -> Engine:
    """Process-wide engine for ``settings.db_url``; the web app opens one connection per request."""
    global _engine
    if _engine is None:
        _engine = create_db_engine(settings.db_url)
    return _engine


def _get_alembic_config() -> Config:
    """Locate alembic.ini next to the package, or in the working directory for installed copies."""
    ini_path = os.path.join(PACKAGE_ROOT, "alembic.ini")
    if not os.path.exists(ini_path):
        ini_path = os.path.join(os.getcwd(), "alembic.ini")
    cfg = Config(ini_path)
    cfg.set_main_option("script_location", os.path.join(os.path.dirname(ini_path), "alembic"))
    return cfg


def initialize_db() -> None:
    """Bring the invoicely schema to the latest revision."""
    logger.info("Running Alembic migrations against %s", make_url(settings.db_url).render_as_string(hide_password=True))
    command.upgrade(_get_alembic_config(), "head")
    logger.info("Migrations complete")
