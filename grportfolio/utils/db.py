from pathlib import Path

from dotenv import load_dotenv
from sqlalchemy import create_engine, event

from grportfolio.utils.config import Config, load_config
from grportfolio.utils.logger import get_logger

load_dotenv()

logger = get_logger(__name__)


def _enable_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def get_db_connection(cfg: Config | None = None, sqlite_path: str | Path | None = None):
    """Return a SQLAlchemy engine for the client store.

    ``sqlite_path`` wins over ``database.sqlite_path`` from config, which in
    turn honours ``GRPORTFOLIO_SQLITE_PATH`` (``.env`` files are loaded on import).
    The special path ``:memory:`` gives an in-memory database.
    """
    cfg = cfg or load_config()
    target = str(sqlite_path) if sqlite_path is not None else str(cfg.database.sqlite_path)
    if target == ":memory:":
        logger.info("Using in-memory SQLite database")
        engine = create_engine("sqlite://", echo=cfg.database.echo)
    else:
        resolved = Path(target)
        resolved.parent.mkdir(parents=True, exist_ok=True)
        logger.info("Using SQLite database at: %s", resolved)
        engine = create_engine(f"sqlite:///{resolved}", echo=cfg.database.echo)
    # SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection
    event.listen(engine, "connect", _enable_foreign_keys)
    return engine


def validate_connection(engine) -> bool:
    """Validate DB connection health by executing a trivial query."""
    try:
        with engine.connect() as conn:
            conn.exec_driver_sql("SELECT 1")
        return True
    except Exception as e:
        logger.error("Database connection validation failed: %s", e)
        return False
