"""Optional OpenTelemetry tracing of the gateway's agno agents.

When ENABLE_TRACING is set, every Agent run (recipe text, nutrition, Q&A,
challenge) is exported in batches to its own SQLite file, TRACING_DB_FILE.
The OpenTelemetry packages come from the ``tracing`` extra.
"""

from typing import Optional

from agno.db.sqlite import SqliteDb
from agno.tracing import setup_tracing

from smartchef.utils.config import config
from smartchef.utils.logger import logger


TRACING_DB_ID = "smartchef_tracing_db"

# Batch exporter settings
EXPORT_SETTINGS = {
    "batch_processing": True,
    "max_queue_size": 1024,
    "schedule_delay_millis": 3000,
    "max_export_batch_size": 128,
}


async def initialize_tracing() -> Optional[SqliteDb]:
    """Start tracing into the dedicated database.

    Returns:
        The tracing SqliteDb, or None when tracing is off or could not start.
        Startup never fails because of tracing.
    """
    if not config.ENABLE_TRACING:
        logger.info("Tracing disabled via ENABLE_TRACING=false")
        return None

    try:
        tracing_db = SqliteDb(db_file=config.TRACING_DB_FILE, id=TRACING_DB_ID)
        setup_tracing(db=tracing_db, **EXPORT_SETTINGS)
    except ImportError as e:
        logger.warning(f"Tracing needs the optional OpenTelemetry packages ({e}); pip install 'smartchef[tracing]'")
        return None
    except Exception as e:
        logger.warning(f"Tracing initialization failed (non-fatal): {e}")
        return None

    logger.info(f"Tracing enabled. Database: {config.TRACING_DB_FILE}")
    return tracing_db
