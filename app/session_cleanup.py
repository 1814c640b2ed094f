"""
Sweep refresh-token sessions whose expires_at has passed.

Refresh already deletes an expired row when its holder presents it; this job removes the
rows nobody comes back for. Schedule it with cron, for example hourly:

  0 * * * * cd /path/to/tessera && .venv/bin/python -m app.session_cleanup

Exit status is 0 on success (including when SESSION_CLEANUP_ENABLED is off) and 1 on failure.
"""

import logging
import sys

from app.core.config import get_settings
from app.core.database import SessionLocal
from app.services.session_cleanup import run_session_cleanup

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def main() -> int:
    settings = get_settings()
    if not settings.SESSION_CLEANUP_ENABLED:
        logger.info("Expired session sweep skipped: SESSION_CLEANUP_ENABLED=false")
        return 0
    logger.info(
        "Expired session sweep starting: refresh_ttl_days=%s", settings.REFRESH_TOKEN_EXPIRE_DAYS
    )
    db = SessionLocal()
    try:
        sessions_deleted = run_session_cleanup(db, settings)
        logger.info("Expired session sweep finished: sessions_deleted=%s", sessions_deleted)
        return 0
    except Exception as e:
        logger.exception("Expired session sweep failed: %s", e)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
