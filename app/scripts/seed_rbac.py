"""
Seed the permission catalog and default roles (ADMIN, MANAGER, DESIGNER, SALES, VIEWER).
Idempotent. Run from project root after migrations:
  python -m app.scripts.seed_rbac
"""
import logging
import sys

from app.core.database import SessionLocal
from app.services.rbac_seed import seed_rbac

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def main() -> int:
    db = SessionLocal()
    try:
        result = seed_rbac(db)
        print(
            f"Seeded: {result.permissions_created} permissions, "
            f"{result.roles_created} roles, {result.grants_created} grants."
        )
        return 0
    except Exception as e:
        logger.exception("RBAC seed failed: %s", e)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
