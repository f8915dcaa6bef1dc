import asyncio
import os
import sys

# Ensure backend path is in sys.path
BACKEND_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from app.infra import postgres
from app.infra.migrations import apply_migrations
from app.obs import logging as obs_logging


async def main() -> None:
    obs_logging.configure_logging()
    pool = await postgres.init_pool()
    try:
        applied = await apply_migrations(pool)
    finally:
        await postgres.close_pool()
    print(f"Applied {len(applied)} migration(s): {', '.join(applied) or 'none'}")


if __name__ == "__main__":
    asyncio.run(main())
