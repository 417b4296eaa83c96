"""Development database seed.

Creates the tables and a `demo1` / `welcome` user so a fresh dev server can
be logged into right away. Only runs when AUTHKEEP_DEV_SEED is set and the
environment is development.
"""

import structlog
from sqlalchemy.ext.asyncio import AsyncEngine

from authkeep.ctx import Ctx
from authkeep.db.models import Base
from authkeep.services.user_service import UserService

logger = structlog.get_logger()

DEMO_USERNAME = "demo1"
DEMO_PWD = "welcome"


async def init_dev_db(engine: AsyncEngine, users: UserService) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    ctx = Ctx.root_ctx()
    if await users.first_for_auth(ctx, DEMO_USERNAME) is not None:
        logger.info("dev_db.seed_skipped", username=DEMO_USERNAME)
        return

    user_id = await users.create(ctx, DEMO_USERNAME, DEMO_PWD)
    logger.info("dev_db.seeded", username=DEMO_USERNAME, user_id=user_id)
