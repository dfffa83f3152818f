import asyncio

import structlog

from event_service.core.config import settings
from event_service.core.logging import configure_logging
from event_service.db import create_engine, create_schema

logger = structlog.get_logger(__name__)


async def init_db(database_url: str | None = None) -> None:
    engine = create_engine(database_url)
    try:
        await create_schema(engine)
    finally:
        await engine.dispose()


def main() -> None:
    configure_logging()
    asyncio.run(init_db())
    logger.info("schema_ready", env=settings.env)


if __name__ == "__main__":
    main()
