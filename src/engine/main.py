from __future__ import annotations

import asyncio
import logging

from src.config import get_settings
from src.engine.orchestration.registry import PipelineRegistry
from src.engine.orchestration.scheduler import get_scheduler

logger = logging.getLogger("etl_engine")


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s [%(levelname)s] [engine] %(message)s",
    )


async def start_all(registry: PipelineRegistry) -> None:
    """Запускает каждый пайплайн; ошибка одного не мешает остальным.

    Пайплайн, прицепленный через chain(), запускает его предшественник.
    """
    chained = {p.successor.pipeline.id for p in registry if p.successor is not None}

    for pipeline in registry:
        if pipeline.id in chained:
            logger.info(
                "Pipeline id=%s name=%s skipped: started by its predecessor",
                pipeline.id,
                pipeline.name,
            )
            continue

        try:
            result = await pipeline.run()
        except Exception:
            logger.exception("Pipeline id=%s name=%s failed to start", pipeline.id, pipeline.name)
            continue

        if result is not None and not result.ok:
            logger.warning(
                "Pipeline id=%s name=%s run=%s FAILED: %s",
                pipeline.id,
                pipeline.name,
                result.run_id,
                result.error,
            )


async def main() -> None:
    settings = get_settings()
    setup_logging(settings.log_level)
    logger.info("ETL engine starting up env=%s", settings.app_env)

    registry = PipelineRegistry.from_module(settings.pipelines_module)
    await start_all(registry)

    scheduler = get_scheduler()
    if not scheduler.running:
        logger.info("No schedules registered, exiting")
        return

    logger.info("Waiting for scheduled runs (Ctrl+C to stop)")
    try:
        await asyncio.Event().wait()
    finally:
        for pipeline in registry:
            pipeline.cancel_schedules()
        scheduler.shutdown()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
