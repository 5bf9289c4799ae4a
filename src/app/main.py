from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from src.app.api.v1.pipelines import router as pipelines_router
from src.config import get_settings
from src.engine.orchestration.registry import PipelineRegistry
from src.engine.orchestration.scheduler import get_scheduler

logger = logging.getLogger("etl_api")
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # startup
    app.state.registry = PipelineRegistry.from_module(settings.pipelines_module)

    yield

    # shutdown
    for pipeline in app.state.registry:
        pipeline.cancel_schedules()
    get_scheduler().shutdown()
    logger.info("Schedules cancelled, scheduler stopped")


app = FastAPI(title="ETL Engine API", version="0.1.0", lifespan=lifespan)
app.include_router(pipelines_router)


@app.get("/api/v1/health", tags=["system"])
async def healthcheck() -> dict:
    return {"status": "ok", "env": settings.app_env}
