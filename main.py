# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Rotation Service
================
Owns rotating savings groups (ROSCA / Tontine / Adashi): membership,
rotation position assignment (manual or raffle) and the month-by-month
collection timeline.

Assignment lifecycle:
    draft (manual edits / raffle preview) ─► commit ─► timeline regenerated
Timeline lifecycle per entry:
    upcoming ─► current ─► completed

Port: 8005
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from rosca.controllers import (
    assignment_controller,
    group_controller,
    invite_controller,
    system_controller,
    timeline_controller,
)
from rosca.core.config import settings
from rosca.core.dependencies import get_group_repo, get_group_service
from rosca.core.logging import get_logger
from rosca.middleware import MetricsMiddleware, RequestIDMiddleware
from rosca.repositories.group_repository import SqlGroupRepository

logger = get_logger(settings.SERVICE_NAME)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    if settings.SEED_DEFAULT_GROUPS and get_group_repo().count() == 0:
        get_group_service().seed_defaults()
    logger.info(
        "%s v%s started (storage=%s)",
        settings.SERVICE_NAME,
        settings.SERVICE_VERSION,
        "sql" if settings.DATABASE_URL else "memory",
    )
    yield
    repo = get_group_repo()
    if isinstance(repo, SqlGroupRepository):
        repo.dispose()
    logger.info("%s shutting down", settings.SERVICE_NAME)


app = FastAPI(
    title="Rotation Service",
    description="Savings group rotation: position assignment and collection timeline",
    version=settings.SERVICE_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestIDMiddleware)

app.include_router(system_controller.router)
app.include_router(group_controller.router)
app.include_router(invite_controller.router)
app.include_router(assignment_controller.router)
app.include_router(timeline_controller.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.SERVICE_PORT, log_level="info")
