from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI

from app.api import router
from logging_config import configure_logging
from services.supervisor import Supervisor, build_default_supervisor
from settings import SettingsStore


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    supervisor: Supervisor = app.state.supervisor
    supervisor.start()
    try:
        yield
    finally:
        supervisor.shutdown()
        build_default_supervisor.cache_clear()


def create_app(supervisor: Optional[Supervisor] = None) -> FastAPI:
    supervisor = supervisor or build_default_supervisor()
    configure_logging(supervisor.settings)
    app = FastAPI(
        title="Baro Monitor",
        description="Pressure and temperature telemetry workers with on-demand history dumps.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.supervisor = supervisor
    app.state.settings_store = SettingsStore(supervisor.settings)
    app.include_router(router)
    return app
