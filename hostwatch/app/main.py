from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from hostwatch.app.core.config import Settings, settings as default_settings
from hostwatch.app.routers import alerts, network, processes, system
from hostwatch.app.state import MonitorState, build_state
from hostwatch.app.version import HOSTWATCH_VERSION


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Run the collection and discovery loops for the lifetime of the app."""
    state: MonitorState = app.state.monitor
    if not logging.getLogger().handlers:
        logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger("hostwatch").setLevel(state.settings.log_level)
    await state.start()
    try:
        yield
    finally:
        await state.stop()


def create_app(config: Settings | None = None, *, state: MonitorState | None = None) -> FastAPI:
    config = config or (state.settings if state else default_settings)
    application = FastAPI(title=config.app_name, debug=config.debug, version=config.version, lifespan=lifespan)
    application.state.monitor = state or build_state(config)

    application.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_allow_origins or ["*"],
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    application.include_router(system.router)
    application.include_router(network.router)
    application.include_router(processes.router)
    application.include_router(alerts.router)

    @application.get("/healthz", tags=["meta"])
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @application.get("/version", tags=["meta"])
    async def version() -> dict[str, str]:
        return {"version": HOSTWATCH_VERSION}

    return application


app = create_app()


def run() -> None:
    config = default_settings
    uvicorn.run(app, host=config.bind_host, port=config.bind_port, log_level=config.log_level.lower())


if __name__ == "__main__":
    run()
