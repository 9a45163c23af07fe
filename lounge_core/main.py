from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager
from threading import RLock

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from lounge_core.api.dependencies import get_settings
from lounge_core.api.v1 import discounts, equipment, health, sessions
from lounge_core.clients.power import PowerControlClient
from lounge_core.config.logging import setup_logging
from lounge_core.db.database import get_engine, get_sessionmaker
from lounge_core.db.models import Base
from lounge_core.monitoring.metrics import init_app_info, setup_instrumentator
from lounge_core.services.discount import new_discount_cache
from lounge_core.services.power import PowerSignaller


def _ensure_schema(settings) -> None:
    Base.metadata.create_all(get_engine(settings))


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting game-lounge core service")

    settings = get_settings()
    _ensure_schema(settings)
    app.state.sessionmaker = get_sessionmaker(settings)
    app.state.discount_cache = new_discount_cache(settings.discount_ttl_sec)
    app.state.discount_lock = RLock()

    power_client = None
    executor = None
    if settings.power_control_enabled:
        power_client = PowerControlClient(settings)
        executor = ThreadPoolExecutor(
            max_workers=settings.power_signal_workers,
            thread_name_prefix="power-signal",
        )
    else:
        logger.warning("TV power control disabled")
    app.state.power_client = power_client
    app.state.power_signaller = PowerSignaller(
        power_client, executor, settings.power_signal_wait_sec
    )

    yield

    logger.info("Shutting down game-lounge core service")
    if executor is not None:
        executor.shutdown(wait=False)
    if power_client is not None:
        power_client.close()


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings.log_level)

    app = FastAPI(
        title="Game Lounge Core Service",
        description="Session lifecycle and billing for console game stations",
        version="1.0.0",
        lifespan=lifespan,
    )

    instrumentator = setup_instrumentator()
    instrumentator.instrument(app).expose(app)

    init_app_info("1.0.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router, prefix="/api/v1", tags=["health"])
    app.include_router(sessions.router, prefix="/api/v1", tags=["sessions"])
    app.include_router(equipment.router, prefix="/api/v1", tags=["equipment"])
    app.include_router(discounts.router, prefix="/api/v1", tags=["discounts"])

    return app


def main():
    import uvicorn

    uvicorn.run(
        "lounge_core.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_config=None,
    )


app = create_app()


if __name__ == "__main__":
    main()
