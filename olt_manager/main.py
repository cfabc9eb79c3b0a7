import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from olt_manager.api.api_v1.api import api_router as api_v1_router
from olt_manager.core.config import settings
from olt_manager.db.session import init_db
from olt_manager.services.discovery import (
    DiscoveryManager,
    SqlDiscoveryRunStore,
    SqlOltRegistry,
    SqlOnuRepository,
)
from olt_manager.services.olt.factory import OltDriverFactory

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def create_discovery_manager() -> DiscoveryManager:
    return DiscoveryManager(
        registry=SqlOltRegistry(),
        onu_repository=SqlOnuRepository(),
        run_store=SqlDiscoveryRunStore(),
        driver_factory=OltDriverFactory(),
        cycle_delay=settings.DISCOVERY_CYCLE_DELAY,
        error_backoff=settings.DISCOVERY_ERROR_BACKOFF,
        enrichment_concurrency=settings.ENRICHMENT_MAX_CONCURRENCY,
        enrichment_max_attempts=settings.ENRICHMENT_MAX_ATTEMPTS,
        enrichment_idle_interval=settings.ENRICHMENT_IDLE_INTERVAL,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    manager = create_discovery_manager()
    app.state.discovery_manager = manager
    if settings.DISCOVERY_AUTOSTART:
        await manager.initialize_all_active_devices()
    try:
        yield
    finally:
        await manager.shutdown()
        app.state.discovery_manager = None


app = FastAPI(
    title="OLT Manager",
    version="0.1.0",
    openapi_url="/api/v1/openapi.json",
    lifespan=lifespan,
)

app.include_router(api_v1_router, prefix="/api/v1")
