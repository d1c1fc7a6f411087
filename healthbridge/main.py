import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI

from healthbridge.core.config import get_settings
from healthbridge.core.database import init_db
from healthbridge.core.services import build_services
from healthbridge.api import config, provider, sync
from healthbridge.services.scheduler import start_scheduler, stop_scheduler


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown events."""
    # Startup
    settings = get_settings()
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    services = getattr(app.state, "services", None) or build_services(settings)
    app.state.services = services
    await init_db(services.engine)
    scheduler = start_scheduler(services) if settings.scheduler_enabled else None
    yield
    # Shutdown
    stop_scheduler(scheduler)
    await services.aclose()


# Create FastAPI application
app = FastAPI(
    title="Health Bridge",
    description="Forwards daily health metrics to a remote ingest service, once per change",
    version="0.1.0",
    lifespan=lifespan,
)

# Include routers
app.include_router(config.router)
app.include_router(provider.router)
app.include_router(sync.router)
