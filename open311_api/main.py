from __future__ import annotations

from fastapi import Depends, FastAPI

from open311_api.api.dependencies import get_registry
from open311_api.api.errors import register_exception_handlers
from open311_api.api.requests import router as requests_router
from open311_api.api.services import router as services_router
from open311_api.config import Settings, get_settings
from open311_api.models.schemas import HealthResponse
from open311_api.observability.logging import LogFacade
from open311_api.observability.middleware import RequestContextMiddleware
from open311_api.services.catalog import seed_catalog
from open311_api.services.request_registry import RequestRegistry


def create_app(settings: Settings | None = None, log: LogFacade | None = None) -> FastAPI:
    """Build the application: catalog, then logging, then registry and routes.

    Usable directly as a uvicorn factory: `uvicorn open311_api.main:create_app --factory`.
    """

    settings = settings or get_settings()
    catalog = seed_catalog()

    if log is None:
        log = LogFacade(settings.syslog_address, settings.log_tag, level=settings.log_level.upper())
    log.open()

    app = FastAPI(title="Open311 API", version="0.1.0")
    app.state.settings = settings
    app.state.catalog = catalog
    app.state.registry = RequestRegistry()
    app.state.log = log

    app.include_router(services_router)
    app.include_router(requests_router)
    app.add_middleware(RequestContextMiddleware, log=log)
    register_exception_handlers(app)

    @app.get("/health", response_model=HealthResponse)
    def health(registry: RequestRegistry = Depends(get_registry)) -> HealthResponse:
        return HealthResponse(status="ok", requests=len(registry))

    log.info("Seeded service catalog with %d services", len(catalog))
    return app
