"""FastAPI application entrypoint.

Configures CORS, error tracking, includes routers, and exposes a healthcheck
endpoint.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

from . import schemas
from .deps import get_settings
from .routers import campaign_insights as campaign_insights_router
from .routers import metric_config as metric_config_router
from .telemetry import init_sentry


def create_app() -> FastAPI:
    # Sentry must be initialised before the app so the FastAPI integration hooks in
    sentry_enabled = init_sentry()

    app = FastAPI(
        title="adsight API",
        description="""
        adsight serves campaign analytics for marketing dashboards.

        This API provides endpoints for:
        - Campaign → ad set → ad drill-down with aggregated performance
        - Day / week / month period pivots over any date range
        - Per-entity metric display configuration

        ## Tenancy

        Every data endpoint is scoped by the `X-Organization-ID` header and a
        `client_id` query parameter. Authentication happens upstream.
        """,
        version="1.0.0",
    )

    # Trust X-Forwarded-* headers from the load balancer
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts="*")

    settings = get_settings()
    allowed_origins = settings.cors_origins
    logger.info(f"[CORS] Allowed origins: {allowed_origins}")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(campaign_insights_router.router)
    app.include_router(metric_config_router.router)

    @app.get(
        "/health",
        response_model=schemas.HealthResponse,
        tags=["Health"],
        summary="Health check",
    )
    def health():
        return schemas.HealthResponse(status="ok")

    logger.info(f"[STARTUP] adsight API ready (sentry={'on' if sentry_enabled else 'off'})")
    return app


app = create_app()
