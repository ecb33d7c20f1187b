"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from deed_ledger.api.middleware import RequestIDMiddleware, MetricsMiddleware
from deed_ledger.api.v1 import contracts, data_quality, installments, payments, reports
from deed_ledger.infrastructure.observability.logging import setup_logging
from deed_ledger.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Deed Ledger",
        description="Contract-for-Deed land sale ledger: receivables, installment-sale gain and tax reports",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(contracts.router, prefix="/v1", tags=["contracts"])
    app.include_router(payments.router, prefix="/v1", tags=["payments"])
    app.include_router(installments.router, prefix="/v1", tags=["installments"])
    app.include_router(reports.router, prefix="/v1", tags=["reports"])
    app.include_router(data_quality.router, prefix="/v1", tags=["exceptions"])

    return app


app = create_app()
