"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from contas_gateway.api.middleware import RequestIDMiddleware, MetricsMiddleware
from contas_gateway.api.v1 import accounts, bills, cards, dashboard, ledger, transfers, vendors
from contas_gateway.infrastructure.observability.logging import setup_logging
from contas_gateway.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Contas Gateway",
        description="Bill, installment and bank ledger service",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(accounts.router, prefix="/v1", tags=["accounts"])
    app.include_router(ledger.router, prefix="/v1", tags=["ledger"])
    app.include_router(transfers.router, prefix="/v1", tags=["transfers"])
    app.include_router(vendors.router, prefix="/v1", tags=["vendors"])
    app.include_router(cards.router, prefix="/v1", tags=["cards"])
    app.include_router(bills.router, prefix="/v1", tags=["bills"])
    app.include_router(dashboard.router, prefix="/v1", tags=["dashboard"])

    return app


app = create_app()
