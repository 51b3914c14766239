"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes import campus, deliveries, health, orders, payments, riders, webhooks
from .config import settings
from .data.campus_repository import seed_reference_data
from .db.session import init_db, session_scope
from .log_setup import configure_logging
from .workers.installments import SweepWorker

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    if settings.seed_reference_data:
        try:
            with session_scope() as session:
                seed_reference_data(session)
        except FileNotFoundError as exc:
            logger.warning(f"Campus reference data not seeded: {exc}")

    worker = None
    if settings.run_installment_sweeper:
        worker = SweepWorker()
        worker.start()
    try:
        yield
    finally:
        if worker is not None:
            worker.stop()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    if settings.frontend_allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.frontend_allowed_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.get("/")
    def root():
        return {
            "service": settings.app_name,
            "status": "running",
            "api_prefix": settings.api_prefix,
            "health": f"{settings.api_prefix}/health",
            "docs": "/docs",
        }

    app.include_router(health.router, prefix=settings.api_prefix)
    app.include_router(campus.router, prefix=settings.api_prefix)
    app.include_router(deliveries.router, prefix=settings.api_prefix)
    app.include_router(riders.router, prefix=settings.api_prefix)
    app.include_router(orders.router, prefix=settings.api_prefix)
    app.include_router(payments.router, prefix=settings.api_prefix)
    app.include_router(webhooks.router, prefix=settings.api_prefix)
    return app


app = create_app()
