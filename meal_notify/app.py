"""
FastAPI application entry point for the reminder relay.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from meal_notify.config import get_settings
from meal_notify.dependencies import Services
from meal_notify.routes import router
from meal_notify.ticker import create_ticker

logger = logging.getLogger(__name__)


def create_app(services: Optional[Services] = None) -> FastAPI:
    services = services or Services.build(get_settings())
    settings = services.settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        ticker = None
        if settings.local_ticker_enabled:
            ticker = create_ticker(services.evaluator, settings.reminder_timezone)
            ticker.start()
            logger.info("Local ticker started (checks every minute)")
        try:
            yield
        finally:
            if ticker is not None:
                ticker.shutdown(wait=False)

    app = FastAPI(title="Meal Notify Relay", version="0.1.0", lifespan=lifespan)
    app.state.services = services
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_origin_regex=settings.cors_origin_regex,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
        max_age=86400,
    )
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
