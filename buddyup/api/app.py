"""
FastAPI application for BuddyUp.

Start with: uvicorn buddyup.api.app:app --reload --port 8081
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from buddyup.builder import ServiceBuilder
from buddyup.core.protocols import ModelClient
from buddyup.infra.config import BuddyUpConfig
from buddyup.infra.event_pusher import WebSocketEventPusher
from buddyup.infra.websocket_manager import WebSocketManager

from .routes import router, ws_router

logger = logging.getLogger(__name__)


def create_app(
    config: Optional[BuddyUpConfig] = None,
    model_client: Optional[ModelClient] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    ``model_client`` overrides the Claude client built from config, which
    lets tests and demos run without an API key.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Build the service on startup, stop pending replies on shutdown."""
        cfg = config or BuddyUpConfig()

        ws_manager = WebSocketManager()
        app.state.ws_manager = ws_manager

        builder = (
            ServiceBuilder(cfg)
            .with_event_pusher(WebSocketEventPusher(ws_manager))
        )
        if model_client is not None:
            builder.with_model_client(model_client)

        app.state.service = builder.build()
        app.state.config = cfg

        logger.info("BuddyUp API started")
        yield

        await app.state.service.close()
        logger.info("BuddyUp API shutdown")

    app = FastAPI(
        title="BuddyUp API",
        description="AI wingman for finding activity partners and groups",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)
    app.include_router(ws_router)

    return app


app = create_app()
