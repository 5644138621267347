# app/main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.routing import APIRoute

from app.core.config import Settings, settings as default_settings
from app.core.db import Database
from app.core.errors import register_error_handlers
from app.core.logging import configure_logging
from app.routers import auth, health, interactions, listings, messages, recommendations, saved_listings, users
from app.services.geocoding import build_geocoder
from app.services.image_store import build_image_store

logger = logging.getLogger(__name__)

ROUTERS = [
    health.router,
    auth.router,
    users.router,
    users.admin_router,
    listings.router,
    interactions.router,
    recommendations.router,
    saved_listings.router,
    messages.router,
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    db = Database(settings.DATABASE_URL)
    db.create_all()
    if db.ping():
        logger.info("database connected (backend=%s)", db.backend)
    app.state.db = db
    app.state.image_store = build_image_store(settings)
    app.state.geocoder = build_geocoder(settings)
    try:
        yield
    finally:
        db.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(title="Vehicle Marketplace API", lifespan=lifespan)
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    for r in ROUTERS:
        app.include_router(r)

    for r in app.routes:
        if isinstance(r, APIRoute):
            logger.info("route %s %s", sorted(r.methods), r.path)

    def custom_openapi():
        if app.openapi_schema:
            return app.openapi_schema
        schema = get_openapi(
            title=app.title,
            version="1.0.0",
            description="Vehicle marketplace API",
            routes=app.routes,
        )
        schemes = schema.setdefault("components", {}).setdefault("securitySchemes", {})
        for key in list(schemes.keys()):
            if schemes[key].get("type") == "oauth2":
                schemes.pop(key, None)
        schemes["BearerAuth"] = {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"}
        schema["security"] = [{"BearerAuth": []}]
        app.openapi_schema = schema
        return app.openapi_schema

    app.openapi = custom_openapi
    return app


app = create_app()
