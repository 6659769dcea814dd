"""
Application Entry Point

Builds the FastAPI application that serves the library catalog:

- POST /graphql        queries and mutations
- WS   /graphql        subscriptions (graphql-transport-ws, graphql-ws)
- GET  /graphql        Apollo Sandbox, unless GRAPHQL_IDE_ENABLED=false
- GET  /health, GET /  liveness and discovery

Run locally with:
    uvicorn library_api.main:app --reload --port 4000
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from library_api.config import get_settings
from library_api.database import engine
from library_api.graphql import create_graphql_router
from library_api.services.pubsub import BOOK_ADDED, PubSub

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

GRAPHQL_PATH = "/graphql"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Log the effective setup on startup and release DB connections on exit."""
    logger.info(f"{settings.app_name} starting ({settings.environment}, debug={settings.debug})")
    logger.info(f"Store: {engine.url.render_as_string(hide_password=True)}")

    yield

    logger.info(
        f"{settings.app_name} stopping, "
        f"{app.state.pubsub.subscriber_count(BOOK_ADDED)} subscribers still connected"
    )
    engine.dispose()


def register_error_handlers(app: FastAPI) -> None:
    """
    Turn failures outside GraphQL resolvers into JSON 500 responses.

    Resolver errors never reach these handlers: Strawberry reports them in
    the "errors" list of a normal GraphQL response.
    """

    @app.exception_handler(SQLAlchemyError)
    async def store_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.error(f"Store error on {request.url.path}: {exc}")
        return JSONResponse(
            status_code=500,
            content={"detail": "A database error occurred. Please try again later."},
        )

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=True)
        detail = str(exc) if settings.debug else "An internal error occurred."
        return JSONResponse(status_code=500, content={"detail": detail})


def create_app() -> FastAPI:
    """
    Assemble the application.

    The pub/sub hub is created here, once per app, and stored on
    app.state so the GraphQL context can hand the same instance to
    mutations (publishers) and subscriptions (consumers).
    """
    app = FastAPI(
        title=settings.app_name,
        version=settings.api_version,
        description=(
            "GraphQL API for a library catalog.\n\n"
            f"Send queries to `{GRAPHQL_PATH}`. Authenticate with "
            "`Authorization: Bearer <token>` using the value returned by "
            "the `login` mutation. Subscribe to `bookAdded` over WebSocket."
        ),
        lifespan=lifespan,
    )
    app.state.pubsub = PubSub(queue_size=settings.subscriber_queue_size)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    app.include_router(
        create_graphql_router(settings.graphql_ide_enabled),
        prefix=GRAPHQL_PATH,
        tags=["GraphQL"],
    )

    @app.get("/health", tags=["Health"], summary="Liveness probe")
    async def health_check() -> dict:
        return {
            "status": "healthy",
            "app": settings.app_name,
            "version": settings.api_version,
            "environment": settings.environment,
            "graphql": {
                "endpoint": GRAPHQL_PATH,
                "ide_enabled": settings.graphql_ide_enabled,
            },
            "subscriptions": {
                "book_added": app.state.pubsub.subscriber_count(BOOK_ADDED),
                "topics": app.state.pubsub.get_stats(),
            },
        }

    @app.get("/", tags=["Root"], summary="Where to find the API")
    async def root() -> dict:
        return {
            "message": f"Welcome to {settings.app_name}",
            "version": settings.api_version,
            "graphql": GRAPHQL_PATH,
            "health": "/health",
        }

    return app


# uvicorn library_api.main:app
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "library_api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
