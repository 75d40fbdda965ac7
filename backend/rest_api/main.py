"""
REST API main application.
Entry point for the FastAPI REST server.
"""

from fastapi import FastAPI

from rest_api.core.container import Container
from rest_api.core.cors import configure_cors
from rest_api.core.errors import register_exception_handlers
from rest_api.core.lifespan import lifespan
from rest_api.core.middlewares import register_middlewares
from rest_api.routers.admin import router as admin_router
from rest_api.routers.auth import router as auth_router, verification_router
from rest_api.routers.public import health_router
from rest_api.routers.users import router as users_router
from shared.config.settings import settings
from shared.security.rate_limit import limiter


def create_app(container: Container | None = None) -> FastAPI:
    """
    Build the application around a container.

    Passing a container lets tests swap the database, key-value store,
    mail sender and clock without touching module globals.
    """
    app = FastAPI(
        title="StudyHub REST API",
        description="Campus study-materials platform: accounts and authentication",
        version="0.1.0",
        lifespan=lifespan,
    )

    (container or Container()).install(app)

    # Rate limiting for throttled endpoints
    app.state.limiter = limiter

    register_exception_handlers(app)
    register_middlewares(app)
    configure_cors(app)

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(verification_router)
    app.include_router(users_router)
    app.include_router(admin_router)

    return app


app = create_app()


# =============================================================================
# Development entry point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "rest_api.main:app",
        host="0.0.0.0",
        port=settings.rest_api_port,
        reload=True,
    )
