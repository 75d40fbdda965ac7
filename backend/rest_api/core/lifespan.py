"""
Startup and shutdown of the REST API process.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from rest_api.core.container import get_container
from rest_api.models import Base
from shared.config.logging import rest_api_logger as logger, setup_logging


def check_configuration(settings) -> None:
    """Refuse to start production with weak secrets; only warn elsewhere."""
    problems = settings.validate_production_secrets()
    for problem in problems:
        logger.error("Configuration error", error=problem)

    if problems and settings.environment == "production":
        raise RuntimeError("Refusing to start: " + "; ".join(problems))
    if settings.uses_dev_secret:
        logger.warning("JWT_SECRET is the development default; tokens are forgeable")


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    container = get_container(app)
    check_configuration(container.settings)

    Base.metadata.create_all(bind=container.engine)
    purged = container.verification_service.purge_expired()
    logger.info(
        "REST API ready",
        port=container.settings.rest_api_port,
        env=container.settings.environment,
        purged_codes=purged,
    )

    container.start()
    try:
        yield
    finally:
        logger.info("REST API stopping")
        container.shutdown()
