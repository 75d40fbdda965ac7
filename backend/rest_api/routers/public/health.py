"""
Liveness and dependency health.

/api/health answers without touching anything; /api/health/detailed checks
the database and the key-value store and answers 503 when either is down.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text

from rest_api.core.container import Container
from rest_api.routers._common import get_container
from shared.infrastructure.kv_store import StoreUnavailableError
from shared.utils.health import HealthStatus, aggregate_health_checks, timed_health_check

SERVICE_NAME = "rest-api"

router = APIRouter(prefix="/api", tags=["health"])


@timed_health_check("database", timeout=3.0)
def check_database(container: Container) -> dict:
    with container.engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return {"dialect": container.engine.dialect.name}


@timed_health_check("kv_store", timeout=3.0)
def check_kv_store(container: Container) -> dict:
    if not container.store.ping():
        raise StoreUnavailableError("ping failed")
    return {"backend": container.settings.kv_backend}


@router.get("/health")
def liveness(container: Container = Depends(get_container)):
    return {
        "status": HealthStatus.HEALTHY.value,
        "service": SERVICE_NAME,
        "environment": container.settings.environment,
    }


@router.get("/health/detailed")
def dependency_health(container: Container = Depends(get_container)):
    report = aggregate_health_checks([check_database(container), check_kv_store(container)])
    body = {
        "service": SERVICE_NAME,
        "environment": container.settings.environment,
        "status": report["status"],
        "dependencies": report["components"],
        "login_audit": {
            "running": container.login_audit.running,
            "dropped": container.login_audit.dropped,
        },
    }
    if report["status"] != HealthStatus.HEALTHY.value:
        return JSONResponse(content=body, status_code=503)
    return body
