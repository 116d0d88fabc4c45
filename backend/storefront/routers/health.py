"""
Liveness and readiness probes.
"""
from fastapi import APIRouter, Request, status

from storefront.database.connections import get_database, ping_mongo, ping_redis
from storefront.database.registry import check_indexes

router = APIRouter(tags=["Health"])


async def check_schema() -> None:
    """Raise if the shop indexes are missing or outdated."""
    problems = await check_indexes(await get_database())
    if problems:
        raise RuntimeError("; ".join(problems))


@router.get("/health", status_code=status.HTTP_200_OK, summary="Liveness")
async def health_check():
    return {"status": "healthy"}


@router.get("/health/ready", status_code=status.HTTP_200_OK, summary="Readiness")
async def readiness_check(request: Request):
    """
    Per-dependency status. Redis being down only delays event forwarding,
    so the API reports `degraded` rather than failing.
    """
    checks = {"api": "healthy"}
    for name, check in (("mongodb", ping_mongo), ("schema", check_schema), ("redis", ping_redis)):
        try:
            await check()
            checks[name] = "healthy"
        except Exception as e:
            checks[name] = f"unhealthy: {e}"

    services = getattr(request.app.state, "services", None)
    pending = services.bus.pending if services is not None else 0

    return {
        "status": "healthy" if all(v == "healthy" for v in checks.values()) else "degraded",
        "checks": checks,
        "pending_events": pending,
    }
