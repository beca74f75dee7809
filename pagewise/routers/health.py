from fastapi import APIRouter, Request

from pagewise.core.config import get_settings


router = APIRouter(tags=["Health"])


def _service_info() -> dict[str, str]:
    settings = get_settings()
    return {
        "status": "ok",
        "service": settings.app_name,
        "version": settings.app_version,
    }


@router.get("/")
def read_health() -> dict[str, str]:
    return _service_info()


@router.get("/health")
async def health_check(request: Request) -> dict[str, str]:
    """Readiness probe; the session cache is optional and reported separately."""
    redis = getattr(request.app.state, "redis", None)
    connected = redis is not None and await redis.health_check()
    return {
        **_service_info(),
        "session_cache": "connected" if connected else "disabled",
    }
