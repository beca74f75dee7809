import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pagewise.core.config import get_settings
from pagewise.routers import health, sessions
from pagewise.services import wait_for_buckets
from pagewise.services.redis import RedisConnection, RedisUnavailableError
from pagewise.services.workspace import get_study_workspace


logger = logging.getLogger(__name__)
settings = get_settings()


def configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    await wait_for_buckets(settings)

    workspace = get_study_workspace()
    redis = RedisConnection(settings.redis_url, settings.redis_max_connections)
    try:
        await redis.connect()
        workspace.attach_cache(redis.client)
    except RedisUnavailableError as exc:
        # Record ids are then only recovered from explicit record ids.
        logger.warning("Session cache disabled: %s", exc.message)

    app.state.redis = redis
    try:
        yield
    finally:
        workspace.detach_cache()
        await redis.disconnect()


app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.resolved_cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(sessions.router)
app.include_router(health.router)
