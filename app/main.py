import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from app import task_queue
from app.database import dispose_db, init_db
from app.dependencies import get_settings
from app.hashtags.admin_router import router as hashtags_admin_router
from app.hashtags.internal_router import router as hashtags_internal_router
from app.hashtags.router import router as hashtags_router
from app.rate_limit import limiter
from shared.database import get_redis_client
from shared.middleware import error_body, error_envelope_middleware, request_id_middleware

logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(name)s: %(message)s")
logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

# Swagger tag groups displayed in the OpenAPI docs sidebar
_OPENAPI_TAGS = [
    {
        "name": "Hashtags",
        "description": (
            "Trending hashtags ranked by a recency-weighted score over rolling "
            "hour / day / week windows. Also autocomplete and per-tag details."
        ),
    },
    {
        "name": "Hashtags Admin",
        "description": "Moderator tools: ban, feature and recategorize hashtags.",
    },
    {
        "name": "Internal",
        "description": (
            "Service-to-service ingestion. The post service reports the hashtags "
            "of every created or edited post here."
        ),
    },
    {
        "name": "Health",
        "description": "Liveness probe.",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())
    init_db(settings.database_url)
    redis_client = get_redis_client(
        settings.redis_url, socket_timeout=settings.redis_socket_timeout_seconds
    )
    app.state.redis = redis_client
    if settings.ingest_mode == "queue":
        await task_queue.init_pool(settings.redis_url)
    logger.info("Hashtag service started (env=%s, ingest=%s)", settings.env_name, settings.ingest_mode)

    yield

    await task_queue.close_pool()
    await redis_client.aclose()
    await dispose_db()


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(request, exc.status_code, message),
        headers=getattr(exc, "headers", None),
    )


def _install_middleware(app: FastAPI, origins: list[str]) -> None:
    # Registration order is inside-out: request_id, then the error envelope
    # around it, then CORS outermost so 429s and 500s still carry CORS headers.
    app.middleware("http")(request_id_middleware)
    app.middleware("http")(error_envelope_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
        max_age=600,
    )


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title="YiBu Hashtag Service",
        description=(
            "Counts hashtag usage from posts, decays the rolling usage windows on a "
            "schedule, and serves a ranked trending list."
        ),
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_tags=_OPENAPI_TAGS,
        lifespan=lifespan,
    )

    # slowapi looks the limiter up on app.state
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)

    _install_middleware(app, settings.cors_origins_list)

    for router in (hashtags_router, hashtags_internal_router, hashtags_admin_router):
        app.include_router(router, prefix=API_PREFIX)

    @app.get("/health", tags=["Health"])
    async def health() -> dict:
        """Lightweight liveness probe. Does not hit the database."""
        return {"status": "ok", "service": "hashtags"}

    return app


app = create_app()
