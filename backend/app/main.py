import logging
import os
import time
import uuid
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from app.core.config import settings
from app.core.exceptions import AppError, RateLimitError, app_error_handler
from app.core.rate_limit import api_limiter, client_key
from app.api import auth, users, articles, comments, categories, tags, media, notifications, search

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    os.makedirs(settings.UPLOAD_PATH, exist_ok=True)
    logger.info(f"{settings.PROJECT_NAME} starting (rate limit backend: {settings.RATE_LIMIT_BACKEND})")
    yield
    logger.info(f"{settings.PROJECT_NAME} shutting down")


app = FastAPI(
    lifespan=lifespan,
    title=settings.PROJECT_NAME,
    description="Community blogging platform: articles, categories, tags, follows and engagement",
    version="1.0.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
)

app.add_exception_handler(AppError, app_error_handler)


@app.middleware("http")
async def rate_limit_middleware(request: Request, call_next):
    if not settings.ENABLE_RATE_LIMIT or not request.url.path.startswith(settings.API_V1_STR):
        return await call_next(request)

    allowed, remaining = api_limiter.allow(client_key(request))
    headers = {
        "X-RateLimit-Limit": str(api_limiter.limit),
        "X-RateLimit-Remaining": str(remaining),
    }
    if not allowed:
        exc = RateLimitError()
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail, "code": exc.code},
            headers={**headers, "Retry-After": str(api_limiter.window_seconds)},
        )
    response = await call_next(request)
    response.headers.update(headers)
    return response


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    response.headers["X-Request-ID"] = request_id
    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code} "
        f"({duration_ms:.1f} ms) request_id={request_id}"
    )
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-RateLimit-Limit", "X-RateLimit-Remaining"],
)

# API routes
api = settings.API_V1_STR
app.include_router(auth.router, prefix=f"{api}/auth", tags=["authentication"])
app.include_router(users.router, prefix=f"{api}/users", tags=["users"])
app.include_router(articles.router, prefix=f"{api}/articles", tags=["articles"])
app.include_router(comments.router, prefix=f"{api}/comments", tags=["comments"])
app.include_router(categories.router, prefix=f"{api}/categories", tags=["categories"])
app.include_router(tags.router, prefix=f"{api}/tags", tags=["tags"])
app.include_router(media.router, prefix=f"{api}/media", tags=["media"])
app.include_router(notifications.router, prefix=f"{api}/notifications", tags=["notifications"])
app.include_router(search.router, prefix=f"{api}/search", tags=["search"])

app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_PATH, check_dir=False), name="uploads")


@app.get("/")
async def root():
    return {"message": f"{settings.PROJECT_NAME}"}


@app.get("/health")
async def health_check():
    return {"status": "healthy", "version": "1.0.0"}
