# main.py
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi_limiter import FastAPILimiter
from starlette.middleware.cors import CORSMiddleware
import routes
from config.cache import close_redis, get_redis, redis_healthy
from config.settings import settings
from controller.controller_dependencies import get_reviewer_pool
from util.enums import Color, Environment
from util.errors import AppError
from util.logger import init_logger

logger = logging.getLogger(__name__)


async def _client_id(request: Request) -> str:
    # Rate-limit key
    if settings.TRUST_PROXY:
        fwd = request.headers.get("x-forwarded-for")
        if fwd:
            return fwd.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


@asynccontextmanager
async def lifespan(fastApi: FastAPI):
    init_logger()
    print(f"{Color.GREEN}Initializing...{Color.RESET}")
    # Invalid REVIEWERS_JSON fails the boot.
    pool = get_reviewer_pool()
    if not pool.enabled:
        logger.warning("startup.reviewers none enabled")
    logger.info("startup.reviewers enabled=%d", len(pool.enabled))
    try:
        redis = await get_redis()
        await FastAPILimiter.init(redis, identifier=_client_id)
    except Exception:
        logger.error("startup.redis.error", exc_info=True)
        raise
    print(f"{Color.BLUE}Server Started{Color.RESET}")

    try:
        yield
    finally:
        try:
            await close_redis()
        except Exception:
            logger.error("shutdown.redis.error", exc_info=True)
        print(f"{Color.RED}Server Shutdown{Color.RESET}")


app: FastAPI = FastAPI(title="paper-provenance", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.ALLOWED_ORIGIN],
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Authorization", "Content-Type", "Accept"],
)


@app.get("/healthz")
async def healthz():
    ok = await redis_healthy()
    return JSONResponse(status_code=200 if ok else 503, content={"ok": ok})


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    logger.info("http.app_error status=%d path=%s", exc.status_code, request.url.path)
    return JSONResponse(
        status_code=exc.status_code,
        content={"ok": False, "error": exc.detail},
    )


@app.exception_handler(429)
async def ratelimit_handler(request: Request, exc):
    retry = str(settings.RATE_LIMIT_SECONDS)
    return JSONResponse(
        status_code=429,
        content={
            "ok": False,
            "error": "rate_limited",
            "message": f"Too many requests. Try again in {retry}s.",
        },
        headers={"Retry-After": retry},
    )


routes.register_routes(app)

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="127.0.0.1",
        port=8000,
        reload=settings.APP_ENV == Environment.DEV,
    )
