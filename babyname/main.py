"""
FastAPI 主入口
"""
import logging
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, HTTPException, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from babyname.config import get_settings
from babyname.context import AppContext, build_context, get_context
from babyname.database import init_db
from babyname.routers import auth, favorites, name
from babyname.utils.errors import ApiError
from babyname.utils.metrics import IN_PROGRESS, REQUEST_COUNT, REQUEST_LATENCY, get_route_name
from babyname.utils.request_context import JsonFormatter, RequestIdFilter, request_id_ctx_var
from babyname.utils.security import verify_metrics_basic_auth

settings = get_settings()
logger = logging.getLogger(__name__)

API_VERSION = "2.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    settings.validate_secrets()
    ctx = build_context(settings)
    await init_db(ctx.engine)
    app.state.ctx = ctx
    logger.info("服务启动", extra={"environment": settings.environment, "redis": ctx.redis is not None})
    yield
    await ctx.aclose()


app = FastAPI(
    title="Baby Name API",
    description="AI 宝宝起名后端服务",
    version=API_VERSION,
    lifespan=lifespan,
)


def _error_response(status_code: int, error: dict, headers: dict = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error},
        headers=headers,
    )


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    return _error_response(exc.status_code, exc.to_dict())


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    code = "NOT_FOUND" if exc.status_code == status.HTTP_404_NOT_FOUND else f"HTTP_{exc.status_code}"
    return _error_response(
        exc.status_code,
        {"code": code, "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{field}: {first.get('msg')}" if field else "请求参数错误"
    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        {"code": "VALIDATION_ERROR", "message": message},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Global exception: {exc}", exc_info=True)
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        {"code": "INTERNAL_ERROR", "message": "服务器内部错误"},
    )


@app.middleware("http")
async def request_context_middleware(request, call_next):
    request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
    request.state.request_id = request_id
    token = request_id_ctx_var.set(request_id)
    response = None
    start = time.perf_counter()
    if settings.metrics_enabled:
        IN_PROGRESS.inc()

    try:
        response = await call_next(request)
        return response
    finally:
        duration = time.perf_counter() - start
        path = get_route_name(request.scope)
        status_code = response.status_code if response else 500
        if settings.metrics_enabled:
            REQUEST_COUNT.labels(request.method, path, str(status_code)).inc()
            REQUEST_LATENCY.labels(request.method, path).observe(duration)
            IN_PROGRESS.dec()
        request_id_ctx_var.reset(token)
        if response is not None:
            response.headers["X-Request-ID"] = request_id


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins or ["*"],
    allow_credentials=bool(settings.cors_origins),
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)

app.include_router(auth.router, prefix="/api/auth", tags=["授权"])
app.include_router(name.router, prefix="/api/name", tags=["起名"])
app.include_router(favorites.router, prefix="/api/favorites", tags=["收藏"])


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@app.get("/")
async def root():
    """API 信息"""
    return {
        "name": "Baby Name API",
        "version": API_VERSION,
        "status": "running",
        "timestamp": _now_iso(),
    }


@app.get("/api/health")
async def health_check(ctx: AppContext = Depends(get_context)):
    """
    健康检查端点

    数据库不可用时返回 503
    """
    elapsed = int(time.monotonic() - ctx.started_at)
    uptime = f"{elapsed // 60}m {elapsed % 60}s"
    try:
        async with ctx.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as exc:
        logger.error("健康检查数据库连接失败: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "degraded",
                "timestamp": _now_iso(),
                "database": "disconnected",
                "uptime": uptime,
            },
        )
    return {
        "status": "healthy",
        "timestamp": _now_iso(),
        "database": "connected",
        "uptime": uptime,
    }


@app.get("/metrics", dependencies=[Depends(verify_metrics_basic_auth)])
async def metrics():
    """Prometheus 指标端点（支持 Basic Auth 认证）"""
    if not settings.metrics_enabled:
        raise HTTPException(status_code=404, detail="Metrics disabled")
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


def configure_logging() -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    handler.addFilter(RequestIdFilter())
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(settings.log_level)
    for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(logger_name)
        uvicorn_logger.handlers = [handler]
        uvicorn_logger.setLevel(settings.log_level)
        uvicorn_logger.propagate = False


def init_sentry() -> None:
    if settings.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            environment=settings.environment,
            integrations=[FastApiIntegration()],
            traces_sample_rate=settings.sentry_traces_sample_rate,
            profiles_sample_rate=settings.sentry_profiles_sample_rate,
        )


configure_logging()
init_sentry()
