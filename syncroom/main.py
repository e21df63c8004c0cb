"""
syncroom.main
~~~~~~~~~~~~~

FastAPI 应用入口 —— 注册路由、挂载中间件、定义生命周期。
"""
from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from syncroom.api import room_endpoints, room_ws
from syncroom.core.logging import get_logger, setup_logging
from syncroom.core.rate_limit import limiter
from syncroom.core.settings import settings
from syncroom.schemas.api_response import ApiResponse
from syncroom.services.connection_registry import ConnectionRegistry
from syncroom.services.listening_system import ListeningSystem

# 初始化日志系统（必须在其他模块之前）
setup_logging()
logger = get_logger(__name__)


# ── 生命周期 ──────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期钩子：创建进程内唯一的连接注册表与收听系统。"""
    # ── 启动 ──
    connections = ConnectionRegistry(outbox_size=settings.WS_OUTBOX_SIZE)
    app.state.connections = connections
    app.state.listening_system = ListeningSystem(
        transport=connections,
        grace_period=settings.ROOM_GRACE_PERIOD,
    )
    logger.info(
        "🚀 应用已启动 | env=%s | debug=%s | log_level=%s | grace=%.0fs",
        settings.ENVIRONMENT,
        settings.dev_mode,
        settings.effective_log_level,
        settings.ROOM_GRACE_PERIOD,
    )
    yield
    # ── 关闭 ──（房间状态只在内存中，随进程一起丢弃）
    logger.info("👋 应用已关闭 | 丢弃 %d 个房间", len(app.state.listening_system.table))


# ── 创建 FastAPI 实例 ─────────────────────────────────────────────────

app: FastAPI = FastAPI(
    title=settings.PROJECT_NAME,
    description="多人同步收听房间后端 API",
    version=settings.VERSION,
    debug=settings.dev_mode,
    lifespan=lifespan,
)

# ── 限流 ──────────────────────────────────────────────────────────────
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# ── CORS 中间件 ───────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET"] if settings.is_prod else ["*"],
    allow_headers=["*"],
)

# ── 路由挂载 ──────────────────────────────────────────────────────────
app.include_router(room_endpoints.router, prefix="/api", tags=["Rooms"])
app.include_router(room_ws.router, tags=["WebSocket Rooms"])


# ── 全局异常处理器 ────────────────────────────────────────────────────

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """捕获所有未处理异常，返回统一的 ApiResponse.fail() 格式。"""
    logger.error("未捕获异常: %s %s -> %s", request.method, request.url, exc, exc_info=True)
    # 非 prod 环境返回详细错误信息，prod 环境隐藏内部细节
    detail = str(exc) if not settings.is_prod else "服务器内部错误"
    response = ApiResponse.fail(msg=detail, code=500, data=None)
    return JSONResponse(
        status_code=500,
        content=response.model_dump(),
    )


@app.get("/health", tags=["System"])
async def health_check(request: Request) -> JSONResponse:
    """验证服务是否正常运行。

    Returns:
        包含服务状态、房间数与在线连接数的 JSON 响应。
    """
    return JSONResponse(
        content={
            "status": "ok",
            "environment": settings.ENVIRONMENT,
            "rooms": len(request.app.state.listening_system.table),
            "connections": request.app.state.connections.online_count,
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "syncroom.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.dev_mode,
        log_level=settings.effective_log_level.lower(),
    )
