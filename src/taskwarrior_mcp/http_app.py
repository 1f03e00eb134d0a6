"""HTTP 传输 -- FastAPI 应用：/mcp (Streamable HTTP) + 健康检查

GET /health: Liveness 检查，永远返回 200。
GET /ready: Readiness 检查，探测 task 可执行（task --version）。
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import APIRouter, FastAPI, Request
from mcp.server.lowlevel import Server
from mcp.server.streamable_http_manager import StreamableHTTPSessionManager
from starlette.responses import JSONResponse
from starlette.types import Receive, Scope, Send

from . import __version__
from .config import TrackerConfig, load_tracker_config
from .server import create_server
from .services import TaskWarriorService

log = structlog.get_logger()

router = APIRouter()


@router.get("/health")
async def health():
    """Liveness 检查 -- 永远返回 200"""
    return {"status": "ok"}


@router.get("/ready")
async def ready(request: Request):
    """Readiness 检查 -- task 命令可用时返回 200，否则 503"""
    checks = {}
    all_ok = True

    try:
        task_service: TaskWarriorService = request.app.state.task_service
        version = await task_service.get_version()
        checks["tracker"] = "ok"
        checks["tracker_version"] = version
    except Exception as e:
        log.warning("readiness_check_failed", error=str(e))
        checks["tracker"] = f"error: {str(e)}"
        all_ok = False

    return JSONResponse(
        status_code=200 if all_ok else 503,
        content={
            "status": "ready" if all_ok else "not_ready",
            "checks": checks,
        },
    )


def create_http_app(server: Server, task_service: TaskWarriorService) -> FastAPI:
    """创建 FastAPI 应用实例

    会话管理器在 lifespan 内运行；/mcp 挂载为原始 ASGI 应用。
    """
    session_manager = StreamableHTTPSessionManager(app=server)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        async with session_manager.run():
            log.info("mcp_server_running", transport="streamable-http")
            yield
        log.info("mcp_server_stopped", transport="streamable-http")

    async def handle_mcp(scope: Scope, receive: Receive, send: Send) -> None:
        await session_manager.handle_request(scope, receive, send)

    app = FastAPI(
        title="Taskwarrior MCP",
        version=__version__,
        description="Taskwarrior MCP Server (Streamable HTTP)",
        lifespan=lifespan,
    )
    app.state.task_service = task_service
    app.state.session_manager = session_manager

    app.include_router(router, tags=["health"])
    app.mount("/mcp", app=handle_mcp)

    return app


def run_http(config: TrackerConfig | None = None) -> None:
    """uvicorn 启动 HTTP 传输"""
    config = config or load_tracker_config()
    task_service = TaskWarriorService(config)
    server = create_server(task_service=task_service, config=config)
    app = create_http_app(server, task_service)

    log.info("http_server_starting", host=config.http_host, port=config.http_port)
    # log_config=None：沿用 setup_logging() 配置的 root logger
    uvicorn.run(app, host=config.http_host, port=config.http_port, log_config=None)
