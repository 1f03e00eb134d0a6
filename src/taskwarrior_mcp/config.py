"""TrackerConfig -- task 进程调用配置

从环境变量加载配置；作为不可变记录传入 TaskWarriorService，
不修改进程级环境变量。
"""

import os

import structlog
from pydantic import BaseModel, ConfigDict, Field

log = structlog.get_logger()

DEFAULT_TIMEOUT_S = 30
DEFAULT_HTTP_HOST = "127.0.0.1"
DEFAULT_HTTP_PORT = 8765


class TrackerConfig(BaseModel):
    """task 进程调用配置 -- 从环境变量加载

    环境变量:
        TASKWARRIOR_MCP_TASK_BIN: task 可执行文件（默认 task）
        TASKDATA: 数据目录
        TASKRC: 配置文件路径
        TASKWARRIOR_MCP_TIMEOUT_S: 单条命令超时（秒，默认 30）
        TASKWARRIOR_MCP_HTTP_HOST / TASKWARRIOR_MCP_HTTP_PORT: HTTP 模式监听地址
    """

    model_config = ConfigDict(frozen=True)

    task_bin: str = Field(default="task", description="task 可执行文件")
    task_data: str | None = Field(default=None, description="TASKDATA 数据目录")
    task_rc: str | None = Field(default=None, description="TASKRC 配置文件路径")
    extra_env: dict[str, str] = Field(
        default_factory=dict,
        description="额外的环境变量覆盖，最后合并",
    )
    timeout_s: int = Field(
        default=DEFAULT_TIMEOUT_S,
        ge=1,
        description="单条 task 命令超时（秒）",
    )
    http_host: str = Field(default=DEFAULT_HTTP_HOST, description="HTTP 模式监听地址")
    http_port: int = Field(
        default=DEFAULT_HTTP_PORT,
        ge=1,
        le=65535,
        description="HTTP 模式监听端口",
    )


def _int_from_env(
    env_var: str,
    fallback: int,
    minimum: int = 1,
    maximum: int | None = None,
) -> int | None:
    val = os.environ.get(env_var)
    if not val:
        return None
    try:
        parsed = int(val)
        if parsed < minimum or (maximum is not None and parsed > maximum):
            raise ValueError(f"out of range: {parsed}")
        return parsed
    except ValueError:
        log.warning(
            "invalid_int_config",
            env_var=env_var,
            value=val,
            fallback=fallback,
        )
        return None


def load_tracker_config() -> TrackerConfig:
    """从环境变量加载 TrackerConfig

    无法解析的数值配置记录 warning 并使用默认值，不阻塞启动。
    """
    kwargs: dict = {}

    if val := os.environ.get("TASKWARRIOR_MCP_TASK_BIN"):
        kwargs["task_bin"] = val

    if val := os.environ.get("TASKDATA"):
        kwargs["task_data"] = val

    if val := os.environ.get("TASKRC"):
        kwargs["task_rc"] = val

    if (timeout_s := _int_from_env("TASKWARRIOR_MCP_TIMEOUT_S", DEFAULT_TIMEOUT_S)) is not None:
        kwargs["timeout_s"] = timeout_s

    if val := os.environ.get("TASKWARRIOR_MCP_HTTP_HOST"):
        kwargs["http_host"] = val

    port = _int_from_env("TASKWARRIOR_MCP_HTTP_PORT", DEFAULT_HTTP_PORT, maximum=65535)
    if port is not None:
        kwargs["http_port"] = port

    return TrackerConfig(**kwargs)
