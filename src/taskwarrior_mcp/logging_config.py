"""structlog 日志初始化

所有日志经由标准库 logging 输出到 stderr：stdio 传输时 stdout 只能承载协议消息。
渲染模式：
  dev  -- 单行可读文本（默认，无颜色，便于 MCP 客户端日志面板显示）
  json -- 每行一个 JSON 对象
"""

import logging
import os
import sys

import structlog

# mcp SDK 每个请求都会输出 INFO 日志，非 DEBUG 级别时压低
_NOISY_LOGGERS = ("mcp", "httpx", "uvicorn.access")


def setup_logging(log_format: str | None = None, log_level: str | None = None) -> None:
    """初始化 structlog + 标准库 logging

    Args:
        log_format: dev / json，缺省读取 TASKWARRIOR_MCP_LOG_FORMAT
        log_level: 日志级别名，缺省读取 TASKWARRIOR_MCP_LOG_LEVEL（默认 INFO）
    """
    log_format = log_format or os.environ.get("TASKWARRIOR_MCP_LOG_FORMAT", "dev")
    level_name = (log_level or os.environ.get("TASKWARRIOR_MCP_LOG_LEVEL", "INFO")).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO

    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    render_chain: list[structlog.types.Processor] = [
        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
    ]
    if log_format == "json":
        render_chain += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ]
    else:
        render_chain.append(structlog.dev.ConsoleRenderer(colors=False))

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=render_chain,
            foreign_pre_chain=pre_chain,
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level if level <= logging.DEBUG else logging.WARNING)
