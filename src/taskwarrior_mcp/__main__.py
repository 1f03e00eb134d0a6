"""CLI 入口模块 -- python -m taskwarrior_mcp [command]

支持的命令：
  stdio  通过 stdin/stdout 提供 MCP 服务（默认）
  http   通过 Streamable HTTP 提供 MCP 服务，附带 /health、/ready
"""

import asyncio
import sys

from .config import load_tracker_config
from .logging_config import setup_logging

USAGE = """用法: taskwarrior-mcp [command]
命令:
  stdio  通过 stdin/stdout 提供 MCP 服务（默认）
  http   通过 Streamable HTTP 提供 MCP 服务"""


def main() -> None:
    """CLI 主入口"""
    command = sys.argv[1] if len(sys.argv) > 1 else "stdio"

    if command not in ("stdio", "http"):
        # stdout 在 stdio 模式下承载协议，用法说明一律写 stderr
        print(f"未知命令: {command}", file=sys.stderr)
        print(USAGE, file=sys.stderr)
        sys.exit(1)

    setup_logging()
    config = load_tracker_config()

    if command == "stdio":
        from .server import run_stdio

        asyncio.run(run_stdio(config))
    else:
        from .http_app import run_http

        run_http(config)


if __name__ == "__main__":
    main()
