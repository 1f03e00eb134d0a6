"""taskwarrior-mcp -- 通过 MCP 暴露 Taskwarrior 的工具、资源与提示模板"""

__version__ = "0.1.0"
