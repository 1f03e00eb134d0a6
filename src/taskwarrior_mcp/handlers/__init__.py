"""taskwarrior-mcp Handlers -- MCP 资源 / 提示模板 / 工具"""

from .prompts import TASK_PROMPTS, TaskPromptHandler
from .resources import ResourceContent, TaskResourceHandler
from .tools import TOOL_SPECS, TaskToolHandler

__all__ = [
    "TaskResourceHandler",
    "ResourceContent",
    "TaskPromptHandler",
    "TASK_PROMPTS",
    "TaskToolHandler",
    "TOOL_SPECS",
]
