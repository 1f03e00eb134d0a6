"""taskwarrior-mcp Services -- task 调用、数据映射与补全"""

from .completion import CompletionService, fuzzy_search
from .executor import CommandExecutor, SubprocessExecutor
from .task_service import TaskWarriorService, build_environment, ensure_task_id

__all__ = [
    "CommandExecutor",
    "SubprocessExecutor",
    "TaskWarriorService",
    "build_environment",
    "ensure_task_id",
    "CompletionService",
    "fuzzy_search",
]
