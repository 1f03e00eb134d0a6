"""taskwarrior-mcp Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .completion import CompletionResult
from .enums import RecurrenceFrequency, TaskPriority, TaskStatus
from .task import (
    TASK_ID_PATTERN,
    Annotation,
    Recurrence,
    Task,
    TaskDependency,
    TaskId,
    TaskQuery,
    TaskUpdate,
    TaskwarriorAnnotation,
    TaskwarriorTask,
    task_to_json,
    tasks_to_json,
)

__all__ = [
    # 枚举
    "TaskStatus",
    "TaskPriority",
    "RecurrenceFrequency",
    # Task
    "TASK_ID_PATTERN",
    "TaskId",
    "Task",
    "Annotation",
    "Recurrence",
    "TaskUpdate",
    "TaskQuery",
    "TaskDependency",
    # 原始记录
    "TaskwarriorTask",
    "TaskwarriorAnnotation",
    # 补全
    "CompletionResult",
    # 序列化
    "task_to_json",
    "tasks_to_json",
]
