"""枚举定义

TaskStatus / TaskPriority / RecurrenceFrequency 与 task 的取值一一对应。
"""

from enum import StrEnum


class TaskStatus(StrEnum):
    """任务状态 -- 状态流转由 task 自身维护"""

    PENDING = "pending"
    COMPLETED = "completed"
    DELETED = "deleted"
    RECURRING = "recurring"
    WAITING = "waiting"


class TaskPriority(StrEnum):
    """任务优先级"""

    HIGH = "H"
    MEDIUM = "M"
    LOW = "L"


class RecurrenceFrequency(StrEnum):
    """重复频率（封闭枚举）"""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
