"""Task Domain Model

Task 是对 task export 原始记录的规范化投影：
所有日期为 ISO-8601，ID 为 task 分配的 UUID。
TaskwarriorTask 是 export 输出的原始记录，只在 TaskWarriorService.map_task 中消费。
"""

import json
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .enums import RecurrenceFrequency, TaskPriority, TaskStatus

# task 分配的 UUID（8-4-4-4-12，大小写不敏感）
TASK_ID_PATTERN = (
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)

TaskId = Annotated[str, Field(pattern=TASK_ID_PATTERN)]


class Annotation(BaseModel):
    """带时间戳的注释（只追加）"""

    date: str = Field(description="注释时间，ISO-8601")
    description: str = Field(description="注释内容")


class Recurrence(BaseModel):
    """重复规则"""

    frequency: RecurrenceFrequency = Field(description="重复频率")
    interval: int = Field(default=1, ge=1, description="间隔，大于 1 时才下发给 task")
    until: str | None = Field(default=None, description="重复截止日期")


class Task(BaseModel):
    """Task 数据模型

    entry / modified 始终存在；annotations 只追加；
    urgency 由 task 计算，只读。
    """

    id: str = Field(description="UUID，由 task 分配，创建后不变")
    description: str = Field(description="任务描述")
    status: TaskStatus = Field(description="当前状态")
    project: str | None = Field(default=None, description="所属项目")
    tags: list[str] | None = Field(default=None, description="标签")
    due: str | None = Field(default=None, description="截止日期")
    start: str | None = Field(default=None, description="开始计时时间")
    end: str | None = Field(default=None, description="完成/删除时间")
    priority: TaskPriority | None = Field(default=None, description="优先级")
    urgency: float | None = Field(default=None, description="紧急度（只读）")
    wait: str | None = Field(default=None, description="等待至该日期才显示")
    scheduled: str | None = Field(default=None, description="计划开始日期")
    dependencies: list[str] | None = Field(default=None, description="依赖任务 UUID 列表")
    annotations: list[Annotation] = Field(default_factory=list, description="注释")
    entry: str = Field(description="创建时间")
    modified: str = Field(description="最后修改时间")
    recurrence: Recurrence | None = Field(default=None, description="重复规则")


class TaskUpdate(BaseModel):
    """Task 可变字段的部分投影

    update 时缺省字段表示不修改；create 时缺省字段使用 task 默认值。
    """

    description: str | None = Field(default=None, description="任务描述")
    project: str | None = Field(default=None, description="所属项目")
    tags: list[str] | None = Field(default=None, description="标签")
    priority: TaskPriority | None = Field(default=None, description="优先级 H/M/L")
    due: str | None = Field(default=None, description="截止日期")
    wait: str | None = Field(default=None, description="等待日期")
    scheduled: str | None = Field(default=None, description="计划日期")
    recurrence: Recurrence | None = Field(default=None, description="重复规则")


class TaskQuery(BaseModel):
    """task 原生过滤表达式"""

    query: str | None = Field(default=None, description="过滤表达式")


class TaskDependency(BaseModel):
    """依赖更新请求"""

    dependencies: list[TaskId] = Field(description="依赖任务 UUID 列表")


class TaskwarriorAnnotation(BaseModel):
    """export 原始注释"""

    entry: str
    description: str


class TaskwarriorTask(BaseModel):
    """task export 原始记录

    忽略 id / mask / imask / parent / UDA 等未消费字段。
    """

    model_config = ConfigDict(extra="ignore")

    uuid: str
    description: str
    status: str
    project: str | None = None
    tags: list[str] | None = None
    due: str | None = None
    start: str | None = None
    end: str | None = None
    priority: str | None = None
    urgency: float | None = None
    wait: str | None = None
    scheduled: str | None = None
    depends: list[str] | None = None
    annotations: list[TaskwarriorAnnotation] | None = None
    entry: str
    modified: str
    recur: str | None = None
    until: str | None = None

    @field_validator("depends", mode="before")
    @classmethod
    def _split_depends(cls, value):
        # task 2.5 以逗号分隔字符串输出 depends，2.6+ 输出数组
        if isinstance(value, str):
            return [dep for dep in value.split(",") if dep]
        return value


def task_to_json(task: Task) -> str:
    """序列化单个 Task，省略缺省字段"""
    return task.model_dump_json(exclude_none=True)


def tasks_to_json(tasks: list[Task]) -> str:
    """序列化 Task 列表，省略缺省字段"""
    return json.dumps(
        [task.model_dump(mode="json", exclude_none=True) for task in tasks],
        ensure_ascii=False,
    )
