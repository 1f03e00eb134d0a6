"""TaskToolHandler -- 工具目录与调用分发

每个工具由参数模型（pydantic）声明，其 JSON Schema 即工具的 inputSchema。
工具调用的所有失败都转换为 isError=True 的错误结果，不向协议层抛出异常。
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import structlog
from mcp.types import CallToolResult, TextContent, Tool
from pydantic import BaseModel, Field, ValidationError

from ..exceptions import TaskwarriorMCPError
from ..models import (
    TASK_ID_PATTERN,
    Task,
    TaskDependency,
    TaskId,
    TaskQuery,
    TaskUpdate,
    task_to_json,
    tasks_to_json,
)
from ..services import TaskWarriorService

log = structlog.get_logger()


# ============================================================
# 参数模型
# ============================================================


class CreateTaskParams(TaskUpdate):
    description: str = Field(
        description="The main description of the task. This is what you'll see in task lists."
    )


class TaskActionParams(BaseModel):
    id: str = Field(pattern=TASK_ID_PATTERN, description="The UUID of the task.")
    note: str | None = Field(
        default=None,
        description="Optional note added as an annotation after the state change.",
    )


class AddNoteParams(BaseModel):
    id: str = Field(
        pattern=TASK_ID_PATTERN, description="The UUID of the task to add a note to."
    )
    note: str = Field(description="The note text to add to the task.")


class UpdateTaskParams(TaskUpdate):
    id: str = Field(pattern=TASK_ID_PATTERN, description="The UUID of the task to update.")
    dependencies: list[TaskId] | None = Field(
        default=None, description="UUIDs of tasks this task depends on."
    )


class TaskIdParams(BaseModel):
    id: str = Field(pattern=TASK_ID_PATTERN, description="The UUID of the task.")


class ListTasksParams(BaseModel):
    query: str | None = Field(
        default=None, description="Optional Taskwarrior filter query to filter the task list."
    )


@dataclass(frozen=True)
class ToolSpec:
    """工具声明"""

    name: str
    description: str
    params_model: type[BaseModel]
    # 错误文本中的动作描述：Error <verb>: <message>
    verb: str

    def to_tool(self) -> Tool:
        return Tool(
            name=self.name,
            description=self.description,
            inputSchema=self.params_model.model_json_schema(),
        )


TOOL_SPECS: list[ToolSpec] = [
    ToolSpec(
        name="create_task",
        description=(
            "Create a new task in Taskwarrior. You can specify the task's description, "
            "project, tags, priority, dates and recurrence."
        ),
        params_model=CreateTaskParams,
        verb="creating task",
    ),
    ToolSpec(
        name="start_task",
        description=(
            "Start working on a task. Starts the task's timer and optionally adds a note "
            "about why you're starting it."
        ),
        params_model=TaskActionParams,
        verb="starting task",
    ),
    ToolSpec(
        name="stop_task",
        description=(
            "Stop working on a task. Stops the task's timer and optionally adds a note "
            "about why you're stopping."
        ),
        params_model=TaskActionParams,
        verb="stopping task",
    ),
    ToolSpec(
        name="complete_task",
        description="Mark a task as complete and optionally add a note about the completion.",
        params_model=TaskActionParams,
        verb="completing task",
    ),
    ToolSpec(
        name="add_note",
        description="Add a timestamped annotation to a task.",
        params_model=AddNoteParams,
        verb="adding note",
    ),
    ToolSpec(
        name="update_task",
        description=(
            "Update an existing task's properties: description, project, tags, priority, "
            "dates, recurrence and dependencies."
        ),
        params_model=UpdateTaskParams,
        verb="updating task",
    ),
    ToolSpec(
        name="delete_task",
        description="Delete a task from your task list. This operation cannot be undone.",
        params_model=TaskIdParams,
        verb="deleting task",
    ),
    ToolSpec(
        name="get_task",
        description=(
            "Get detailed information about a specific task, including its notes and annotations."
        ),
        params_model=TaskIdParams,
        verb="getting task",
    ),
    ToolSpec(
        name="list_tasks",
        description=(
            "List tasks with optional filtering using Taskwarrior's filter syntax. "
            "Deleted tasks are excluded unless the query contains +DELETED."
        ),
        params_model=ListTasksParams,
        verb="listing tasks",
    ),
]


def _text_result(text: str, is_error: bool = False) -> CallToolResult:
    return CallToolResult(
        content=[TextContent(type="text", text=text)],
        isError=is_error,
    )


class TaskToolHandler:
    """工具处理器"""

    def __init__(self, task_service: TaskWarriorService) -> None:
        self._task_service = task_service
        self._specs = {spec.name: spec for spec in TOOL_SPECS}
        self._handlers: dict[str, Callable[[Any], Awaitable[CallToolResult]]] = {
            "create_task": self._create_task,
            "start_task": self._start_task,
            "stop_task": self._stop_task,
            "complete_task": self._complete_task,
            "add_note": self._add_note,
            "update_task": self._update_task,
            "delete_task": self._delete_task,
            "get_task": self._get_task,
            "list_tasks": self._list_tasks,
        }

    def list_tools(self) -> list[Tool]:
        return [spec.to_tool() for spec in TOOL_SPECS]

    async def call_tool(self, name: str, arguments: dict[str, Any] | None) -> CallToolResult:
        """分发工具调用，失败统一转换为错误结果"""
        spec = self._specs.get(name)
        if spec is None:
            log.warning("tool_unknown", tool=name)
            return _text_result(f"Unknown tool: {name}", is_error=True)

        try:
            params = spec.params_model.model_validate(arguments or {})
            return await self._handlers[name](params)
        except (TaskwarriorMCPError, ValidationError) as e:
            message = e.message if isinstance(e, TaskwarriorMCPError) else str(e)
            log.warning("tool_call_failed", tool=name, error=message)
            return _text_result(f"Error {spec.verb}: {message}", is_error=True)
        except Exception as e:
            log.exception("tool_call_failed", tool=name, error=str(e))
            return _text_result(f"Error {spec.verb}: {e}", is_error=True)

    async def _annotate_if_noted(self, task_id: str, note: str | None, task: Task) -> Task:
        if note:
            return await self._task_service.add_annotation(task_id, note)
        return task

    async def _create_task(self, params: CreateTaskParams) -> CallToolResult:
        update = TaskUpdate.model_validate(params.model_dump(exclude_none=True))
        task = await self._task_service.create_task(update)
        return _text_result(task_to_json(task))

    async def _start_task(self, params: TaskActionParams) -> CallToolResult:
        task = await self._task_service.start_task(params.id)
        task = await self._annotate_if_noted(params.id, params.note, task)
        return _text_result(task_to_json(task))

    async def _stop_task(self, params: TaskActionParams) -> CallToolResult:
        task = await self._task_service.stop_task(params.id)
        task = await self._annotate_if_noted(params.id, params.note, task)
        return _text_result(task_to_json(task))

    async def _complete_task(self, params: TaskActionParams) -> CallToolResult:
        task = await self._task_service.complete_task(params.id)
        task = await self._annotate_if_noted(params.id, params.note, task)
        return _text_result(task_to_json(task))

    async def _add_note(self, params: AddNoteParams) -> CallToolResult:
        task = await self._task_service.add_annotation(params.id, params.note)
        return _text_result(task_to_json(task))

    async def _update_task(self, params: UpdateTaskParams) -> CallToolResult:
        update = TaskUpdate.model_validate(
            params.model_dump(exclude={"id", "dependencies"}, exclude_none=True)
        )
        task = await self._task_service.update_task(params.id, update)
        if params.dependencies:
            task = await self._task_service.update_dependencies(
                params.id, TaskDependency(dependencies=params.dependencies)
            )
        return _text_result(task_to_json(task))

    async def _delete_task(self, params: TaskIdParams) -> CallToolResult:
        deleted = await self._task_service.delete_task(params.id)
        if deleted:
            return _text_result("Task deleted successfully")
        return _text_result("Task not found, nothing deleted")

    async def _get_task(self, params: TaskIdParams) -> CallToolResult:
        task = await self._task_service.get_task(params.id)
        if task is None:
            return _text_result("Task not found", is_error=True)
        return _text_result(task_to_json(task))

    async def _list_tasks(self, params: ListTasksParams) -> CallToolResult:
        tasks = await self._task_service.list_tasks(TaskQuery(query=params.query))
        return _text_result(tasks_to_json(tasks))
