"""TaskResourceHandler -- task:/// 资源路由、订阅登记与 URI 补全

固定四种 URI 形态，按顺序匹配，第一个命中者处理：
  task:///list            -> 待办任务
  task:///task/{id}       -> 单个任务
  task:///project/{name}  -> 项目下的待办任务
  task:///tag/{name}      -> 标签下的待办任务
"""

import re
import shlex
from collections.abc import Awaitable, Callable
from urllib.parse import unquote

import structlog
from mcp.types import Resource, ResourceTemplate
from pydantic import BaseModel, Field

from ..exceptions import TaskNotFoundError, UnknownResourceError
from ..models import CompletionResult, task_to_json, tasks_to_json
from ..services import CompletionService, TaskWarriorService

log = structlog.get_logger()

LIST_URI = "task:///list"
TASK_URI_PREFIX = "task:///task/"
PROJECT_URI_PREFIX = "task:///project/"
TAG_URI_PREFIX = "task:///tag/"
JSON_MIME_TYPE = "application/json"


class ResourceContent(BaseModel):
    """资源读取结果"""

    uri: str = Field(description="请求的资源 URI")
    mime_type: str = Field(default=JSON_MIME_TYPE, description="内容类型")
    text: str = Field(description="JSON 文本")


RESOURCE_TEMPLATES = [
    ResourceTemplate(
        uriTemplate="task:///task/{id}",
        name="Task",
        description="A single task by UUID",
        mimeType=JSON_MIME_TYPE,
    ),
    ResourceTemplate(
        uriTemplate="task:///project/{name}",
        name="Project tasks",
        description="Pending tasks in a project",
        mimeType=JSON_MIME_TYPE,
    ),
    ResourceTemplate(
        uriTemplate="task:///tag/{name}",
        name="Tagged tasks",
        description="Pending tasks carrying a tag",
        mimeType=JSON_MIME_TYPE,
    ),
]


class TaskResourceHandler:
    """资源处理器"""

    def __init__(
        self,
        task_service: TaskWarriorService,
        completion_service: CompletionService,
    ) -> None:
        self._task_service = task_service
        self._completion_service = completion_service
        # 订阅只做登记，不推送变更通知
        self._subscriptions: set[str] = set()
        self._routes: list[tuple[re.Pattern[str], Callable[[str, re.Match[str]], Awaitable[str]]]] = [
            (re.compile(r"^task:///list$"), self._read_list),
            (re.compile(r"^task:///task/(.+)$"), self._read_task),
            (re.compile(r"^task:///project/(.+)$"), self._read_project),
            (re.compile(r"^task:///tag/(.+)$"), self._read_tag),
        ]

    async def list_resources(self) -> list[Resource]:
        """列表资源 + 每个待办任务一个资源"""
        tasks = await self._task_service.list_tasks("status:pending")
        resources = [
            Resource(
                uri=LIST_URI,
                name="Pending tasks",
                description="All pending tasks",
                mimeType=JSON_MIME_TYPE,
            )
        ]
        resources.extend(
            Resource(
                uri=f"{TASK_URI_PREFIX}{task.id}",
                name=task.description,
                description=f"Task {task.id}",
                mimeType=JSON_MIME_TYPE,
            )
            for task in tasks
        )
        return resources

    def list_resource_templates(self) -> list[ResourceTemplate]:
        return list(RESOURCE_TEMPLATES)

    async def read_resource(self, uri: str) -> ResourceContent:
        """按 URI 读取资源

        Raises:
            UnknownResourceError: URI 不匹配任何形态
            TaskNotFoundError: task:///task/{id} 指向的任务不存在
            InvalidTaskIdError: task:///task/{id} 中的 id 不是 UUID
        """
        for pattern, handler in self._routes:
            match = pattern.match(uri)
            if match:
                text = await handler(uri, match)
                return ResourceContent(uri=uri, mime_type=JSON_MIME_TYPE, text=text)

        log.warning("resource_uri_unknown", uri=uri)
        raise UnknownResourceError(uri)

    async def _read_list(self, uri: str, match: re.Match[str]) -> str:
        tasks = await self._task_service.list_tasks("status:pending")
        return tasks_to_json(tasks)

    async def _read_task(self, uri: str, match: re.Match[str]) -> str:
        task_id = unquote(match.group(1))
        task = await self._task_service.get_task(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task_to_json(task)

    async def _read_project(self, uri: str, match: re.Match[str]) -> str:
        # 名称整体引用为一个过滤参数
        project = shlex.quote(unquote(match.group(1)))
        tasks = await self._task_service.list_tasks(f"project:{project} status:pending")
        return tasks_to_json(tasks)

    async def _read_tag(self, uri: str, match: re.Match[str]) -> str:
        tag_filter = shlex.quote(f"+({unquote(match.group(1))})")
        tasks = await self._task_service.list_tasks(f"{tag_filter} status:pending")
        return tasks_to_json(tasks)

    def subscribe(self, uri: str) -> None:
        self._subscriptions.add(uri)
        log.info("resource_subscribed", uri=uri)

    def unsubscribe(self, uri: str) -> None:
        self._subscriptions.discard(uri)
        log.info("resource_unsubscribed", uri=uri)

    def get_subscriptions(self) -> list[str]:
        return sorted(self._subscriptions)

    async def complete(self, uri: str, value: str) -> CompletionResult:
        """资源模板参数补全：project / tag 模板分别补全项目与标签"""
        if uri.startswith(PROJECT_URI_PREFIX):
            return await self._completion_service.complete_projects(value)
        if uri.startswith(TAG_URI_PREFIX):
            return await self._completion_service.complete_tags(value)
        return CompletionResult.empty()
