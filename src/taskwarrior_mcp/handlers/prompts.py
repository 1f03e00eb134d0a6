"""TaskPromptHandler -- 提示模板目录、渲染与参数补全

每个模板的参数只声明一次（pydantic 模型），
列表展示（名称 / 描述 / 是否必填）与渲染校验共用同一份声明。
"""

from collections.abc import Callable
from dataclasses import dataclass

import structlog
from mcp.types import GetPromptResult, Prompt, PromptArgument, PromptMessage, TextContent
from pydantic import BaseModel, Field

from ..exceptions import InvalidPromptArgumentsError, PromptNotFoundError
from ..models import CompletionResult
from ..services import CompletionService

log = structlog.get_logger()


class TodayProjectArgs(BaseModel):
    project: str = Field(description="Project name to filter tasks")


class StartWorkArgs(BaseModel):
    description: str = Field(description="Task description to start working on")
    focus: str | None = Field(default=None, description="What you're specifically working on")


class CompleteWithReviewArgs(BaseModel):
    description: str = Field(description="Task description to complete")
    accomplished: str | None = Field(
        default=None, description="What was accomplished in this task"
    )


class SearchNotesArgs(BaseModel):
    description: str = Field(description="Task description to search for (can be partial)")


def _render_today_project(args: TodayProjectArgs) -> str:
    return f'List all tasks in project "{args.project}" that are scheduled for today'


def _render_start_work(args: StartWorkArgs) -> str:
    text = f'Start working on task "{args.description}"'
    if args.focus:
        text += f" and add a note that I'm focusing on: {args.focus}"
    return text


def _render_complete_with_review(args: CompleteWithReviewArgs) -> str:
    text = f'Mark task "{args.description}" as complete'
    if args.accomplished:
        text += f" and add a note about what was accomplished: {args.accomplished}"
    return text


def _render_search_notes(args: SearchNotesArgs) -> str:
    return (
        f'Find all tasks with description containing "{args.description}" '
        "and show their notes and annotations"
    )


@dataclass(frozen=True)
class PromptTemplate:
    """提示模板声明"""

    name: str
    description: str
    args_model: type[BaseModel]
    render: Callable[..., str]

    def arguments(self) -> list[PromptArgument]:
        return [
            PromptArgument(
                name=field_name,
                description=field.description or "",
                required=field.is_required(),
            )
            for field_name, field in self.args_model.model_fields.items()
        ]


TASK_PROMPTS: dict[str, PromptTemplate] = {
    template.name: template
    for template in [
        PromptTemplate(
            name="today-project",
            description="Get all tasks for a specific project that are scheduled for today",
            args_model=TodayProjectArgs,
            render=_render_today_project,
        ),
        PromptTemplate(
            name="start-work",
            description="Start working on a task and add a note about what you're working on",
            args_model=StartWorkArgs,
            render=_render_start_work,
        ),
        PromptTemplate(
            name="complete-with-review",
            description="Mark a task as complete and add a review note about what was accomplished",
            args_model=CompleteWithReviewArgs,
            render=_render_complete_with_review,
        ),
        PromptTemplate(
            name="search-notes",
            description="Display all annotations for tasks matching a description",
            args_model=SearchNotesArgs,
            render=_render_search_notes,
        ),
    ]
}

# description 参数补全任务描述的模板
_DESCRIPTION_PROMPTS = {"start-work", "complete-with-review", "search-notes"}


class TaskPromptHandler:
    """提示模板处理器"""

    def __init__(self, completion_service: CompletionService) -> None:
        self._completion_service = completion_service

    def list_prompts(self) -> list[Prompt]:
        return [
            Prompt(
                name=template.name,
                description=template.description,
                arguments=template.arguments(),
            )
            for template in TASK_PROMPTS.values()
        ]

    def render(self, name: str, arguments: dict[str, str] | None = None) -> str:
        """渲染模板文本

        Raises:
            PromptNotFoundError: 模板不存在
            InvalidPromptArgumentsError: 缺少必填参数
        """
        template = TASK_PROMPTS.get(name)
        if template is None:
            raise PromptNotFoundError(name)

        arguments = arguments or {}
        missing = [
            field_name
            for field_name, field in template.args_model.model_fields.items()
            if field.is_required() and not arguments.get(field_name)
        ]
        if missing:
            raise InvalidPromptArgumentsError(name, missing)

        args = template.args_model.model_validate(arguments)
        return template.render(args)

    def get_prompt(self, name: str, arguments: dict[str, str] | None = None) -> GetPromptResult:
        """渲染为单条 user 消息"""
        text = self.render(name, arguments)
        log.debug("prompt_rendered", prompt=name)
        return GetPromptResult(
            description=TASK_PROMPTS[name].description,
            messages=[
                PromptMessage(
                    role="user",
                    content=TextContent(type="text", text=text),
                )
            ],
        )

    async def complete(self, name: str, argument: str, value: str) -> CompletionResult:
        """提示模板参数补全"""
        if name not in TASK_PROMPTS:
            return CompletionResult.empty()
        if name == "today-project" and argument == "project":
            return await self._completion_service.complete_projects(value)
        if name in _DESCRIPTION_PROMPTS and argument == "description":
            return await self._completion_service.complete_task_descriptions(value)
        return CompletionResult.empty()
