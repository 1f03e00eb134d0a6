"""MCP Server 组装 -- 服务 / 处理器创建与协议处理函数注册

create_server() 负责依赖装配：
TaskWarriorService -> CompletionService -> Resource / Prompt / Tool 处理器，
并把它们注册到低层 mcp Server 上。
补全请求只有一个协议级入口，按引用类型分发给提示模板或资源处理器。
"""

from typing import Any

import structlog
from mcp.server.lowlevel import Server
from mcp.server.lowlevel.helper_types import ReadResourceContents
from mcp.server.stdio import stdio_server
from mcp.types import (
    CallToolResult,
    Completion,
    CompletionArgument,
    CompletionContext,
    GetPromptResult,
    Prompt,
    PromptReference,
    Resource,
    ResourceTemplate,
    ResourceTemplateReference,
    Tool,
)
from pydantic import AnyUrl

from . import __version__
from .config import TrackerConfig, load_tracker_config
from .handlers import TaskPromptHandler, TaskResourceHandler, TaskToolHandler
from .models import CompletionResult
from .services import CompletionService, TaskWarriorService

log = structlog.get_logger()

SERVER_NAME = "taskwarrior-mcp"


def _to_completion(result: CompletionResult) -> Completion:
    return Completion(values=result.values, total=result.total, hasMore=result.has_more)


def create_server(
    task_service: TaskWarriorService | None = None,
    config: TrackerConfig | None = None,
) -> Server:
    """创建并装配 MCP Server

    Args:
        task_service: 预先构造的任务服务（测试注入），None 时按 config 创建
        config: task 调用配置，None 时从环境变量加载
    """
    if task_service is None:
        task_service = TaskWarriorService(config or load_tracker_config())

    completion_service = CompletionService(task_service)
    resource_handler = TaskResourceHandler(task_service, completion_service)
    prompt_handler = TaskPromptHandler(completion_service)
    tool_handler = TaskToolHandler(task_service)

    server = Server(SERVER_NAME, version=__version__)

    # 工具
    @server.list_tools()
    async def list_tools() -> list[Tool]:
        return tool_handler.list_tools()

    # 参数由 TaskToolHandler 用 pydantic 模型校验，错误文本保持统一格式
    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: dict[str, Any]) -> CallToolResult:
        return await tool_handler.call_tool(name, arguments)

    # 资源
    @server.list_resources()
    async def list_resources() -> list[Resource]:
        return await resource_handler.list_resources()

    @server.list_resource_templates()
    async def list_resource_templates() -> list[ResourceTemplate]:
        return resource_handler.list_resource_templates()

    @server.read_resource()
    async def read_resource(uri: AnyUrl) -> list[ReadResourceContents]:
        content = await resource_handler.read_resource(str(uri))
        return [ReadResourceContents(content=content.text, mime_type=content.mime_type)]

    @server.subscribe_resource()
    async def subscribe_resource(uri: AnyUrl) -> None:
        resource_handler.subscribe(str(uri))

    @server.unsubscribe_resource()
    async def unsubscribe_resource(uri: AnyUrl) -> None:
        resource_handler.unsubscribe(str(uri))

    # 提示模板
    @server.list_prompts()
    async def list_prompts() -> list[Prompt]:
        return prompt_handler.list_prompts()

    @server.get_prompt()
    async def get_prompt(name: str, arguments: dict[str, str] | None) -> GetPromptResult:
        return prompt_handler.get_prompt(name, arguments)

    # 补全：唯一入口，按引用类型路由
    @server.completion()
    async def complete(
        ref: PromptReference | ResourceTemplateReference,
        argument: CompletionArgument,
        context: CompletionContext | None,
    ) -> Completion:
        if isinstance(ref, PromptReference):
            result = await prompt_handler.complete(ref.name, argument.name, argument.value)
        elif isinstance(ref, ResourceTemplateReference):
            result = await resource_handler.complete(ref.uri, argument.value)
        else:
            result = CompletionResult.empty()
        return _to_completion(result)

    log.info("mcp_server_created", name=SERVER_NAME, version=__version__)
    return server


async def run_stdio(config: TrackerConfig | None = None) -> None:
    """通过 stdio 运行（stdout 专用于协议消息，日志写 stderr）"""
    server = create_server(config=config)
    async with stdio_server() as (read_stream, write_stream):
        log.info("mcp_server_running", transport="stdio")
        await server.run(read_stream, write_stream, server.create_initialization_options())
