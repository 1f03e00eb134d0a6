"""TaskResourceHandler 测试 -- URI 路由、查询拼装、订阅、补全路由"""

import json
from unittest.mock import AsyncMock
from urllib.parse import quote

import pytest
from conftest import OTHER_UUID, TASK_UUID, export_json, make_raw_task
from taskwarrior_mcp.config import TrackerConfig
from taskwarrior_mcp.exceptions import (
    InvalidTaskIdError,
    TaskNotFoundError,
    TrackerCommandError,
    UnknownResourceError,
)
from taskwarrior_mcp.handlers import TaskResourceHandler
from taskwarrior_mcp.models import CompletionResult
from taskwarrior_mcp.services import CompletionService, SubprocessExecutor, TaskWarriorService


@pytest.fixture
def handler(task_service, completion_service) -> TaskResourceHandler:
    return TaskResourceHandler(task_service, completion_service)


class TestReadResource:
    async def test_list(self, handler, fake_executor):
        fake_executor.on("export", export_json(make_raw_task()))
        content = await handler.read_resource("task:///list")

        assert fake_executor.commands == ["task status:pending -DELETED export"]
        assert content.uri == "task:///list"
        assert content.mime_type == "application/json"
        assert json.loads(content.text)[0]["id"] == TASK_UUID

    async def test_single_task(self, handler, fake_executor):
        fake_executor.on("export", export_json(make_raw_task()))
        content = await handler.read_resource(f"task:///task/{TASK_UUID}")

        assert fake_executor.commands == [f"task {TASK_UUID} export"]
        data = json.loads(content.text)
        assert data["id"] == TASK_UUID
        assert data["description"] == "Test task"

    async def test_single_task_omits_absent_fields(self, handler, fake_executor):
        fake_executor.on("export", export_json(make_raw_task()))
        content = await handler.read_resource(f"task:///task/{TASK_UUID}")
        data = json.loads(content.text)
        assert "due" not in data
        assert "project" not in data

    async def test_single_task_missing(self, handler, fake_executor):
        fake_executor.on("export", "[]")
        with pytest.raises(TaskNotFoundError):
            await handler.read_resource(f"task:///task/{TASK_UUID}")

    async def test_project_query(self, handler, fake_executor):
        fake_executor.on("export", "[]")
        await handler.read_resource("task:///project/test")
        assert fake_executor.commands == ["task project:test status:pending -DELETED export"]

    async def test_project_name_decoded(self, handler, fake_executor):
        fake_executor.on("export", "[]")
        await handler.read_resource("task:///project/home%2Egarden")
        assert fake_executor.commands == ["task project:home.garden status:pending -DELETED export"]

    async def test_tag_query(self, handler, fake_executor):
        fake_executor.on("export", "[]")
        await handler.read_resource("task:///tag/test")
        assert fake_executor.commands == ["task '+(test)' status:pending -DELETED export"]

    async def test_project_name_with_slash(self, handler, fake_executor):
        fake_executor.on("export", "[]")
        await handler.read_resource("task:///project/a/b")
        assert fake_executor.commands == ["task project:a/b status:pending -DELETED export"]

    async def test_project_name_with_newline_stays_one_argument(self, handler, fake_executor):
        fake_executor.on("export", "[]")
        await handler.read_resource("task:///project/x%0Atouch%20%2Ftmp%2Fmarker%20%23")
        assert fake_executor.commands == [
            "task project:'x\ntouch /tmp/marker #' status:pending -DELETED export"
        ]

    async def test_tag_name_quoted(self, handler, fake_executor):
        fake_executor.on("export", "[]")
        await handler.read_resource("task:///tag/a%20b")
        assert fake_executor.commands == ["task '+(a b)' status:pending -DELETED export"]

    async def test_decoded_name_never_runs_as_command(self, tmp_path):
        """真实执行器：名称中的换行不会开启第二条命令"""
        marker = tmp_path / "created"
        service = TaskWarriorService(TrackerConfig(task_bin="true"), SubprocessExecutor(timeout_s=5))
        handler = TaskResourceHandler(service, CompletionService(service))
        name = quote(f"x\ntouch {marker} #", safe="")

        # true 没有输出，export 解析失败
        with pytest.raises(TrackerCommandError):
            await handler.read_resource(f"task:///project/{name}")
        assert not marker.exists()

    async def test_task_id_must_be_uuid(self, handler, fake_executor):
        with pytest.raises(InvalidTaskIdError):
            await handler.read_resource("task:///task/status:pending")
        assert fake_executor.commands == []

    @pytest.mark.parametrize(
        "uri",
        ["task:///unknown", "task:///project/", "task:///tag/", "other:///list"],
    )
    async def test_unknown_uri(self, handler, uri):
        with pytest.raises(UnknownResourceError) as exc_info:
            await handler.read_resource(uri)
        assert exc_info.value.uri == uri


class TestListResources:
    async def test_list_resource_plus_pending_tasks(self, handler, fake_executor):
        fake_executor.on(
            "export",
            export_json(make_raw_task(), make_raw_task(OTHER_UUID, description="Other")),
        )
        resources = await handler.list_resources()

        uris = [str(r.uri) for r in resources]
        assert uris == [
            "task:///list",
            f"task:///task/{TASK_UUID}",
            f"task:///task/{OTHER_UUID}",
        ]
        assert resources[2].name == "Other"

    def test_templates(self, handler):
        templates = handler.list_resource_templates()
        assert [t.uriTemplate for t in templates] == [
            "task:///task/{id}",
            "task:///project/{name}",
            "task:///tag/{name}",
        ]


class TestSubscriptions:
    def test_subscribe_unsubscribe(self, handler):
        handler.subscribe("task:///list")
        handler.subscribe("task:///project/work")
        handler.subscribe("task:///list")
        assert handler.get_subscriptions() == ["task:///list", "task:///project/work"]

        handler.unsubscribe("task:///list")
        assert handler.get_subscriptions() == ["task:///project/work"]

    def test_unsubscribe_unknown_is_noop(self, handler):
        handler.unsubscribe("task:///list")
        assert handler.get_subscriptions() == []


class TestResourceCompletion:
    async def test_project_template(self, handler, completion_service):
        completion_service.complete_projects = AsyncMock(
            return_value=CompletionResult(values=["work"], total=1)
        )
        result = await handler.complete("task:///project/{name}", "wo")
        completion_service.complete_projects.assert_awaited_once_with("wo")
        assert result.values == ["work"]

    async def test_tag_template(self, handler, completion_service):
        completion_service.complete_tags = AsyncMock(
            return_value=CompletionResult(values=["urgent"], total=1)
        )
        result = await handler.complete("task:///tag/{name}", "urg")
        completion_service.complete_tags.assert_awaited_once_with("urg")
        assert result.values == ["urgent"]

    async def test_other_template_empty(self, handler):
        result = await handler.complete("task:///task/{id}", "a1")
        assert result == CompletionResult.empty()
