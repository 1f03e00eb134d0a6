"""CompletionService 测试 -- 懒加载缓存、模糊匹配、排序"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from conftest import make_raw_task
from taskwarrior_mcp.models import Task, TaskwarriorTask
from taskwarrior_mcp.services import CompletionService, TaskWarriorService, fuzzy_search

PROJECTS = ["development", "backend", "frontend", "devops"]
TAGS = ["feature", "bug", "urgent", "documentation"]


def _task(description: str) -> Task:
    return TaskWarriorService.map_task(
        TaskwarriorTask.model_validate(make_raw_task(description=description))
    )


@pytest.fixture
def mock_task_service():
    service = MagicMock(spec=TaskWarriorService)
    service.get_available_projects = AsyncMock(return_value=list(PROJECTS))
    service.get_available_tags = AsyncMock(return_value=list(TAGS))
    service.list_tasks = AsyncMock(
        return_value=[
            _task("Write quarterly report"),
            _task("Review pull request"),
            _task("Update documentation"),
        ]
    )
    return service


@pytest.fixture
def service(mock_task_service) -> CompletionService:
    return CompletionService(mock_task_service)


class TestFuzzySearch:
    def test_prefix_matches(self):
        assert fuzzy_search("dev", PROJECTS) == ["development", "devops"]

    def test_single_match(self):
        assert fuzzy_search("back", PROJECTS) == ["backend"]

    def test_typo_tolerated(self):
        assert "development" in fuzzy_search("develpment", PROJECTS)

    def test_case_insensitive(self):
        assert fuzzy_search("DEV", PROJECTS) == ["development", "devops"]

    def test_short_query_tolerates_one_typo(self):
        """3 个字符的查询容忍一个错字"""
        assert fuzzy_search("dve", PROJECTS) == ["development", "devops"]
        assert fuzzy_search("bgu", TAGS) == ["bug"]

    def test_two_char_query_needs_exact_window(self):
        assert fuzzy_search("dx", PROJECTS) == []

    def test_no_match(self):
        assert fuzzy_search("zzz", PROJECTS) == []

    def test_ranked_by_relevance(self):
        """完全匹配排在近似匹配之前"""
        assert fuzzy_search("devops", ["devop", "devops"])[0] == "devops"


class TestCompleteProjects:
    async def test_blank_returns_whole_corpus(self, service):
        result = await service.complete_projects("")
        assert result.values == PROJECTS
        assert result.total == 4
        assert result.has_more is False

    async def test_whitespace_is_blank(self, service):
        result = await service.complete_projects("   ")
        assert result.total == len(PROJECTS)

    async def test_fuzzy(self, service):
        result = await service.complete_projects("dev")
        assert result.values == ["development", "devops"]
        assert result.total == 2
        assert result.has_more is False

    async def test_back(self, service):
        result = await service.complete_projects("back")
        assert result.values == ["backend"]
        assert result.total == 1

    async def test_corpus_fetched_once(self, service, mock_task_service):
        """两次请求只拉取一次"""
        await service.complete_projects("dev")
        await service.complete_projects("back")
        mock_task_service.get_available_projects.assert_awaited_once()

    async def test_concurrent_first_requests_fetch_once(self, service, mock_task_service):
        await asyncio.gather(*(service.complete_projects("dev") for _ in range(5)))
        assert mock_task_service.get_available_projects.await_count == 1


class TestCompleteTags:
    async def test_feat(self, service):
        result = await service.complete_tags("feat")
        assert "feature" in result.values

    async def test_tags_cached_independently(self, service, mock_task_service):
        await service.complete_tags("bug")
        await service.complete_projects("dev")
        await service.complete_tags("urg")
        mock_task_service.get_available_tags.assert_awaited_once()
        mock_task_service.get_available_projects.assert_awaited_once()


class TestCompleteTaskDescriptions:
    async def test_pending_descriptions_queried(self, service, mock_task_service):
        await service.complete_task_descriptions("")
        mock_task_service.list_tasks.assert_awaited_once_with("status:pending")

    async def test_fuzzy_description(self, service):
        result = await service.complete_task_descriptions("report")
        assert result.values == ["Write quarterly report"]


class TestInvalidate:
    async def test_invalidate_all(self, service, mock_task_service):
        await service.complete_projects("dev")
        await service.complete_tags("bug")
        service.invalidate()
        await service.complete_projects("dev")
        await service.complete_tags("bug")
        assert mock_task_service.get_available_projects.await_count == 2
        assert mock_task_service.get_available_tags.await_count == 2

    async def test_invalidate_single_corpus(self, service, mock_task_service):
        await service.complete_projects("dev")
        await service.complete_tags("bug")
        service.invalidate("projects")
        await service.complete_projects("dev")
        await service.complete_tags("bug")
        assert mock_task_service.get_available_projects.await_count == 2
        assert mock_task_service.get_available_tags.await_count == 1

    def test_invalidate_unknown_corpus(self, service):
        with pytest.raises(KeyError):
            service.invalidate("milestones")
