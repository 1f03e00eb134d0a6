"""全局 pytest 配置 -- 假命令执行器 + 原始记录工厂 + 服务 fixture

不启动真实 task 进程：FakeExecutor 记录收到的命令行，
按注册顺序用正则匹配并返回脚本化的输出。
"""

import json
import re
from collections.abc import Callable, Mapping
from typing import Any

import pytest
from taskwarrior_mcp.config import TrackerConfig
from taskwarrior_mcp.services import CompletionService, TaskWarriorService

TASK_UUID = "a1b2c3d4-e5f6-4a7b-8c9d-0e1f2a3b4c5d"
OTHER_UUID = "11111111-2222-4333-8444-555555555555"

Response = str | Exception | Callable[[str], str]


class FakeExecutor:
    """CommandExecutor 假实现

    on(pattern, *responses): 命令匹配 pattern 时依次返回 responses，
    最后一个响应会被重复使用。未匹配的命令返回空字符串。
    响应可以是字符串、异常实例（抛出）或 command -> str 的函数。
    """

    def __init__(self) -> None:
        self.commands: list[str] = []
        self.envs: list[dict[str, str]] = []
        self._responders: list[tuple[re.Pattern[str], list[Response]]] = []

    def on(self, pattern: str, *responses: Response) -> "FakeExecutor":
        self._responders.append((re.compile(pattern), list(responses)))
        return self

    async def run(self, command: str, env: Mapping[str, str]) -> str:
        self.commands.append(command)
        self.envs.append(dict(env))
        for pattern, responses in self._responders:
            if pattern.search(command):
                response = responses.pop(0) if len(responses) > 1 else responses[0]
                if isinstance(response, Exception):
                    raise response
                if callable(response):
                    return response(command)
                return response
        return ""

    def matching(self, pattern: str) -> list[str]:
        """返回匹配 pattern 的已执行命令"""
        regex = re.compile(pattern)
        return [command for command in self.commands if regex.search(command)]


def make_raw_task(uuid: str = TASK_UUID, **overrides: Any) -> dict[str, Any]:
    """构造 task export 原始记录（紧凑时间戳）"""
    record: dict[str, Any] = {
        "id": 1,
        "uuid": uuid,
        "description": "Test task",
        "status": "pending",
        "entry": "20240115T093000Z",
        "modified": "20240115T093000Z",
        "urgency": 1.8,
    }
    record.update(overrides)
    return record


def export_json(*records: dict[str, Any]) -> str:
    """task export 输出"""
    return json.dumps(list(records))


@pytest.fixture
def fake_executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def tracker_config() -> TrackerConfig:
    return TrackerConfig(
        task_data="/tmp/taskwarrior-test/data",
        task_rc="/tmp/taskwarrior-test/taskrc",
    )


@pytest.fixture
def task_service(fake_executor: FakeExecutor, tracker_config: TrackerConfig) -> TaskWarriorService:
    return TaskWarriorService(tracker_config, executor=fake_executor)


@pytest.fixture
def completion_service(task_service: TaskWarriorService) -> CompletionService:
    return CompletionService(task_service)
