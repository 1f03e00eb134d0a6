"""TaskWarriorService -- 任务增删改查 / 生命周期业务逻辑

所有变更遵循同一模式：
1. 执行 task 命令
2. 按 UUID 回读任务
3. 返回回读结果（不信任、也不根据命令输出重建变更后的状态）
task 是唯一事实来源，urgency 等派生字段只能由 task 计算。
"""

import json
import os
import re
import shlex
from collections.abc import Mapping

import structlog
from pydantic import ValidationError

from ..config import TrackerConfig
from ..exceptions import (
    InvalidTaskIdError,
    TaskCreationError,
    TaskNotFoundError,
    TrackerCommandError,
)
from ..models import (
    TASK_ID_PATTERN,
    Annotation,
    Recurrence,
    Task,
    TaskDependency,
    TaskPriority,
    TaskQuery,
    TaskUpdate,
    TaskwarriorTask,
)
from .executor import CommandExecutor, SubprocessExecutor
from .translator import (
    build_modification_args,
    extract_uuid,
    map_recurrence,
    parse_listing,
    sanitize_query,
    to_canonical_timestamp,
    to_optional_canonical_timestamp,
)

log = structlog.get_logger()

_TASK_ID_RE = re.compile(TASK_ID_PATTERN)


def build_environment(
    base: Mapping[str, str],
    config: TrackerConfig,
) -> dict[str, str]:
    """合并子进程环境变量：base -> TASKDATA/TASKRC -> extra_env"""
    env = dict(base)
    if config.task_data:
        env["TASKDATA"] = config.task_data
    if config.task_rc:
        env["TASKRC"] = config.task_rc
    env.update(config.extra_env)
    return env


def ensure_task_id(task_id: str) -> str:
    """校验任务 ID 为 UUID，返回原值

    Raises:
        InvalidTaskIdError: 空串、过滤表达式等非 UUID 文本
    """
    if not _TASK_ID_RE.match(task_id):
        log.warning("task_id_invalid", task_id=task_id)
        raise InvalidTaskIdError(task_id)
    return task_id


class TaskWarriorService:
    """Taskwarrior 业务服务"""

    def __init__(
        self,
        config: TrackerConfig | None = None,
        executor: CommandExecutor | None = None,
    ) -> None:
        """
        Args:
            config: task 调用配置，None 时使用默认配置
            executor: 命令执行器，None 时使用带超时的 SubprocessExecutor
        """
        self._config = config or TrackerConfig()
        self._executor = executor or SubprocessExecutor(timeout_s=self._config.timeout_s)
        self._env = build_environment(os.environ, self._config)

    async def _execute(self, *parts: str) -> str:
        command = " ".join([shlex.quote(self._config.task_bin), *parts])
        log.debug("tracker_command", command=command)
        try:
            return await self._executor.run(command, self._env)
        except TrackerCommandError as e:
            log.error(
                "tracker_command_failed",
                command=command,
                returncode=e.returncode,
                error=e.message,
            )
            raise

    async def _export(self, filter_expr: str) -> list[Task]:
        stdout = await self._execute(filter_expr, "export")
        try:
            records = json.loads(stdout)
            raw_tasks = [TaskwarriorTask.model_validate(record) for record in records]
        except (json.JSONDecodeError, TypeError, ValidationError) as e:
            raise TrackerCommandError(
                command=f"{filter_expr} export",
                message=f"Unexpected export output: {e}",
            ) from e
        return [self.map_task(raw) for raw in raw_tasks]

    async def _refetch(self, task_id: str, action: str) -> Task:
        task = await self.get_task(task_id)
        if task is None:
            raise TaskNotFoundError(task_id, f"Failed to retrieve {action} task: {task_id}")
        return task

    @staticmethod
    def _quote_args(args: list[str]) -> list[str]:
        return [shlex.quote(arg) for arg in args]

    async def list_tasks(self, query: TaskQuery | str | None = None) -> list[Task]:
        """按过滤表达式查询任务

        默认排除已删除任务，除非查询中显式包含 +DELETED。
        """
        if isinstance(query, TaskQuery):
            query = query.query
        if query:
            filter_expr = sanitize_query(query)
            if "+DELETED" not in query:
                filter_expr = f"{filter_expr} -DELETED"
        else:
            filter_expr = "-DELETED"
        return await self._export(filter_expr)

    async def get_task(self, task_id: str) -> Task | None:
        """按 UUID 查询任务，不存在返回 None"""
        tasks = await self._export(shlex.quote(ensure_task_id(task_id)))
        return tasks[0] if tasks else None

    async def get_available_projects(self) -> list[str]:
        """列出所有项目"""
        stdout = await self._execute("projects")
        return parse_listing(stdout, "project")

    async def get_available_tags(self) -> list[str]:
        """列出所有标签"""
        stdout = await self._execute("tags")
        return parse_listing(stdout, "tag")

    async def get_version(self) -> str:
        """task 版本号（就绪检查使用）"""
        stdout = await self._execute("--version")
        return stdout.strip()

    async def create_task(self, update: TaskUpdate) -> Task:
        """创建任务

        Raises:
            TaskCreationError: add 输出中没有 UUID
            TaskNotFoundError: 创建后回读为空
        """
        args = self._quote_args(build_modification_args(update))
        stdout = await self._execute("rc.verbose=new-uuid", "add", *args)
        uuid = extract_uuid(stdout)
        if not uuid:
            log.error("task_creation_no_uuid", output=stdout.strip())
            raise TaskCreationError(stdout)

        task = await self._refetch(uuid, "created")
        log.info("task_created", task_id=uuid)
        return task

    async def update_task(self, task_id: str, update: TaskUpdate) -> Task:
        """修改任务

        Raises:
            TaskNotFoundError: 修改后回读为空
        """
        args = self._quote_args(build_modification_args(update))
        if args:
            await self._execute(shlex.quote(ensure_task_id(task_id)), "modify", *args)
        return await self._refetch(task_id, "updated")

    async def update_dependencies(self, task_id: str, dependencies: TaskDependency) -> Task:
        """逐条下发 depends 修改（不合并为单条命令）"""
        for dep in dependencies.dependencies:
            await self._execute(
                shlex.quote(ensure_task_id(task_id)),
                "modify",
                shlex.quote(f"depends:{ensure_task_id(dep)}"),
            )
        return await self._refetch(task_id, "dependency-updated")

    async def delete_task(self, task_id: str) -> bool:
        """删除任务（幂等）

        先检查是否存在：不存在返回 False，不执行 delete。
        检查与删除之间存在竞态（其他进程可能在此期间删除），沿用该行为。
        """
        task = await self.get_task(task_id)
        if task is None:
            log.info("task_delete_skipped_not_found", task_id=task_id)
            return False
        await self._execute(shlex.quote(ensure_task_id(task_id)), "delete", "rc.confirmation=off")
        log.info("task_deleted", task_id=task_id)
        return True

    async def start_task(self, task_id: str) -> Task:
        """开始计时"""
        await self._execute(shlex.quote(ensure_task_id(task_id)), "start")
        return await self._refetch(task_id, "started")

    async def stop_task(self, task_id: str) -> Task:
        """停止计时"""
        await self._execute(shlex.quote(ensure_task_id(task_id)), "stop")
        return await self._refetch(task_id, "stopped")

    async def complete_task(self, task_id: str) -> Task:
        """标记完成"""
        await self._execute(shlex.quote(ensure_task_id(task_id)), "done")
        return await self._refetch(task_id, "completed")

    async def add_annotation(self, task_id: str, text: str) -> Task:
        """追加注释"""
        await self._execute(shlex.quote(ensure_task_id(task_id)), "annotate", shlex.quote(text))
        return await self._refetch(task_id, "annotated")

    @staticmethod
    def map_task(raw: TaskwarriorTask) -> Task:
        """原始记录 -> Task

        所有日期经过转换；priority 缺省为 M；annotations 缺省为空列表；
        仅当存在 recur 时构建 recurrence，频率无法识别时抛出 InvalidRecurrenceError。
        """
        recurrence = None
        if raw.recur:
            recurrence = Recurrence(
                frequency=map_recurrence(raw.recur),
                # task 不以相同方式支持 interval
                interval=1,
                until=to_optional_canonical_timestamp(raw.until),
            )

        return Task(
            id=raw.uuid,
            description=raw.description,
            status=raw.status,
            project=raw.project,
            tags=raw.tags,
            due=to_optional_canonical_timestamp(raw.due),
            start=to_optional_canonical_timestamp(raw.start),
            end=to_optional_canonical_timestamp(raw.end),
            priority=raw.priority or TaskPriority.MEDIUM,
            urgency=raw.urgency,
            wait=to_optional_canonical_timestamp(raw.wait),
            scheduled=to_optional_canonical_timestamp(raw.scheduled),
            dependencies=raw.depends,
            annotations=[
                Annotation(
                    date=to_canonical_timestamp(ann.entry),
                    description=ann.description,
                )
                for ann in raw.annotations or []
            ],
            entry=to_canonical_timestamp(raw.entry),
            modified=to_canonical_timestamp(raw.modified),
            recurrence=recurrence,
        )
