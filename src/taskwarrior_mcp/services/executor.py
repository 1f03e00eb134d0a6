"""CommandExecutor -- 外部 task 命令调用抽象

TaskWarriorService 只依赖 CommandExecutor Protocol（结构化子类型），
测试中替换为假实现，无需启动真实进程。
"""

import asyncio
import shlex
from collections.abc import Mapping
from typing import Protocol

import structlog

from ..exceptions import TrackerCommandError

log = structlog.get_logger()


class CommandExecutor(Protocol):
    """命令执行接口"""

    async def run(self, command: str, env: Mapping[str, str]) -> str:
        """执行命令行，返回 stdout

        Raises:
            TrackerCommandError: 非零退出、超时或无法启动
        """
        ...


class SubprocessExecutor:
    """按 POSIX shell 规则切分命令行后直接执行（不经过 shell）

    换行、注释符只作为普通字符或分隔符，不会开启新的命令。
    超时后终止子进程并抛出 TrackerCommandError。
    """

    def __init__(self, timeout_s: float = 30) -> None:
        self._timeout_s = timeout_s

    async def run(self, command: str, env: Mapping[str, str]) -> str:
        try:
            argv = shlex.split(command)
        except ValueError as e:
            raise TrackerCommandError(
                command=command,
                message=f"Invalid command line: {e}",
            ) from e
        if not argv:
            raise TrackerCommandError(command=command, message="Empty command line")

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=dict(env),
            )
        except OSError as e:
            raise TrackerCommandError(
                command=command,
                message=f"Failed to start command: {e}",
            ) from e

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(),
                timeout=self._timeout_s,
            )
        except TimeoutError as e:
            process.kill()
            await process.wait()
            log.error(
                "tracker_command_timeout",
                command=command,
                timeout_s=self._timeout_s,
            )
            raise TrackerCommandError(
                command=command,
                message=f"Command timed out after {self._timeout_s}s: {command}",
            ) from e

        stdout_text = stdout.decode("utf-8", errors="replace")
        stderr_text = stderr.decode("utf-8", errors="replace")

        if process.returncode != 0:
            raise TrackerCommandError(
                command=command,
                message=(
                    f"Command failed with exit code {process.returncode}: "
                    f"{stderr_text.strip() or stdout_text.strip()}"
                ),
                returncode=process.returncode,
                stderr=stderr_text,
            )

        return stdout_text
