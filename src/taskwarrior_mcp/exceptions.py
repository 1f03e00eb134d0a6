"""taskwarrior-mcp 异常体系

TaskService 向上传播 TrackerCommandError / TaskNotFoundError 等异常，
工具边界统一转换为错误结果，资源与提示模板的查找错误交由协议层格式化。
"""


class TaskwarriorMCPError(Exception):
    """基础异常"""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class TrackerCommandError(TaskwarriorMCPError):
    """外部 task 命令失败

    覆盖非零退出、超时、无法启动进程、输出无法解析（如期望 JSON 却不是）等情况。
    """

    def __init__(
        self,
        command: str,
        message: str,
        returncode: int | None = None,
        stderr: str = "",
    ) -> None:
        """
        Args:
            command: 执行的命令行
            message: 错误描述
            returncode: 进程退出码，未能获得时为 None
            stderr: 进程的标准错误输出
        """
        super().__init__(message)
        self.command = command
        self.returncode = returncode
        self.stderr = stderr


class TaskNotFoundError(TaskwarriorMCPError):
    """按 ID 查询不到任务（包括变更后的回读为空）"""

    def __init__(self, task_id: str, message: str | None = None) -> None:
        super().__init__(message or f"Task not found: {task_id}")
        self.task_id = task_id


class InvalidTaskIdError(TaskwarriorMCPError, ValueError):
    """任务 ID 不是 UUID

    task 会把任意文本当作过滤表达式，非 UUID 的 ID 可能命中多个任务。
    """

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Invalid task id: {task_id!r} (expected a UUID)")
        self.task_id = task_id


class TaskCreationError(TaskwarriorMCPError):
    """add 命令输出中没有可提取的 UUID"""

    def __init__(self, output: str) -> None:
        super().__init__("Failed to create task: no UUID in tracker output")
        self.output = output


class InvalidRecurrenceError(TaskwarriorMCPError, ValueError):
    """无法识别的重复频率（封闭枚举，无降级）"""

    def __init__(self, value: str) -> None:
        super().__init__(f"Invalid recurrence frequency: {value}")
        self.value = value


class UnknownResourceError(TaskwarriorMCPError):
    """资源 URI 不在固定的四种形态之内"""

    def __init__(self, uri: str) -> None:
        super().__init__(f"Unknown resource URI: {uri}")
        self.uri = uri


class PromptNotFoundError(TaskwarriorMCPError):
    """提示模板名称不存在"""

    def __init__(self, name: str) -> None:
        super().__init__(f"Prompt not found: {name}")
        self.name = name


class InvalidPromptArgumentsError(TaskwarriorMCPError):
    """渲染提示模板时缺少必填参数"""

    def __init__(self, name: str, missing: list[str]) -> None:
        super().__init__(
            f"Missing required arguments for prompt {name}: {', '.join(missing)}"
        )
        self.name = name
        self.missing = missing
