"""时间戳 / 查询转换 -- 纯函数，无 I/O

task 原生时间戳为紧凑格式 YYYYMMDDTHHMMSSZ，对外统一为 ISO-8601：
  - 日期：YYYY-MM-DD
  - 日期时间：YYYY-MM-DDTHH:MM:SSZ
下发给 task 的日期参数统一为 YYYY-MM-DD 或 YYYY-MM-DDTHH:MM。
"""

import re
from datetime import UTC, datetime

import structlog

from ..exceptions import InvalidRecurrenceError
from ..models import RecurrenceFrequency, TaskUpdate

log = structlog.get_logger()

_CANONICAL_RE = re.compile(r"^\d{4}-\d{2}-\d{2}(T\d{2}:\d{2}:\d{2}Z)?$")
_TRACKER_INPUT_RE = re.compile(r"^\d{4}-\d{2}-\d{2}(T\d{2}:\d{2})?$")
_COMPACT_RE = re.compile(r"^(\d{4})(\d{2})(\d{2})T(\d{2})(\d{2})(\d{2})Z$")
_UUID_RE = re.compile(
    r"([0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12})",
    re.IGNORECASE,
)
# 命令注入黑名单（不是完整转义）
_SHELL_METACHARS_RE = re.compile(r"[;&|`$]")

_RECURRENCE_VALUES = {freq.value: freq for freq in RecurrenceFrequency}


def to_canonical_timestamp(raw: str | None) -> str:
    """task 时间戳 -> ISO-8601

    已是 ISO 格式时原样返回；否则按紧凑格式切片。
    输入为空时返回当前时刻（保留原行为，记录 warning 以便发现缺失数据）。
    """
    if not raw:
        log.warning("timestamp_missing_defaulting_to_now")
        return datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")

    if _CANONICAL_RE.match(raw):
        return raw

    year = raw[0:4]
    month = raw[4:6]
    day = raw[6:8]
    hour = raw[9:11]
    minute = raw[11:13]
    second = raw[13:15]

    if hour and minute:
        return f"{year}-{month}-{day}T{hour}:{minute}:{second}Z"
    return f"{year}-{month}-{day}"


def to_optional_canonical_timestamp(raw: str | None) -> str | None:
    """同 to_canonical_timestamp，但缺省输入返回 None"""
    if not raw:
        return None
    return to_canonical_timestamp(raw)


def to_tracker_timestamp(value: str) -> str:
    """ISO-8601 -> task 接受的日期参数

    - YYYY-MM-DD / YYYY-MM-DDTHH:MM 原样透传
    - 紧凑格式 YYYYMMDDTHHMMSSZ 重排为 YYYY-MM-DDTHH:MM
    - 其他 ISO-8601 通用解析；带时区的值转换为本地时间（task 按本地时间解释）
    - 非 ISO 值（tomorrow、eow 等 task 日期同义词）原样交给 task 解析
    """
    if _TRACKER_INPUT_RE.match(value):
        return value

    compact = _COMPACT_RE.match(value)
    if compact:
        year, month, day, hours, minutes, _ = compact.groups()
        return f"{year}-{month}-{day}T{hours}:{minutes}"

    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone()

    if "T" in value:
        return parsed.strftime("%Y-%m-%dT%H:%M")
    return parsed.strftime("%Y-%m-%d")


def map_recurrence(native: str) -> RecurrenceFrequency:
    """task 重复语法 -> RecurrenceFrequency

    Raises:
        InvalidRecurrenceError: 不在 daily/weekly/monthly/yearly 之内
    """
    normalized = native.lower()
    if normalized.startswith("recur:"):
        normalized = normalized[len("recur:"):]
    frequency = _RECURRENCE_VALUES.get(normalized)
    if frequency is None:
        raise InvalidRecurrenceError(native)
    return frequency


def sanitize_query(text: str) -> str:
    """去除 shell 元字符 ; & | ` $，其余字符保持不变"""
    return _SHELL_METACHARS_RE.sub("", text)


def build_modification_args(update: TaskUpdate) -> list[str]:
    """TaskUpdate -> 有序的 key:value 参数列表

    顺序与字段声明一致；缺省字段不产生参数。
    返回未加引号的 token，拼接命令行时再做 shell 引用。
    """
    args: list[str] = []

    if update.description:
        args.append(f"description:{update.description}")
    if update.tags:
        args.extend(f"tag:{tag}" for tag in update.tags)
    if update.project:
        args.append(f"project:{update.project}")
    if update.priority:
        args.append(f"priority:{update.priority.value}")
    if update.due:
        args.append(f"due:{to_tracker_timestamp(update.due)}")
    if update.wait:
        args.append(f"wait:{to_tracker_timestamp(update.wait)}")
    if update.scheduled:
        args.append(f"scheduled:{to_tracker_timestamp(update.scheduled)}")
    if update.recurrence:
        recurrence = update.recurrence
        args.append(f"recur:{recurrence.frequency.value}")
        if recurrence.interval > 1:
            args.append(f"interval:{recurrence.interval}")
        if recurrence.until:
            args.append(f"until:{to_tracker_timestamp(recurrence.until)}")

    return args


def extract_uuid(output: str) -> str | None:
    """从 add 命令的确认文本中提取 UUID（8-4-4-4-12）

    依赖 task 的输出格式，格式变化只需修改此处。
    """
    match = _UUID_RE.search(output)
    return match.group(1) if match else None


def parse_listing(output: str, label: str) -> list[str]:
    """解析 task projects / task tags 的表格输出

    丢弃表头行，跳过空行与包含 label 的汇总行，取每行第一个空白分隔 token。
    """
    items: list[str] = []
    for line in output.split("\n")[1:]:
        stripped = line.strip()
        if not stripped or label.lower() in stripped.lower():
            continue
        items.append(stripped.split()[0])
    return items
