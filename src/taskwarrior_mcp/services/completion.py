"""CompletionService -- 参数补全（项目 / 标签 / 任务描述）

三个补全语料各自懒加载：首次请求时从 task 拉取一次并缓存，
之后不再自动刷新。需要新数据时由调用方显式 invalidate()。
"""

import asyncio
from collections.abc import Awaitable, Callable
from difflib import SequenceMatcher

import structlog

from ..models import CompletionResult
from .task_service import TaskWarriorService

log = structlog.get_logger()

# 模糊匹配阈值（0-1，越高越严格）
MATCH_THRESHOLD = 0.7
# 不短于该长度的查询至少容忍一个错字
MIN_TYPO_QUERY_LENGTH = 3

CORPUS_PROJECTS = "projects"
CORPUS_TAGS = "tags"
CORPUS_TASKS = "tasks"


def _match_score(query: str, candidate: str) -> float:
    """query 与 candidate 中任一等长窗口的最佳相似度"""
    width = len(query)
    if len(candidate) <= width:
        return SequenceMatcher(None, query, candidate).ratio()

    best = 0.0
    for i in range(len(candidate) - width + 1):
        ratio = SequenceMatcher(None, query, candidate[i : i + width]).ratio()
        if ratio > best:
            best = ratio
            if best == 1.0:
                break
    return best


def _threshold(width: int) -> float:
    """查询长度对应的阈值：3 个字符时一个错字的得分为 2/3，低于 MATCH_THRESHOLD"""
    if width >= MIN_TYPO_QUERY_LENGTH:
        return min(MATCH_THRESHOLD, (width - 1) / width)
    return MATCH_THRESHOLD


def fuzzy_search(query: str, corpus: list[str]) -> list[str]:
    """大小写不敏感的模糊匹配，按相关度降序返回（同分保持语料顺序）"""
    needle = query.lower()
    threshold = _threshold(len(needle))
    scored = [(_match_score(needle, item.lower()), item) for item in corpus]
    matches = [(score, item) for score, item in scored if score >= threshold]
    matches.sort(key=lambda pair: pair[0], reverse=True)
    return [item for _, item in matches]


class _Corpus:
    """单个补全语料的缓存状态"""

    def __init__(self, name: str, loader: Callable[[], Awaitable[list[str]]]) -> None:
        self.name = name
        self._loader = loader
        self._lock = asyncio.Lock()
        self.loaded = False
        self.items: list[str] = []

    async def get(self) -> list[str]:
        if self.loaded:
            return self.items
        async with self._lock:
            # 并发的首次请求只触发一次拉取
            if not self.loaded:
                self.items = await self._loader()
                self.loaded = True
                log.debug("completion_corpus_loaded", corpus=self.name, size=len(self.items))
        return self.items

    def reset(self) -> None:
        self.loaded = False
        self.items = []


class CompletionService:
    """补全服务"""

    def __init__(self, task_service: TaskWarriorService) -> None:
        self._task_service = task_service
        self._corpora = {
            CORPUS_PROJECTS: _Corpus(CORPUS_PROJECTS, task_service.get_available_projects),
            CORPUS_TAGS: _Corpus(CORPUS_TAGS, task_service.get_available_tags),
            CORPUS_TASKS: _Corpus(CORPUS_TASKS, self._load_task_descriptions),
        }

    async def _load_task_descriptions(self) -> list[str]:
        tasks = await self._task_service.list_tasks("status:pending")
        return [task.description for task in tasks]

    async def _complete(self, corpus_name: str, value: str) -> CompletionResult:
        corpus = await self._corpora[corpus_name].get()
        if not value or not value.strip():
            return CompletionResult(values=list(corpus), total=len(corpus), has_more=False)

        matches = fuzzy_search(value, corpus)
        return CompletionResult(values=matches, total=len(matches), has_more=False)

    async def complete_projects(self, value: str) -> CompletionResult:
        return await self._complete(CORPUS_PROJECTS, value)

    async def complete_tags(self, value: str) -> CompletionResult:
        return await self._complete(CORPUS_TAGS, value)

    async def complete_task_descriptions(self, value: str) -> CompletionResult:
        return await self._complete(CORPUS_TASKS, value)

    def invalidate(self, corpus: str | None = None) -> None:
        """清空缓存，下次请求时重新拉取

        Args:
            corpus: projects / tags / tasks，None 表示全部

        Raises:
            KeyError: 未知语料名
        """
        targets = [self._corpora[corpus]] if corpus else self._corpora.values()
        for target in targets:
            target.reset()
        log.info("completion_cache_invalidated", corpus=corpus or "all")
