"""补全结果模型"""

from pydantic import BaseModel, Field


class CompletionResult(BaseModel):
    """参数补全结果

    has_more 恒为 False：当前没有分页，调用方不能假设存在截断信号。
    """

    values: list[str] = Field(default_factory=list, description="按相关度排序的候选值")
    total: int = Field(default=0, description="候选值数量")
    has_more: bool = Field(default=False, description="是否还有更多（恒为 False）")

    @classmethod
    def empty(cls) -> "CompletionResult":
        return cls(values=[], total=0, has_more=False)
