"""
AI review 后端的能力接口。

每个具体后端独立实现这个 Protocol，并组合 `CredentialPool` + `BackendSettings`，
不依赖公共基类。

key 轮换策略：`analyze` 每次调用结束后（无论成功还是失败）恰好 advance 一次；
`health_check` 只使用当前 key，不轮换。
"""

from __future__ import annotations

from typing import Protocol

from pr_reviewer.review.models import ModelInfo
from pr_reviewer.review.models import ReviewContext
from pr_reviewer.review.models import ReviewResult


class ReviewBackend(Protocol):
    """orchestrator 依赖的最小后端接口（便于测试时替换为 fake）。"""

    @property
    def name(self) -> str: ...

    async def analyze(self, diff: str, context: ReviewContext) -> ReviewResult: ...

    async def health_check(self) -> bool: ...

    def describe_model(self) -> ModelInfo: ...
