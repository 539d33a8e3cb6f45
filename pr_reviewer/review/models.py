"""
Review 领域模型（Pydantic）。

用途：
- 明确各阶段输入/输出的数据结构（chunk -> backend -> findings -> comments）
- 作为 LLM JSON 输出的 schema 校验（`ReviewResult` / `Finding`）
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Chunk(BaseModel):
    """diff 切分后的一个分析单元（size 恒等于 len(content)）。"""

    content: str
    files: list[str] = Field(default_factory=list)
    size: int


class ReviewContext(BaseModel):
    """
    一次 PR review 的上下文。

    只通过 `build_review_context` 构造（那里做校验与 trim），构造后不可变。
    """

    model_config = ConfigDict(frozen=True)

    pr_number: int = Field(gt=0)
    repository: str = Field(min_length=1)
    branch: str = Field(min_length=1)
    files: tuple[str, ...] = ()


class Finding(BaseModel):
    """
    reviewer 输出的单条问题（LLM JSON schema）。

    - line 从 1 开始；0 表示文件级问题（无法挂到具体行）
    - severity/category 不做强枚举：未知值在渲染时降级为中性标识
    """

    file: str
    line: int = Field(default=0, ge=0)
    severity: str = "low"
    category: str = "other"
    message: str
    suggestion: str = ""
    codeExample: str | None = None

    @field_validator("severity", "category")
    @classmethod
    def _normalize_label(cls, value: str) -> str:
        return value.strip().lower()


class ReviewResult(BaseModel):
    """单次后端调用的结构化输出。"""

    summary: str = ""
    suggestions: list[Finding] = Field(default_factory=list)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class ExistingComment(BaseModel):
    """PR 上已经存在的行级评论（用于去重）。"""

    file: str
    line: int
    body: str


class LineComment(BaseModel):
    """准备发布的行级评论。"""

    file: str
    line: int = Field(ge=1)
    body: str


class ModelInfo(BaseModel):
    model: str
    max_tokens: int


class BackendStats(BaseModel):
    """单个后端的累计调用统计（进程生命周期内只增不减）。"""

    name: str
    attempt_count: int = 0
    success_count: int = 0
    failure_count: int = 0
    last_used: datetime | None = None


class StaticIssue(BaseModel):
    """
    新增行上的确定性检查结果（不依赖 LLM）。

    line 是新版本中的行号；hunk header 无法解析时为 0。
    """

    file: str
    line: int = Field(ge=0)
    severity: Literal["error", "warning", "info"]
    message: str
    rule: str


class DiffStats(BaseModel):
    """
    整段 diff 的统计。

    - complexity：新增行里的分支关键字（if/for/while）或 `&&`/`||`，每行最多计 1
    - issues：新增行的静态检查结果，按出现顺序
    """

    files: list[str] = Field(default_factory=list)
    additions: int = 0
    deletions: int = 0
    complexity: int = 0
    issues: list[StaticIssue] = Field(default_factory=list)
