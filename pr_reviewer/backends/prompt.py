"""
review prompt 构建（所有后端共用）。

约定：
- 模型必须输出纯 JSON（schema 见 `_RESPONSE_SCHEMA`），便于严格校验
- review focus 是用户配置的自由文本，原样透传，不做改写
"""

from __future__ import annotations

from collections.abc import Sequence

from pydantic import BaseModel

from pr_reviewer.review.models import ReviewContext

DEFAULT_FOCUS: tuple[str, ...] = (
    "Security vulnerabilities and potential exploits",
    "Performance bottlenecks",
    "Code maintainability and readability",
    "Edge cases and error handling",
    "Potential bugs",
)

_RESPONSE_SCHEMA = """{
  "summary": "Brief summary of your review",
  "confidence": 0.0,
  "suggestions": [
    {
      "file": "path/to/file.py",
      "line": 10,
      "severity": "high|medium|low",
      "category": "security|performance|style|bug|other",
      "message": "Description of the issue",
      "suggestion": "How to fix it",
      "codeExample": "optional corrected code"
    }
  ]
}"""


class ChatMessage(BaseModel):
    """chat message 的最小结构（OpenAI/Anthropic 通用）。"""

    role: str
    content: str


def build_system_prompt() -> str:
    return (
        "You are an expert code reviewer. "
        "You must answer with strict JSON only (no markdown, no explanations outside the JSON)."
    )


def build_review_prompt(diff: str, context: ReviewContext, focus: Sequence[str] = ()) -> str:
    """
    user prompt：PR 元信息 + 当前 chunk 的 diff + 关注点。

    - line 必须是新版本文件中的行号；无法定位到行时用 0
    - file 必须是 diff 中 `File:` 标记出现过的路径
    """
    focus_items = list(focus) or list(DEFAULT_FOCUS)
    focus_text = "\n".join(f"- {item}" for item in focus_items)
    return (
        "Please review this pull request diff.\n\n"
        f"Repository: {context.repository}\n"
        f"PR Number: {context.pr_number}\n"
        f"Branch: {context.branch}\n\n"
        f"```diff\n{diff}\n```\n\n"
        f"Focus on:\n{focus_text}\n\n"
        "Rules:\n"
        "- `file` must be one of the paths marked with `File:` in the diff\n"
        "- `line` is the line number in the new version of the file, or 0 for file-level remarks\n"
        "- Return an empty `suggestions` list if there is nothing worth reporting\n\n"
        f"Respond with JSON in this format:\n{_RESPONSE_SCHEMA}\n"
    )


def build_messages(diff: str, context: ReviewContext, focus: Sequence[str] = ()) -> list[ChatMessage]:
    return [
        ChatMessage(role="system", content=build_system_prompt()),
        ChatMessage(role="user", content=build_review_prompt(diff=diff, context=context, focus=focus)),
    ]
