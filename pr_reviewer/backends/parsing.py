"""
后端响应解析。

失败策略（沿用 "宁可失败也不要写入错误评论"）：
- 找不到 JSON / JSON 非法 / schema 不匹配 -> 抛 `BackendError`
- orchestrator 会把它当作该后端失败，切换到下一个后端
"""

from __future__ import annotations

import json
import logging
import re

from pydantic import ValidationError

from pr_reviewer.errors import BackendError
from pr_reviewer.review.models import ReviewResult

logger = logging.getLogger(__name__)

# 模型偶尔会在 JSON 外面包一层 ```json 代码块或解释文字
_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


def parse_review_response(backend: str, content: str, default_confidence: float) -> ReviewResult:
    """把模型输出解析为 `ReviewResult`；模型没给 confidence 时使用后端默认值。"""
    match = _JSON_OBJECT_RE.search(content)
    if match is None:
        logger.error(f"{backend} response contains no JSON object ({len(content)} chars)")
        raise BackendError(f"{backend} returned no JSON object", backend=backend)

    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        logger.error(f"{backend} returned invalid JSON: {exc}")
        raise BackendError(f"{backend} returned invalid JSON", backend=backend) from exc

    if not isinstance(parsed, dict):
        raise BackendError(f"{backend} returned a non-object JSON payload", backend=backend)
    if parsed.get("confidence") is None:
        parsed["confidence"] = default_confidence
    if parsed.get("suggestions") is None:
        parsed["suggestions"] = []
    if not parsed.get("summary"):
        parsed["summary"] = f"{backend} review completed"

    try:
        result = ReviewResult.model_validate(parsed)
    except ValidationError as exc:
        logger.error(f"{backend} JSON does not match ReviewResult schema: {exc}")
        raise BackendError(f"{backend} JSON does not match ReviewResult schema", backend=backend) from exc

    logger.info(f"{backend} returned {len(result.suggestions)} suggestion(s), confidence={result.confidence}")
    return result
