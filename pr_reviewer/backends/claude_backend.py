"""
Claude 后端（Anthropic SDK，messages API）。

Claude 没有 JSON mode，回答里可能夹带解释文字；解析时只取最外层 JSON 对象。
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from anthropic import AnthropicError, AsyncAnthropic

from pr_reviewer.backends.credentials import BackendConfig
from pr_reviewer.backends.credentials import BackendDefaults
from pr_reviewer.backends.credentials import CredentialPool
from pr_reviewer.backends.credentials import resolve_with_defaults
from pr_reviewer.backends.parsing import parse_review_response
from pr_reviewer.backends.prompt import build_review_prompt
from pr_reviewer.backends.prompt import build_system_prompt
from pr_reviewer.errors import BackendError
from pr_reviewer.review.models import ModelInfo
from pr_reviewer.review.models import ReviewContext
from pr_reviewer.review.models import ReviewResult

logger = logging.getLogger(__name__)

CLAUDE_DEFAULTS = BackendDefaults(model="claude-3-5-sonnet-latest", max_tokens=1000)
CLAUDE_CONFIDENCE = 0.85


class ClaudeBackend:
    """
    Anthropic messages 后端；每个 API key 一个 AsyncAnthropic client。

    SDK 自己管理 HTTP 传输层（不复用服务共享的 httpx client），连接类错误也统一包装成 AnthropicError。
    """

    def __init__(self, config: BackendConfig, focus: Sequence[str] = ()) -> None:
        self._pool = CredentialPool([key.strip() for key in config.api_keys])
        self._settings = resolve_with_defaults(config, CLAUDE_DEFAULTS)
        self._focus = tuple(focus)
        self._clients: dict[str, AsyncAnthropic] = {
            key: AsyncAnthropic(api_key=key, timeout=self._settings.timeout_seconds)
            for key in self._pool.credentials()
        }

    @property
    def name(self) -> str:
        return "Claude"

    @property
    def credentials(self) -> CredentialPool:
        return self._pool

    def describe_model(self) -> ModelInfo:
        return ModelInfo(model=self._settings.model, max_tokens=self._settings.max_tokens)

    async def health_check(self) -> bool:
        """发一条极短的消息验证 key/模型可用。"""
        client = self._clients[self._pool.current()]
        try:
            await client.messages.create(
                model=self._settings.model,
                max_tokens=10,
                messages=[{"role": "user", "content": "Hi"}],
            )
        except AnthropicError as exc:
            logger.warning(f"Claude health check failed: {type(exc).__name__}")
            return False
        return True

    async def analyze(self, diff: str, context: ReviewContext) -> ReviewResult:
        client = self._clients[self._pool.current()]
        prompt = build_review_prompt(diff=diff, context=context, focus=self._focus)
        try:
            logger.info(f"Claude request: model={self._settings.model}, diff={len(diff)} chars")
            response = await client.messages.create(
                model=self._settings.model,
                max_tokens=self._settings.max_tokens,
                temperature=self._settings.temperature,
                system=build_system_prompt(),
                messages=[{"role": "user", "content": prompt}],
            )
            text_blocks = [block.text for block in response.content if block.type == "text"]
            if not text_blocks:
                raise BackendError("No text response from Claude", backend=self.name)
            return parse_review_response(self.name, "".join(text_blocks), default_confidence=CLAUDE_CONFIDENCE)
        except AnthropicError as exc:
            logger.error(f"Claude API error: {type(exc).__name__}")
            raise BackendError("Claude API error: request failed", backend=self.name) from exc
        finally:
            self._pool.advance()
