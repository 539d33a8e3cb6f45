"""
OpenAI 后端（OpenAI SDK；也可对接 LiteLLM 等 OpenAI-compatible 网关）。

目标：
- **尽量薄**：只做协议适配、key 轮换与错误处理
- **严格 JSON**：使用 response_format=json_object，解析失败直接抛 `BackendError`
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import httpx
from openai import AsyncOpenAI, OpenAIError

from pr_reviewer.backends.credentials import BackendConfig
from pr_reviewer.backends.credentials import BackendDefaults
from pr_reviewer.backends.credentials import CredentialPool
from pr_reviewer.backends.credentials import resolve_with_defaults
from pr_reviewer.backends.parsing import parse_review_response
from pr_reviewer.backends.prompt import build_messages
from pr_reviewer.errors import BackendError
from pr_reviewer.review.models import ModelInfo
from pr_reviewer.review.models import ReviewContext
from pr_reviewer.review.models import ReviewResult

logger = logging.getLogger(__name__)

OPENAI_DEFAULTS = BackendDefaults(model="gpt-4o", max_tokens=1000)
OPENAI_CONFIDENCE = 0.8


def _normalize_base_url(base_url: str) -> str:
    normalized = base_url.rstrip("/")
    if normalized.endswith("/v1"):
        return normalized
    return f"{normalized}/v1"


class OpenAIBackend:
    """OpenAI chat completions 后端；每个 API key 一个 AsyncOpenAI client。"""

    def __init__(
        self,
        config: BackendConfig,
        http_client: httpx.AsyncClient | None = None,
        focus: Sequence[str] = (),
    ) -> None:
        """
        - config: 用户配置（key 列表 + 可选模型参数 + 可选 base_url）
        - http_client: 复用 httpx.AsyncClient 连接池
        - focus: review 关注点，原样透传给 prompt
        """
        self._pool = CredentialPool(config.api_keys)
        self._settings = resolve_with_defaults(config, OPENAI_DEFAULTS)
        self._focus = tuple(focus)
        base_url = _normalize_base_url(config.base_url) if config.base_url else None
        self._clients: dict[str, AsyncOpenAI] = {
            key: AsyncOpenAI(
                api_key=key,
                base_url=base_url,
                timeout=self._settings.timeout_seconds,
                http_client=http_client,
            )
            for key in self._pool.credentials()
        }

    @property
    def name(self) -> str:
        return "OpenAI"

    @property
    def credentials(self) -> CredentialPool:
        return self._pool

    def describe_model(self) -> ModelInfo:
        return ModelInfo(model=self._settings.model, max_tokens=self._settings.max_tokens)

    async def health_check(self) -> bool:
        client = self._clients[self._pool.current()]
        try:
            await client.models.list()
        except (OpenAIError, httpx.HTTPError) as exc:
            # 不打印异常正文，避免泄露 key
            logger.warning(f"OpenAI health check failed: {type(exc).__name__}")
            return False
        return True

    async def analyze(self, diff: str, context: ReviewContext) -> ReviewResult:
        """
        调用 chat completions 并解析为 `ReviewResult`。

        - 无论成功失败，结束后都轮换到下一个 key
        - SDK/HTTP 错误统一包装成 `BackendError`（不带原始错误信息）
        """
        client = self._clients[self._pool.current()]
        messages = build_messages(diff=diff, context=context, focus=self._focus)
        try:
            logger.info(f"OpenAI request: model={self._settings.model}, diff={len(diff)} chars")
            response = await client.chat.completions.create(
                model=self._settings.model,
                messages=[m.model_dump() for m in messages],
                temperature=self._settings.temperature,
                max_tokens=self._settings.max_tokens,
                response_format={"type": "json_object"},
            )
            content = response.choices[0].message.content if response.choices else None
            if not content:
                raise BackendError("No response content from OpenAI", backend=self.name)
            return parse_review_response(self.name, content, default_confidence=OPENAI_CONFIDENCE)
        except OpenAIError as exc:
            logger.error(f"OpenAI API error: {type(exc).__name__}")
            raise BackendError("OpenAI API error: request failed", backend=self.name) from exc
        except httpx.HTTPError as exc:
            logger.error(f"OpenAI HTTP error: {type(exc).__name__}")
            raise BackendError("OpenAI HTTP error: request failed", backend=self.name) from exc
        finally:
            self._pool.advance()
