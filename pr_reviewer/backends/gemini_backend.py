"""
Gemini 后端（google-genai SDK，异步接口 `client.aio`）。

说明：
- 使用 response_mime_type="application/json" 要求模型输出 JSON
- 仍可能被包在 ```json 代码块里，解析时统一处理
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

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

GEMINI_DEFAULTS = BackendDefaults(model="gemini-2.0-flash", max_tokens=1000)
GEMINI_CONFIDENCE = 0.8


class GeminiBackend:
    """Gemini generate_content 后端；每个 API key 一个 genai.Client。"""

    def __init__(self, config: BackendConfig, focus: Sequence[str] = ()) -> None:
        self._pool = CredentialPool([key.strip() for key in config.api_keys])
        self._settings = resolve_with_defaults(config, GEMINI_DEFAULTS)
        self._focus = tuple(focus)
        # HttpOptions.timeout 单位是毫秒
        http_options = types.HttpOptions(timeout=self._settings.timeout_ms)
        self._clients: dict[str, genai.Client] = {
            key: genai.Client(api_key=key, http_options=http_options) for key in self._pool.credentials()
        }

    @property
    def name(self) -> str:
        return "Gemini"

    @property
    def credentials(self) -> CredentialPool:
        return self._pool

    def describe_model(self) -> ModelInfo:
        return ModelInfo(model=self._settings.model, max_tokens=self._settings.max_tokens)

    async def health_check(self) -> bool:
        client = self._clients[self._pool.current()]
        try:
            await client.aio.models.generate_content(
                model=self._settings.model,
                contents="Hi",
                config=types.GenerateContentConfig(max_output_tokens=10),
            )
        except (genai_errors.APIError, httpx.HTTPError) as exc:
            logger.warning(f"Gemini health check failed: {type(exc).__name__}")
            return False
        return True

    async def analyze(self, diff: str, context: ReviewContext) -> ReviewResult:
        client = self._clients[self._pool.current()]
        prompt = build_review_prompt(diff=diff, context=context, focus=self._focus)
        config = types.GenerateContentConfig(
            system_instruction=build_system_prompt(),
            temperature=self._settings.temperature,
            max_output_tokens=self._settings.max_tokens,
            response_mime_type="application/json",
        )
        try:
            logger.info(f"Gemini request: model={self._settings.model}, diff={len(diff)} chars")
            response = await client.aio.models.generate_content(
                model=self._settings.model,
                contents=prompt,
                config=config,
            )
            content = response.text
            if not content:
                raise BackendError("No response from Gemini", backend=self.name)
            return parse_review_response(self.name, content, default_confidence=GEMINI_CONFIDENCE)
        except genai_errors.APIError as exc:
            logger.error(f"Gemini API error: {type(exc).__name__}")
            raise BackendError("Gemini API error: request failed", backend=self.name) from exc
        except httpx.HTTPError as exc:
            logger.error(f"Gemini HTTP error: {type(exc).__name__}")
            raise BackendError("Gemini HTTP error: request failed", backend=self.name) from exc
        finally:
            self._pool.advance()
