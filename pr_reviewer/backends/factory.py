from __future__ import annotations

from collections.abc import Sequence

import httpx

from pr_reviewer.backends.base import ReviewBackend
from pr_reviewer.backends.claude_backend import ClaudeBackend
from pr_reviewer.backends.credentials import BackendConfig
from pr_reviewer.backends.gemini_backend import GeminiBackend
from pr_reviewer.backends.openai_backend import OpenAIBackend
from pr_reviewer.errors import ConfigurationError


def build_backend(config: BackendConfig, http_client: httpx.AsyncClient | None, focus: Sequence[str]) -> ReviewBackend:
    """按 provider 名创建后端；空 key 池在构造时直接抛 `ConfigurationError`。"""
    if config.name == "openai":
        return OpenAIBackend(config=config, http_client=http_client, focus=focus)
    if config.name == "claude":
        return ClaudeBackend(config=config, focus=focus)
    if config.name == "gemini":
        return GeminiBackend(config=config, focus=focus)
    raise ConfigurationError(f"Unknown review provider: {config.name}")


def build_backends(
    configs: Sequence[BackendConfig],
    http_client: httpx.AsyncClient | None = None,
    focus: Sequence[str] = (),
) -> list[ReviewBackend]:
    """保持配置顺序（即 round-robin 顺序）。"""
    return [build_backend(config=c, http_client=http_client, focus=focus) for c in configs]
