"""
应用配置加载。

设计目标：
- **严格**：缺少必要环境变量就直接报错（避免“看起来跑了其实没配置好”）
- **类型安全**：使用 Pydantic 校验 URL/数字等，减少运行时踩坑
- **可测试**：核心加载函数接收 `environ` 显式输入，便于单元测试
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Literal

from pydantic import BaseModel, Field, HttpUrl, ValidationError

from pr_reviewer.backends.credentials import BackendConfig
from pr_reviewer.diff.chunker import DEFAULT_MAX_CHUNK_SIZE
from pr_reviewer.errors import ConfigurationError

# provider 名 -> 环境变量前缀
PROVIDER_ENV_PREFIXES: dict[str, str] = {
    "openai": "OPENAI",
    "claude": "ANTHROPIC",
    "gemini": "GEMINI",
}


class GitHubConfig(BaseModel):
    api_base_url: HttpUrl
    token: str
    webhook_secret: str


class ReviewSettings(BaseModel):
    """review 流程的可调参数。"""

    max_chunk_size: int = Field(default=DEFAULT_MAX_CHUNK_SIZE, gt=0)
    skip_patterns: list[str] = Field(default_factory=list)
    focus: list[str] = Field(default_factory=list)
    backend_timeout_seconds: float | None = Field(default=None, gt=0)
    fail_fast: bool = False
    min_call_interval_ms: int = Field(default=0, ge=0)


class AppConfig(BaseModel):
    providers: list[BackendConfig]
    review: ReviewSettings
    github: GitHubConfig
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"


def _split_list(raw: str | None) -> list[str]:
    """逗号分隔列表；去掉空白项。"""
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


def _parse_bool(key: str, raw: str | None) -> bool:
    if raw is None or raw == "":
        return False
    lowered = raw.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise ConfigurationError(f"Invalid boolean for {key}: {raw!r}")


def _load_provider(name: str, environ: Mapping[str, str]) -> BackendConfig:
    """读取单个 provider 的 key 列表与可选参数（缺省交给后端默认值）。"""
    prefix = PROVIDER_ENV_PREFIXES[name]
    api_keys = _split_list(environ.get(f"{prefix}_API_KEYS"))
    if not api_keys:
        raise ConfigurationError(f"Missing required env var: {prefix}_API_KEYS (provider {name})")
    return BackendConfig(
        name=name,
        api_keys=api_keys,
        model=environ.get(f"{prefix}_MODEL") or None,
        max_tokens=environ.get(f"{prefix}_MAX_TOKENS") or None,
        temperature=environ.get(f"{prefix}_TEMPERATURE") or None,
        timeout_ms=environ.get(f"{prefix}_TIMEOUT_MS") or None,
        base_url=environ.get(f"{prefix}_BASE_URL") or None,
    )


def load_config_from_env(environ: Mapping[str, str]) -> AppConfig:
    """
    从环境变量加载并校验配置。

    - **输入**：`environ`（例如 `os.environ`）
    - **输出**：`AppConfig`
    - **失败**：缺失/为空/格式非法则抛 `ConfigurationError`
    """
    provider_names = [name.lower() for name in _split_list(environ.get("REVIEW_PROVIDERS"))]
    if not provider_names:
        raise ConfigurationError("Missing required env var: REVIEW_PROVIDERS")
    unknown = [name for name in provider_names if name not in PROVIDER_ENV_PREFIXES]
    if unknown:
        raise ConfigurationError(f"Unknown review providers: {', '.join(unknown)}")
    if len(set(provider_names)) != len(provider_names):
        raise ConfigurationError("REVIEW_PROVIDERS contains duplicates")

    github_keys: tuple[str, ...] = ("GITHUB_API_BASE_URL", "GITHUB_TOKEN", "GITHUB_WEBHOOK_SECRET")
    missing: list[str] = [key for key in github_keys if key not in environ or not environ[key]]
    if missing:
        raise ConfigurationError(f"Missing required env vars: {', '.join(missing)}")

    # 交给 Pydantic 做类型校验（例如 URL 合法性、数字范围）
    try:
        return AppConfig(
            providers=[_load_provider(name, environ) for name in provider_names],
            review=ReviewSettings(
                max_chunk_size=environ.get("MAX_CHUNK_SIZE") or DEFAULT_MAX_CHUNK_SIZE,
                skip_patterns=_split_list(environ.get("SKIP_PATTERNS")),
                focus=_split_list(environ.get("REVIEW_FOCUS")),
                backend_timeout_seconds=environ.get("BACKEND_TIMEOUT_SECONDS") or None,
                fail_fast=_parse_bool("FAIL_FAST", environ.get("FAIL_FAST")),
                min_call_interval_ms=environ.get("MIN_CALL_INTERVAL_MS") or 0,
            ),
            github=GitHubConfig(
                api_base_url=environ["GITHUB_API_BASE_URL"],
                token=environ["GITHUB_TOKEN"],
                webhook_secret=environ["GITHUB_WEBHOOK_SECRET"],
            ),
            log_level=(environ.get("LOG_LEVEL") or "INFO").strip().upper(),
        )
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc
