"""
API key 池与后端参数解析。

- `CredentialPool`：有序 key 列表 + 显式游标；只在调用方显式 `advance()` 时轮换
- `resolve_with_defaults`：把用户配置与每种后端的默认值合并成最终参数
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from pydantic import BaseModel, Field

from pr_reviewer.errors import ConfigurationError

DEFAULT_TEMPERATURE = 0.3
DEFAULT_TIMEOUT_MS = 30000


class CredentialPool:
    """
    非空的 credential 轮换池。

    不变量：游标始终在 [0, size) 内；advance 按 size 取模；size == 1 时游标永不变化。
    """

    def __init__(self, credentials: Sequence[str]) -> None:
        self._credentials: tuple[str, ...] = tuple(credentials)
        if not self._credentials:
            raise ConfigurationError("At least one API key is required")
        self._cursor = 0

    @property
    def size(self) -> int:
        return len(self._credentials)

    @property
    def cursor(self) -> int:
        return self._cursor

    def current(self) -> str:
        return self._credentials[self._cursor]

    def advance(self) -> None:
        if self.size > 1:
            self._cursor = (self._cursor + 1) % self.size

    def credentials(self) -> list[str]:
        return list(self._credentials)


class BackendConfig(BaseModel):
    """单个后端的用户配置；None 表示使用该后端的默认值。"""

    name: str
    api_keys: list[str] = Field(default_factory=list)
    model: str | None = None
    max_tokens: int | None = Field(default=None, gt=0)
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    timeout_ms: int | None = Field(default=None, gt=0)
    base_url: str | None = None


@dataclass(frozen=True)
class BackendDefaults:
    model: str
    max_tokens: int
    temperature: float = DEFAULT_TEMPERATURE
    timeout_ms: int = DEFAULT_TIMEOUT_MS


@dataclass(frozen=True)
class BackendSettings:
    """合并默认值之后的最终参数。"""

    model: str
    max_tokens: int
    temperature: float
    timeout_ms: int

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000


def resolve_with_defaults(config: BackendConfig, defaults: BackendDefaults) -> BackendSettings:
    """
    逐字段合并：配置里缺省（None/空字符串）才用默认值。

    注意：显式给出的 0.0 temperature 是合法值，不能被默认值覆盖。
    """
    return BackendSettings(
        model=config.model or defaults.model,
        max_tokens=config.max_tokens if config.max_tokens is not None else defaults.max_tokens,
        temperature=config.temperature if config.temperature is not None else defaults.temperature,
        timeout_ms=config.timeout_ms if config.timeout_ms is not None else defaults.timeout_ms,
    )
