"""
错误类型（按失败影响范围分层）。

- **ReviewValidationError**：上下文/参数不合法，只影响触发它的那一次调用
- **ConfigurationError**：配置不可用（例如空的 API key 池），启动即失败
- **BackendError**：AI 后端调用失败（网络/超时/限流/返回格式错误），由 orchestrator 兜底切换
- **PlatformError**：代码托管平台（GitHub）调用失败，直接抛给上层
"""

from __future__ import annotations


class ReviewValidationError(ValueError):
    """输入不满足约束（PR 号、仓库名、分支名等）。"""


class ConfigurationError(ValueError):
    """配置缺失或非法；在发起任何调用之前就失败。"""


class BackendError(RuntimeError):
    """单个 AI 后端调用失败。"""

    def __init__(self, message: str, backend: str | None = None) -> None:
        super().__init__(message)
        self.backend = backend


class BackendsExhaustedError(BackendError):
    """同一个 chunk 上所有后端都失败了。"""


class PlatformError(RuntimeError):
    """GitHub API 返回非 2xx 或响应结构不符合预期。"""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
