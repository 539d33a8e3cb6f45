"""
Backend Orchestrator（多后端轮询 + 失败隔离）。

关键思想：
- **确定性负载分布**：每次 `analyze` 恰好把 round-robin 游标前进一位（与成败无关）
- **失败隔离**：选中的后端失败时，按顺序尝试其余后端，直到有一个成功
- **全部失败才抛错**：抛出 `BackendsExhaustedError`，并链上最后一个错误

游标与各后端自己的 key 游标相互独立；单线程协作式调度下无需加锁，
如果以后并发处理 chunk，需要给游标与统计加锁。
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timezone

import anyio

from pr_reviewer.backends.base import ReviewBackend
from pr_reviewer.errors import BackendError
from pr_reviewer.errors import BackendsExhaustedError
from pr_reviewer.errors import ConfigurationError
from pr_reviewer.infra.rate_limit import RateLimiter
from pr_reviewer.review.models import BackendStats
from pr_reviewer.review.models import ReviewContext
from pr_reviewer.review.models import ReviewResult

logger = logging.getLogger(__name__)


class BackendOrchestrator:
    def __init__(
        self,
        backends: Sequence[ReviewBackend],
        timeout_seconds: float | None = None,
        fail_fast: bool = False,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        """
        - backends: 有序后端列表（顺序即轮询顺序）
        - timeout_seconds: 单次后端调用的上限；超时按该后端失败处理
        - fail_fast: 第一次失败就直接抛错，不再尝试其他后端
        - rate_limiter: 每次后端调用前等待的节流器
        """
        self._backends: list[ReviewBackend] = [b for b in backends if b is not None]
        if not self._backends:
            raise ConfigurationError("No valid review backends configured")
        names = [b.name for b in self._backends]
        if len(set(names)) != len(names):
            raise ConfigurationError(f"Duplicate backend names: {', '.join(names)}")

        self._cursor = 0
        self._timeout_seconds = timeout_seconds
        self._fail_fast = fail_fast
        self._rate_limiter = rate_limiter
        self._stats: dict[str, BackendStats] = {name: BackendStats(name=name) for name in names}

    async def _call(self, backend: ReviewBackend, diff: str, context: ReviewContext) -> ReviewResult:
        if self._rate_limiter is not None:
            await self._rate_limiter.wait()
        if self._timeout_seconds is None:
            return await backend.analyze(diff, context)
        try:
            with anyio.fail_after(self._timeout_seconds):
                return await backend.analyze(diff, context)
        except TimeoutError as exc:
            raise BackendError(
                f"{backend.name} timed out after {self._timeout_seconds}s", backend=backend.name
            ) from exc

    async def analyze(self, diff: str, context: ReviewContext) -> ReviewResult:
        """
        用 round-robin 选中的后端分析一个 chunk，失败时按顺序兜底。

        尝试顺序：cursor, cursor+1, ...（取模），每个后端最多一次。
        """
        start = self._cursor
        count = len(self._backends)
        self._cursor = (self._cursor + 1) % count

        last_error: Exception | None = None
        for offset in range(count):
            backend = self._backends[(start + offset) % count]
            stats = self._stats[backend.name]
            stats.attempt_count += 1
            stats.last_used = datetime.now(timezone.utc)
            try:
                result = await self._call(backend, diff, context)
            except Exception as exc:
                last_error = exc
                stats.failure_count += 1
                logger.warning(f"Backend {backend.name} failed: {type(exc).__name__}")
                if self._fail_fast:
                    raise BackendError(f"Backend {backend.name} failed", backend=backend.name) from exc
                continue

            stats.success_count += 1
            logger.info(f"Backend {backend.name} completed successfully")
            return result

        raise BackendsExhaustedError(f"All {count} backend(s) failed to analyze the diff") from last_error

    async def check_health(self) -> dict[str, bool]:
        """逐个执行健康检查（顺序执行，避免同时打满各家限流）。"""
        report: dict[str, bool] = {}
        for backend in self._backends:
            report[backend.name] = await backend.health_check()
        return report

    def available_backends(self) -> list[str]:
        return [b.name for b in self._backends]

    def describe_backends(self) -> dict[str, dict[str, object]]:
        return {b.name: b.describe_model().model_dump() for b in self._backends}

    def get_usage_stats(self) -> dict[str, int]:
        """每个后端累计的成功调用次数。"""
        return {name: s.success_count for name, s in self._stats.items()}

    def get_detailed_stats(self) -> list[BackendStats]:
        return [s.model_copy() for s in self._stats.values()]


def build_review_orchestrator(
    backends: Sequence[ReviewBackend],
    timeout_seconds: float | None = None,
    fail_fast: bool = False,
    min_call_interval_ms: int = 0,
) -> BackendOrchestrator:
    """创建 orchestrator（节流间隔为 0 时不挂 RateLimiter）。"""
    rate_limiter = RateLimiter(delay_ms=min_call_interval_ms) if min_call_interval_ms > 0 else None
    return BackendOrchestrator(
        backends=backends,
        timeout_seconds=timeout_seconds,
        fail_fast=fail_fast,
        rate_limiter=rate_limiter,
    )
