from __future__ import annotations

"""
后端调用节流（最小版本）。

为什么需要这个模块：
- 多个 chunk 连续打同一个 provider 很容易触发对方限流
- 这里只保证两次调用之间的最小间隔，不做 token 预算
"""

import time

import anyio


class RateLimiter:
    """保证相邻两次 `wait()` 返回之间至少间隔 `delay_ms` 毫秒。"""

    def __init__(self, delay_ms: int = 100) -> None:
        if delay_ms < 0:
            raise ValueError("delay_ms must be >= 0")
        self._delay_seconds = delay_ms / 1000
        self._last_call: float | None = None

    async def wait(self) -> None:
        now = time.monotonic()
        if self._last_call is not None:
            remaining = self._delay_seconds - (now - self._last_call)
            if remaining > 0:
                await anyio.sleep(remaining)
        self._last_call = time.monotonic()
