"""
FastAPI 服务入口。

这里做三件事：
- 加载配置（严格校验环境变量）并初始化日志
- 组装外部依赖（HTTP Client / AI 后端 / orchestrator / GitHub Webhook handler）
- 装配路由（health + github webhook）

注意：
- 业务流程不写在这里（由 `review/pipeline.py` 负责）
- `httpx.AsyncClient` 会被复用（避免每个请求新建连接）
"""

from __future__ import annotations

import logging
import os

import httpx
from fastapi import FastAPI

from pr_reviewer.backends.factory import build_backends
from pr_reviewer.config import load_config_from_env
from pr_reviewer.github.webhook import build_github_webhook_handler
from pr_reviewer.github.webhook import build_github_webhook_router
from pr_reviewer.review.orchestrator import build_review_orchestrator


def build_app() -> FastAPI:
    """创建并返回 FastAPI app（便于测试/复用）。"""

    # 1) 配置：缺失会直接抛错，启动失败（这是期望行为）
    config = load_config_from_env(os.environ)
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # 2) 可复用的 HTTP client：供 GitHub API 与 OpenAI SDK 使用
    http_client = httpx.AsyncClient(timeout=httpx.Timeout(30.0))

    # 3) AI 后端：空 key 池在这里就会抛 ConfigurationError
    backends = build_backends(config.providers, http_client=http_client, focus=config.review.focus)
    orchestrator = build_review_orchestrator(
        backends=backends,
        timeout_seconds=config.review.backend_timeout_seconds,
        fail_fast=config.review.fail_fast,
        min_call_interval_ms=config.review.min_call_interval_ms,
    )

    app = FastAPI(title="AI PR Review", version="0.1.0")

    @app.get("/health")
    async def health() -> dict[str, str]:
        """健康检查：用于 k8s / LB 探活。"""
        return {"status": "ok"}

    @app.get("/health/backends")
    async def backends_health() -> dict[str, object]:
        """逐个后端探活 + 模型信息 + 累计调用统计。"""
        return {
            "healthy": await orchestrator.check_health(),
            "models": orchestrator.describe_backends(),
            "usage": orchestrator.get_usage_stats(),
        }

    github_handler = build_github_webhook_handler(
        config=config.github,
        settings=config.review,
        http_client=http_client,
        orchestrator=orchestrator,
    )
    app.include_router(build_github_webhook_router(config=config.github, handler=github_handler))
    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(build_app(), host="0.0.0.0", port=int(os.environ.get("PORT", "8000")))
