"""
Review Pipeline（核心流程编排）。

关键思想：
- **流程由工程代码控制**：明确的 5 阶段 pipeline
- **LLM 只负责生成结构化输出**：每个 chunk 一次调用，由 orchestrator 选择后端

最小闭环：
list files -> filter -> build context -> get diff -> chunk -> analyze (per chunk)
-> aggregate -> dedupe -> post line comments + summary
"""

from __future__ import annotations

import logging
from typing import Protocol

from pydantic import BaseModel, Field

from pr_reviewer.config import ReviewSettings
from pr_reviewer.diff.chunker import build_review_context
from pr_reviewer.diff.chunker import chunk_diff
from pr_reviewer.diff.chunker import filter_files
from pr_reviewer.diff.parser import commentable_lines_by_file
from pr_reviewer.diff.parser import count_changes
from pr_reviewer.errors import BackendsExhaustedError
from pr_reviewer.review.aggregator import aggregate_findings
from pr_reviewer.review.aggregator import build_line_comments
from pr_reviewer.review.aggregator import deduplicate
from pr_reviewer.review.formatter import format_no_changes_summary
from pr_reviewer.review.formatter import format_summary
from pr_reviewer.review.models import ExistingComment
from pr_reviewer.review.models import Finding
from pr_reviewer.review.models import LineComment
from pr_reviewer.review.models import ReviewContext
from pr_reviewer.review.models import ReviewResult
from pr_reviewer.review.orchestrator import BackendOrchestrator

logger = logging.getLogger(__name__)


class ReviewPlatform(Protocol):
    """代码托管平台协作方（GitHub 等）；这里抛出的错误原样交给调用方。"""

    async def list_files(self) -> list[str]: ...

    async def get_diff(self, context: ReviewContext) -> str: ...

    async def list_existing_comments(self, context: ReviewContext) -> list[ExistingComment]: ...

    async def post_summary(self, body: str) -> None: ...

    async def post_line_comment(self, comment: LineComment) -> None: ...


class ReviewOutcome(BaseModel):
    """一次 review 的结果摘要（便于日志/测试断言）。"""

    chunks: int = 0
    failed_chunks: int = 0
    findings: list[Finding] = Field(default_factory=list)
    posted: list[LineComment] = Field(default_factory=list)
    skipped_duplicates: int = 0
    summary: str = ""


def _split_anchorable(findings: list[Finding], diff: str) -> tuple[list[Finding], list[Finding]]:
    """
    把 finding 分成“可以挂行级评论”和“只能放进汇总”两类。

    行号不在 diff 的新版本行里时，GitHub 会拒绝行级评论，所以放进汇总。
    hunk header 解析失败时不做行号校验。
    """
    try:
        commentable = commentable_lines_by_file(diff)
    except ValueError as exc:
        logger.warning(f"Could not map diff lines, skipping line validation: {exc}")
        return [f for f in findings if f.line >= 1], [f for f in findings if f.line == 0]

    anchorable: list[Finding] = []
    summary_only: list[Finding] = []
    for f in findings:
        if f.line >= 1 and f.line in commentable.get(f.file, set()):
            anchorable.append(f)
        else:
            summary_only.append(f)
    return anchorable, summary_only


async def run_review(
    platform: ReviewPlatform,
    orchestrator: BackendOrchestrator,
    settings: ReviewSettings,
    pr_number: int,
    repository: str,
    branch: str,
) -> ReviewOutcome:
    """
    跑一次完整 review，并把结果写回平台。

    - Step 1: Collect Context（非 AI）：文件列表 -> skip pattern 过滤 -> context -> diff
    - Step 2: Chunk（非 AI）：空 diff 直接发 "no changes"，不调用任何后端
    - Step 3: Analyze：逐 chunk 串行调用 orchestrator；某个 chunk 全部后端失败只记 warning
    - Step 4: Aggregate：合并 + 路径白名单过滤 + 区分能否挂行
    - Step 5: Publish：按已有评论去重后发行级评论，最后发汇总
    """
    all_files = await platform.list_files()
    files = filter_files(all_files, settings.skip_patterns)
    context = build_review_context(pr_number=pr_number, repository=repository, branch=branch, files=files)
    logger.info(f"Reviewing {repository}#{pr_number}: {len(files)}/{len(all_files)} file(s) after skip patterns")

    diff = await platform.get_diff(context)
    chunks = chunk_diff(diff, settings.max_chunk_size)
    if not chunks:
        logger.info(f"No changes to review for {repository}#{pr_number}")
        summary = format_no_changes_summary()
        await platform.post_summary(summary)
        return ReviewOutcome(summary=summary)

    results: list[ReviewResult | None] = []
    failed_chunks = 0
    for index, chunk in enumerate(chunks, start=1):
        # 逐 chunk 串行调用：尊重后端限流，顺序即输出顺序
        try:
            results.append(await orchestrator.analyze(chunk.content, context))
        except BackendsExhaustedError as exc:
            failed_chunks += 1
            results.append(None)
            cause = type(exc.__cause__).__name__
            logger.warning(f"Chunk {index}/{len(chunks)} skipped, all backends failed: {cause}")

    findings = aggregate_findings(results)
    # 限制：finding 的 path 必须属于本次 review 的文件，避免模型“胡写路径”
    allowed_paths = set(context.files)
    findings = [f for f in findings if f.file in allowed_paths]

    anchorable, summary_only = _split_anchorable(findings, diff)
    comments = build_line_comments(anchorable)
    existing = await platform.list_existing_comments(context)
    to_post = deduplicate(comments, existing)
    for comment in to_post:
        await platform.post_line_comment(comment)

    summary = format_summary(
        findings,
        stats=count_changes(diff),
        usage=orchestrator.get_usage_stats(),
        failed_chunks=failed_chunks,
        summary_only=summary_only,
    )
    await platform.post_summary(summary)

    logger.info(
        f"Review done for {repository}#{pr_number}: chunks={len(chunks)}, failed={failed_chunks}, "
        f"findings={len(findings)}, posted={len(to_post)}, duplicates={len(comments) - len(to_post)}"
    )
    return ReviewOutcome(
        chunks=len(chunks),
        failed_chunks=failed_chunks,
        findings=findings,
        posted=to_post,
        skipped_duplicates=len(comments) - len(to_post),
        summary=summary,
    )
