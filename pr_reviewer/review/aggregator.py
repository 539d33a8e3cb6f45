"""
结果聚合与去重。

去重策略（保守）：同文件、同一行，且已有评论正文包含新评论正文的前 50 个字符，
才认为是重复。宁可偶尔重复发一条，也不要丢掉不同的反馈。
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from pr_reviewer.review.formatter import format_comment
from pr_reviewer.review.models import ExistingComment
from pr_reviewer.review.models import Finding
from pr_reviewer.review.models import LineComment
from pr_reviewer.review.models import ReviewResult

DUPLICATE_PREFIX_CHARS = 50


def aggregate_findings(results: Iterable[ReviewResult | None]) -> list[Finding]:
    """按 chunk 处理顺序合并所有成功结果的 suggestions；None（该 chunk 全部后端失败）跳过。"""
    findings: list[Finding] = []
    for result in results:
        if result is None:
            continue
        findings.extend(result.suggestions)
    return findings


def build_line_comments(findings: Sequence[Finding]) -> list[LineComment]:
    """只有 line >= 1 的 finding 才能挂成行级评论。"""
    return [LineComment(file=f.file, line=f.line, body=format_comment(f)) for f in findings if f.line >= 1]


def is_duplicate(comment: LineComment, existing: Iterable[ExistingComment]) -> bool:
    prefix = comment.body[:DUPLICATE_PREFIX_CHARS]
    return any(e.file == comment.file and e.line == comment.line and prefix in e.body for e in existing)


def deduplicate(comments: Sequence[LineComment], existing: Sequence[ExistingComment]) -> list[LineComment]:
    """
    过滤掉已经存在的评论。

    同一批次内的重复也会被过滤（先发出去的那条会变成“已存在”）。
    """
    seen: list[ExistingComment] = list(existing)
    kept: list[LineComment] = []
    for comment in comments:
        if is_duplicate(comment, seen):
            continue
        kept.append(comment)
        seen.append(ExistingComment(file=comment.file, line=comment.line, body=comment.body))
    return kept
