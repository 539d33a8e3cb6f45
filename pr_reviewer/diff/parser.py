"""
Diff 解析（确定性，不依赖 LLM）。

- 逐行走一遍 `File: <path>` 分段拼接的 diff，跟踪新版本行号
- 行级评论校验：哪些行号能挂评论（新增行 + 上下文行）
- 汇总统计：增删行数、粗略复杂度、新增行上的静态检查
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator

from pr_reviewer.diff.chunker import extract_files
from pr_reviewer.review.models import DiffStats
from pr_reviewer.review.models import StaticIssue

logger = logging.getLogger(__name__)

MAX_LINE_LENGTH = 120

_BRANCH_RE = re.compile(r"\b(?:if|for|while)\b")
_LOGICAL_OPERATOR_RE = re.compile(r"&&|\|\|")


def _parse_new_start(header: str) -> int:
    # @@ -a,b +c,d @@
    try:
        new_part = header.split(" ")[2]
        if not new_part.startswith("+"):
            raise ValueError(new_part)
        return int(new_part.split(",")[0].lstrip("+"))
    except Exception as exc:
        raise ValueError(f"Invalid diff hunk header: {header}") from exc


def _walk_diff(diff: str, strict: bool) -> Iterator[tuple[str | None, str, int, str]]:
    """
    逐行产出 `(file, kind, new_line, text)`，kind 为 "+" / "-" / " "。

    - file：最近一个文件标记里的路径；之前没有标记时为 None
    - new_line：该行在新版本中的行号；删除行、行号未知时为 0
    - strict=True 时非法 hunk header 抛 ValueError，否则记 warning 并放弃该 hunk 的行号
    """
    current_file: str | None = None
    new_line: int | None = None
    for line in diff.splitlines():
        if line.startswith("File:") or line.startswith("diff --git"):
            # 空的文件标记也会结束上一个文件
            files = extract_files(line)
            current_file = files[0] if files else None
            new_line = None
            continue
        if line.startswith("@@"):
            try:
                new_line = _parse_new_start(line)
            except ValueError:
                if strict:
                    raise
                logger.warning(f"Unparseable hunk header in {current_file}, line numbers unknown: {line[:80]}")
                new_line = None
            continue
        if line.startswith("+") and not line.startswith("+++"):
            yield current_file, "+", new_line or 0, line[1:]
            if new_line is not None:
                new_line += 1
            continue
        if line.startswith("-") and not line.startswith("---"):
            yield current_file, "-", 0, line[1:]
            continue
        if line.startswith(" "):
            yield current_file, " ", new_line or 0, line[1:]
            if new_line is not None:
                new_line += 1


def check_added_line(file: str, line: int, text: str) -> list[StaticIssue]:
    """新增行的静态检查：console.log、TODO/FIXME 注释、超长行。"""
    issues: list[StaticIssue] = []
    if "console.log" in text:
        issues.append(
            StaticIssue(file=file, line=line, severity="warning", message="console.log statement found", rule="no-console")
        )
    if "TODO:" in text or "FIXME:" in text:
        issues.append(
            StaticIssue(file=file, line=line, severity="info", message="TODO or FIXME comment found", rule="todo-comments")
        )
    if len(text) > MAX_LINE_LENGTH:
        issues.append(
            StaticIssue(
                file=file,
                line=line,
                severity="warning",
                message=f"Line exceeds {MAX_LINE_LENGTH} characters",
                rule="max-line-length",
            )
        )
    return issues


def is_branching_line(text: str) -> bool:
    return bool(_BRANCH_RE.search(text) or _LOGICAL_OPERATOR_RE.search(text))


def count_changes(diff: str) -> DiffStats:
    """
    汇总统计；`+++`/`---` 是文件头，不计入。

    不会因为 hunk header 非法而失败（汇总评论总要能发出去）。
    """
    additions = 0
    deletions = 0
    complexity = 0
    issues: list[StaticIssue] = []
    for file, kind, new_line, text in _walk_diff(diff, strict=False):
        if kind == "-":
            deletions += 1
            continue
        if kind != "+":
            continue
        additions += 1
        if is_branching_line(text):
            complexity += 1
        issues.extend(check_added_line(file=file or "", line=new_line, text=text))
    return DiffStats(
        files=extract_files(diff),
        additions=additions,
        deletions=deletions,
        complexity=complexity,
        issues=issues,
    )


def commentable_lines_by_file(diff: str) -> dict[str, set[int]]:
    """
    按文件收集新版本中可以挂行级评论的行号（新增行 + 上下文行）。

    hunk header 非法时抛 ValueError。
    """
    result: dict[str, set[int]] = {}
    for file, kind, new_line, _ in _walk_diff(diff, strict=True):
        if file is None or kind == "-" or new_line == 0:
            continue
        result.setdefault(file, set()).add(new_line)
    return result
