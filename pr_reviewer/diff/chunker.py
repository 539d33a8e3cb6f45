"""
Diff 切分 / 文件过滤 / 上下文构建（非 AI，必须确定性）。

切分目标：
- **有界**：每个 chunk 尽量不超过 max_size，控制单次 LLM 调用的输入长度
- **不截断 hunk**：hunk 内的 +/- 行必须连续，否则下游拿到的行号没有意义
- **永不抛错**：格式异常的 diff 最坏情况下整体作为一个 chunk
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence

from pydantic import ValidationError

from pr_reviewer.errors import ReviewValidationError
from pr_reviewer.review.models import Chunk
from pr_reviewer.review.models import ReviewContext

logger = logging.getLogger(__name__)

DEFAULT_MAX_CHUNK_SIZE = 2000

_FILE_MARKER_RE = re.compile(r"^File:[ \t]*(.*)$", re.MULTILINE)
_GIT_HEADER_RE = re.compile(r"^diff --git a/(.+?) b/(.+)$", re.MULTILINE)


def _is_file_marker(line: str) -> bool:
    return line.startswith("File:") or line.startswith("diff --git")


def _is_hunk_header(line: str) -> bool:
    return line.startswith("@@")


def _make_chunk(content: str) -> Chunk:
    trimmed = content.rstrip()
    return Chunk(content=trimmed, files=extract_files(trimmed), size=len(trimmed))


def chunk_diff(diff: str, max_size: int = DEFAULT_MAX_CHUNK_SIZE) -> list[Chunk]:
    """
    将 diff 切成若干有界 chunk。

    边界规则（四个条件必须同时满足才切）：
    - 当前 chunk 已有内容
    - 追加下一行会超过 max_size
    - 当前 chunk 不在 hunk 中间（下一行是新文件/新 hunk 时，当前 hunk 视为已闭合）
    - 下一行开启新文件或新 hunk，或者当前 chunk 已超过 max_size 的一半

    单个超大 hunk 不会被拆开，此时 chunk 允许超过 max_size。
    """
    if max_size <= 0:
        raise ReviewValidationError("max_size must be > 0")
    if not diff or not diff.strip():
        return []

    if len(diff) <= max_size:
        return [_make_chunk(diff)]

    chunks: list[Chunk] = []
    current: list[str] = []
    current_size = 0
    hunk_open = False

    for line in diff.split("\n"):
        line_size = len(line) + 1
        is_new_file = _is_file_marker(line)
        is_new_hunk = _is_hunk_header(line)
        at_boundary = is_new_file or is_new_hunk
        mid_hunk = hunk_open and not at_boundary

        should_split = (
            current_size > 0
            and current_size + line_size > max_size
            and not mid_hunk
            and (at_boundary or current_size > max_size / 2)
        )
        if should_split:
            content = "\n".join(current)
            if content.strip():
                chunks.append(_make_chunk(content))
            current = []
            current_size = 0
            hunk_open = False

        current.append(line)
        current_size += line_size
        if is_new_hunk:
            hunk_open = True
        elif is_new_file:
            hunk_open = False

    content = "\n".join(current)
    if content.strip():
        chunks.append(_make_chunk(content))

    logger.info(f"Split diff of {len(diff)} chars into {len(chunks)} chunk(s) (max_size={max_size})")
    return chunks


def _compile_glob(pattern: str) -> re.Pattern[str] | None:
    """简单 glob：`*` -> 任意字符串，`?` -> 单个字符；其余按正则原样保留。"""
    try:
        return re.compile(pattern.replace("*", ".*").replace("?", "."))
    except re.error as exc:
        logger.warning(f"Invalid skip pattern {pattern!r}: {exc}")
        return None


def filter_files(files: Sequence[str], skip_patterns: Sequence[str]) -> list[str]:
    """
    过滤掉命中任一 skip pattern 的文件。

    - 非法 pattern：记录 warning 并视为不匹配（不会因为配置写错而丢文件）
    - 其他意外错误：原样返回文件列表
    """
    if not skip_patterns:
        return list(files)

    try:
        compiled = [
            regex
            for regex in (_compile_glob(p) for p in skip_patterns if isinstance(p, str) and p)
            if regex is not None
        ]
        kept: list[str] = []
        for path in files:
            if not isinstance(path, str) or not path:
                continue
            if any(regex.search(path) for regex in compiled):
                logger.debug(f"Skipping file by pattern: {path}")
                continue
            kept.append(path)
        return kept
    except Exception as exc:
        logger.warning(f"Error filtering files, returning unfiltered list: {exc}")
        return list(files)


def build_review_context(
    pr_number: int,
    repository: str,
    branch: str,
    files: Sequence[str],
) -> ReviewContext:
    """
    校验并构建 `ReviewContext`。

    - pr_number 必须是正整数（bool 不算）
    - repository/branch 必须是非空字符串（trim 后保存）
    - files 必须是 list/tuple，保存一份拷贝
    """
    if isinstance(pr_number, bool) or not isinstance(pr_number, int) or pr_number <= 0:
        raise ReviewValidationError("Failed to build review context: PR number must be a positive integer")
    if not isinstance(repository, str) or not repository.strip():
        raise ReviewValidationError("Failed to build review context: Repository must be a non-empty string")
    if not isinstance(branch, str) or not branch.strip():
        raise ReviewValidationError("Failed to build review context: Branch must be a non-empty string")
    if not isinstance(files, (list, tuple)):
        raise ReviewValidationError("Failed to build review context: Files must be a list")

    try:
        return ReviewContext(
            pr_number=pr_number,
            repository=repository.strip(),
            branch=branch.strip(),
            files=tuple(files),
        )
    except ValidationError as exc:
        raise ReviewValidationError(f"Failed to build review context: {exc}") from exc


def extract_files(content: str) -> list[str]:
    """按出现顺序提取 chunk 里涉及的文件（`File: <path>` 或 `diff --git a/x b/y`）。"""
    try:
        found: list[tuple[int, str]] = []
        for match in _FILE_MARKER_RE.finditer(content):
            found.append((match.start(), match.group(1).strip()))
        for match in _GIT_HEADER_RE.finditer(content):
            found.append((match.start(), match.group(2).strip()))
        return [path for _, path in sorted(found) if path]
    except Exception as exc:
        logger.warning(f"Failed to extract files from diff: {exc}")
        return []
