from __future__ import annotations

"""
评论渲染（确定性输出，不依赖 LLM）。

- 行级评论：severity 标识 + category 图标 + 问题/位置/建议/示例
- 汇总评论：问题总数、涉及文件数、按 severity 分布、复杂度与静态检查；没有问题时给出正向结论
- 未知的 severity/category 降级为中性标识，不报错
"""

from collections.abc import Mapping, Sequence

from pr_reviewer.review.models import DiffStats
from pr_reviewer.review.models import Finding
from pr_reviewer.review.models import StaticIssue

SEVERITY_INDICATORS: dict[str, str] = {
    "high": "🔴",
    "medium": "🟡",
    "low": "🔵",
}
UNKNOWN_SEVERITY_INDICATOR = "⚪"

# 排序用：high > medium > low > unknown
SEVERITY_RANK: dict[str, int] = {"high": 3, "medium": 2, "low": 1}

CATEGORY_ICONS: dict[str, str] = {
    "security": "🔒",
    "performance": "⚡",
    "style": "🎨",
    "bug": "🐛",
}
OTHER_CATEGORY_ICON = "📝"


def severity_indicator(severity: str) -> str:
    return SEVERITY_INDICATORS.get(severity.lower(), UNKNOWN_SEVERITY_INDICATOR)


def severity_rank(severity: str) -> int:
    return SEVERITY_RANK.get(severity.lower(), 0)


def category_icon(category: str) -> str:
    return CATEGORY_ICONS.get(category.lower(), OTHER_CATEGORY_ICON)


def _capitalize_first(text: str) -> str:
    return text[:1].upper() + text[1:]


def format_comment(finding: Finding) -> str:
    """渲染单条 finding 为 GitHub 行级评论正文（Markdown）。"""
    category = _capitalize_first(finding.category or "other")
    severity = _capitalize_first(finding.severity or "unknown")
    lines: list[str] = []
    lines.append(f"## {severity_indicator(finding.severity)} {category_icon(finding.category)} {category} Issue")
    lines.append("")
    lines.append(f"**Problem**: {finding.message}")
    lines.append(f"**File**: `{finding.file}:{finding.line}`")
    lines.append(f"**Category**: {category}")
    lines.append(f"**Severity**: {severity}")
    lines.append("")
    lines.append(f"**Suggestion**: {finding.suggestion}")

    if finding.codeExample:
        lines.append("")
        lines.append("**Example**:")
        lines.append("```")
        lines.append(finding.codeExample)
        lines.append("```")

    return "\n".join(lines) + "\n"


def _format_static_issues(stats: DiffStats | None) -> list[str]:
    """新增行静态检查结果，按文件分组（保持出现顺序）。"""
    if stats is None or not stats.issues:
        return []
    by_file: dict[str, list[StaticIssue]] = {}
    for issue in stats.issues:
        by_file.setdefault(issue.file, []).append(issue)

    lines = ["", f"### Static checks ({len(stats.issues)})"]
    for file, issues in by_file.items():
        lines.append(f"#### {file or '(unknown file)'}")
        for issue in issues:
            lines.append(f"- {issue.severity}: {issue.message} (line {issue.line}, `{issue.rule}`)")
    return lines


def format_summary(
    findings: Sequence[Finding],
    stats: DiffStats | None = None,
    usage: Mapping[str, int] | None = None,
    failed_chunks: int = 0,
    summary_only: Sequence[Finding] | None = None,
) -> str:
    """
    汇总评论：统计 + 文件级问题（line == 0 的问题无法挂到行上，放在这里）。

    - findings：去重前的全部问题（汇总反映 review 的完整结论）
    - stats：diff 增删统计（可选）
    - usage：各后端累计成功调用次数（可选）
    - failed_chunks：所有后端都失败、结果缺失的 chunk 数
    - summary_only：不能挂成行级评论的问题（默认是 line == 0 的问题）
    """
    lines: list[str] = []
    lines.append("## AI Code Review Summary")
    lines.append("")
    if stats is not None:
        lines.append(f"- **Files changed**: {len(stats.files)} (+{stats.additions} / -{stats.deletions})")
        lines.append(f"- **Complexity**: {stats.complexity}")

    files = {f.file for f in findings}
    lines.append(f"- **Issues found**: {len(findings)}")
    lines.append(f"- **Files with issues**: {len(files)}")

    if failed_chunks:
        lines.append(f"- **Chunks not reviewed** (all backends failed): {failed_chunks}")
    if usage:
        used = ", ".join(f"{name}: {count}" for name, count in usage.items())
        lines.append(f"- **Backends used**: {used}")
    lines.append("")

    if not findings and failed_chunks:
        lines.append("⚠️ Review incomplete: no issues found in the chunks that could be analyzed.")
        return "\n".join(lines + _format_static_issues(stats)) + "\n"
    if not findings:
        lines.append("✅ No issues found! Great job!")
        return "\n".join(lines + _format_static_issues(stats)) + "\n"

    counts: dict[str, int] = {}
    for f in findings:
        counts[f.severity] = counts.get(f.severity, 0) + 1
    lines.append("### Issues by severity")
    for severity in sorted(counts, key=severity_rank, reverse=True):
        lines.append(f"- {severity_indicator(severity)} {_capitalize_first(severity)}: {counts[severity]}")

    if summary_only is None:
        summary_only = [f for f in findings if f.line == 0]
    if summary_only:
        lines.append("")
        lines.append("### Findings without a line comment")
        for f in sorted(summary_only, key=lambda x: severity_rank(x.severity), reverse=True):
            location = f"{f.file}:{f.line}" if f.line else f.file
            lines.append(f"- {severity_indicator(f.severity)} `{location}`: {f.message}")

    return "\n".join(lines + _format_static_issues(stats)) + "\n"


def format_no_changes_summary() -> str:
    return "## AI Code Review Summary\n\nNo changes to review in this pull request.\n"
