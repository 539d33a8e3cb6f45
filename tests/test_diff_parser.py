from __future__ import annotations

import pytest

from pr_reviewer.diff.parser import check_added_line
from pr_reviewer.diff.parser import commentable_lines_by_file
from pr_reviewer.diff.parser import count_changes


def test_count_changes_ignores_file_headers() -> None:
    diff = "\n".join(
        [
            "File: src/app.py",
            "--- a/src/app.py",
            "+++ b/src/app.py",
            "@@ -1,2 +1,3 @@",
            " keep",
            "-old",
            "+new",
            "+extra",
        ]
    )
    stats = count_changes(diff)
    assert stats.additions == 2
    assert stats.deletions == 1
    assert stats.files == ["src/app.py"]
    assert stats.complexity == 0
    assert stats.issues == []


def test_count_changes_flags_added_lines_with_new_side_line_numbers() -> None:
    diff = "\n".join(
        [
            "File: web/app.js",
            "@@ -10,2 +20,4 @@",
            " const a = 1;",
            "-console.log('removed lines are not checked');",
            "+console.log(a);",
            "+// TODO: drop the fallback",
            "+const b = " + "x" * 120 + ";",
            " const c = 3;",
        ]
    )
    stats = count_changes(diff)

    assert [(i.rule, i.line, i.severity) for i in stats.issues] == [
        ("no-console", 21, "warning"),
        ("todo-comments", 22, "info"),
        ("max-line-length", 23, "warning"),
    ]
    assert {i.file for i in stats.issues} == {"web/app.js"}


def test_count_changes_complexity_counts_branching_added_lines_once() -> None:
    diff = "\n".join(
        [
            "File: a.py",
            "@@ -1,1 +1,5 @@",
            "+if ready and not done:",
            "+    while x && y || z:",
            "+for item in items: pass",
            "+difference = 1",
            "-if removed:",
        ]
    )
    assert count_changes(diff).complexity == 3


def test_count_changes_tolerates_bad_hunk_header() -> None:
    stats = count_changes("File: a.js\n@@ nonsense\n+console.log(1)")
    assert stats.additions == 1
    assert stats.issues[0].line == 0


def test_check_added_line_clean_line_has_no_issues() -> None:
    assert check_added_line(file="a.py", line=3, text="x = compute()") == []


def test_commentable_lines_by_file_includes_added_and_context_lines() -> None:
    diff = "\n".join(
        [
            "File: a.py",
            "@@ -10,3 +10,3 @@",
            " ctx",
            "-gone",
            "+added",
            " tail",
            "",
            "File: b.py",
            "@@ -1,0 +1,1 @@",
            "+only",
        ]
    )
    assert commentable_lines_by_file(diff) == {"a.py": {10, 11, 12}, "b.py": {1}}


def test_commentable_lines_by_file_empty_marker_ends_previous_file() -> None:
    diff = "\n".join(["File: a.py", "@@ -1 +1 @@", "+x", "File:", "@@ -5 +5 @@", "+y"])
    assert commentable_lines_by_file(diff) == {"a.py": {1}}


def test_commentable_lines_by_file_rejects_bad_hunk_header() -> None:
    with pytest.raises(ValueError):
        commentable_lines_by_file("File: a.py\n@@ nonsense\n+x")
