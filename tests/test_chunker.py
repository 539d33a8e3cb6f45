from __future__ import annotations

import pytest
from pydantic import ValidationError

from pr_reviewer.diff.chunker import build_review_context
from pr_reviewer.diff.chunker import chunk_diff
from pr_reviewer.diff.chunker import extract_files
from pr_reviewer.diff.chunker import filter_files
from pr_reviewer.errors import ReviewValidationError


def _file_section(path: str, hunks: int, lines_per_hunk: int) -> list[str]:
    lines = [f"File: {path}"]
    for h in range(hunks):
        start = h * 20 + 1
        lines.append(f"@@ -{start},{lines_per_hunk} +{start},{lines_per_hunk} @@")
        for i in range(lines_per_hunk):
            prefix = "+" if i % 2 == 0 else "-"
            lines.append(f"{prefix}value_{h}_{i} = compute({i})")
    return lines


def _multi_file_diff() -> str:
    lines: list[str] = []
    for name in ("src/a.py", "src/b.py", "src/c.py", "src/d.py"):
        lines.extend(_file_section(name, hunks=2, lines_per_hunk=4))
    return "\n".join(lines)


def _non_blank_lines(text: str) -> list[str]:
    return [line for line in text.split("\n") if line.strip()]


def test_chunk_diff_empty_input_returns_no_chunks() -> None:
    assert chunk_diff("", max_size=100) == []
    assert chunk_diff("   \n\t\n", max_size=100) == []


def test_chunk_diff_small_diff_is_single_chunk() -> None:
    diff = "File: a.py\n@@ -1,1 +1,2 @@\n line1\n+line2\n"
    chunks = chunk_diff(diff, max_size=2000)
    assert len(chunks) == 1
    assert chunks[0].content == diff.rstrip()
    assert chunks[0].size == len(chunks[0].content)
    assert chunks[0].files == ["a.py"]


def test_chunk_diff_splits_large_diff_at_boundaries() -> None:
    diff = _multi_file_diff()
    chunks = chunk_diff(diff, max_size=200)

    assert len(chunks) > 1
    for chunk in chunks[1:]:
        first_line = chunk.content.split("\n")[0]
        assert first_line.startswith("File:") or first_line.startswith("@@")


def test_chunk_diff_preserves_every_line_in_order() -> None:
    diff = _multi_file_diff()
    chunks = chunk_diff(diff, max_size=200)
    rebuilt = "\n".join(c.content for c in chunks)
    assert _non_blank_lines(rebuilt) == _non_blank_lines(diff)


def test_chunk_diff_size_matches_trimmed_content() -> None:
    chunks = chunk_diff(_multi_file_diff() + "\n\n\n", max_size=150)
    for chunk in chunks:
        assert chunk.size == len(chunk.content)
        assert chunk.content == chunk.content.rstrip()


def test_chunk_diff_never_splits_inside_a_hunk() -> None:
    lines = ["File: big.py", "@@ -1,40 +1,40 @@"] + [f"+line number {i}" for i in range(40)]
    diff = "\n".join(lines)
    chunks = chunk_diff(diff, max_size=100)
    assert len(chunks) == 1
    assert chunks[0].size > 100


def test_chunk_diff_tracks_files_per_chunk() -> None:
    chunks = chunk_diff(_multi_file_diff(), max_size=200)
    seen: list[str] = []
    for chunk in chunks:
        seen.extend(f for f in chunk.files if f not in seen)
    assert seen == ["src/a.py", "src/b.py", "src/c.py", "src/d.py"]


def test_chunk_diff_malformed_input_does_not_raise() -> None:
    diff = "\n".join(f"garbage line {i} without any diff structure" for i in range(50))
    chunks = chunk_diff(diff, max_size=300)
    assert chunks
    assert _non_blank_lines("\n".join(c.content for c in chunks)) == _non_blank_lines(diff)


def test_chunk_diff_rejects_non_positive_max_size() -> None:
    with pytest.raises(ReviewValidationError):
        chunk_diff("File: a.py", max_size=0)


def test_filter_files_skips_matching_patterns() -> None:
    files = ["app.js", "app.min.js", "package-lock.json", "README.md"]
    assert filter_files(files, ["*.min.js", "package-lock.json"]) == ["app.js", "README.md"]


def test_filter_files_without_patterns_returns_copy() -> None:
    files = ["a.py", "b.py"]
    result = filter_files(files, [])
    assert result == files
    assert result is not files


def test_filter_files_invalid_pattern_fails_open() -> None:
    assert filter_files(["a.py", "b.txt"], ["["]) == ["a.py", "b.txt"]
    assert filter_files(["a.py", "b.txt"], ["[", "*.txt"]) == ["a.py"]


def test_filter_files_question_mark_matches_single_char() -> None:
    assert filter_files(["v1.lock", "v10.lock", "main.py"], ["v?.lock"]) == ["v10.lock", "main.py"]


def test_build_review_context_trims_and_copies() -> None:
    files = ["a.py"]
    context = build_review_context(pr_number=7, repository="  owner/repo ", branch=" main\n", files=files)
    files.append("b.py")

    assert context.pr_number == 7
    assert context.repository == "owner/repo"
    assert context.branch == "main"
    assert context.files == ("a.py",)


def test_build_review_context_is_immutable() -> None:
    context = build_review_context(pr_number=1, repository="o/r", branch="main", files=[])
    with pytest.raises(ValidationError):
        context.branch = "other"  # type: ignore[misc]


@pytest.mark.parametrize(
    ("pr_number", "repository", "branch", "files"),
    [
        (0, "o/r", "main", []),
        (-3, "o/r", "main", []),
        (True, "o/r", "main", []),
        ("12", "o/r", "main", []),
        (1, "   ", "main", []),
        (1, None, "main", []),
        (1, "o/r", "", []),
        (1, "o/r", "main", "a.py"),
        (1, "o/r", "main", None),
    ],
)
def test_build_review_context_rejects_invalid_input(pr_number, repository, branch, files) -> None:
    with pytest.raises(ReviewValidationError):
        build_review_context(pr_number=pr_number, repository=repository, branch=branch, files=files)


def test_extract_files_in_order_of_appearance() -> None:
    content = "File: src/a.py\n@@ -1 +1 @@\n+x\nFile: src/b.py\n@@ -1 +1 @@\n-y"
    assert extract_files(content) == ["src/a.py", "src/b.py"]


def test_extract_files_understands_git_headers() -> None:
    content = "diff --git a/old.py b/new.py\n--- a/old.py\n+++ b/new.py\n@@ -1 +1 @@\n+x"
    assert extract_files(content) == ["new.py"]


def test_extract_files_without_markers_is_empty() -> None:
    assert extract_files("+just an added line") == []
    assert extract_files("") == []


def test_extract_files_empty_marker_does_not_consume_next_line() -> None:
    assert extract_files("File:\n@@ -1 +1 @@\n+x") == []
    assert extract_files("File:   \nFile: b.py\n+x") == ["b.py"]
