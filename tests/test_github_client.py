from __future__ import annotations

import json

import httpx
import pytest

from pr_reviewer.diff.chunker import build_review_context
from pr_reviewer.errors import PlatformError
from pr_reviewer.github.client import GitHubClient
from pr_reviewer.github.client import build_pull_request_diff
from pr_reviewer.github.platform import GitHubReviewPlatform
from pr_reviewer.github.schemas import GitHubPullRequestFile
from pr_reviewer.review.models import LineComment


def _file(name: str, patch: str | None = "@@ -1 +1 @@\n+x") -> dict[str, object]:
    return {"filename": name, "status": "modified", "patch": patch}


def test_build_pull_request_diff_skips_files_without_patch() -> None:
    files = [
        GitHubPullRequestFile.model_validate(_file("a.py", "@@ -1 +1 @@\n+a")),
        GitHubPullRequestFile.model_validate(_file("logo.png", None)),
        GitHubPullRequestFile.model_validate(_file("b.py", "@@ -1 +1 @@\n+b")),
    ]
    assert build_pull_request_diff(files) == "File: a.py\n@@ -1 +1 @@\n+a\n\nFile: b.py\n@@ -1 +1 @@\n+b"


@pytest.mark.anyio
async def test_list_pull_request_files_follows_pagination() -> None:
    pages: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        page = request.url.params["page"]
        pages.append(page)
        assert request.headers["authorization"] == "Bearer t"
        if page == "1":
            return httpx.Response(200, json=[_file(f"f{i}.py") for i in range(100)])
        return httpx.Response(200, json=[_file("last.py")])

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
        client = GitHubClient(api_base_url="https://api.github.com/", token="t", http_client=http_client)
        files = await client.list_pull_request_files(owner="octo", repo="repo", pull_number=1)

    assert pages == ["1", "2"]
    assert len(files) == 101
    assert files[-1].filename == "last.py"


@pytest.mark.anyio
async def test_api_error_raises_platform_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"message": "Not Found"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
        client = GitHubClient(api_base_url="https://api.github.com", token="t", http_client=http_client)
        with pytest.raises(PlatformError) as exc_info:
            await client.list_review_comments(owner="octo", repo="repo", pull_number=1)

    assert exc_info.value.status_code == 404


@pytest.mark.anyio
async def test_platform_binds_pull_request_and_posts_comments() -> None:
    posted: list[tuple[str, dict[str, object]]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if request.method == "GET" and path.endswith("/pulls/7/files"):
            return httpx.Response(200, json=[_file("a.py"), _file("b.min.js")])
        if request.method == "GET" and path.endswith("/pulls/7/comments"):
            return httpx.Response(
                200,
                json=[
                    {"path": "a.py", "line": 1, "body": "old"},
                    {"path": "a.py", "line": None, "body": "outdated"},
                ],
            )
        posted.append((path, json.loads(request.content)))
        return httpx.Response(201, json={})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
        client = GitHubClient(api_base_url="https://api.github.com", token="t", http_client=http_client)
        platform = GitHubReviewPlatform(client=client, owner="octo", repo="repo", pull_number=7, head_sha="abc123")
        context = build_review_context(pr_number=7, repository="octo/repo", branch="main", files=["a.py"])

        assert await platform.list_files() == ["a.py", "b.min.js"]
        assert await platform.get_diff(context) == "File: a.py\n@@ -1 +1 @@\n+x"
        existing = await platform.list_existing_comments(context)
        await platform.post_line_comment(LineComment(file="a.py", line=1, body="new"))
        await platform.post_summary("summary")

    assert [(c.file, c.line, c.body) for c in existing] == [("a.py", 1, "old")]
    assert posted == [
        (
            "/repos/octo/repo/pulls/7/comments",
            {"commit_id": "abc123", "path": "a.py", "line": 1, "side": "RIGHT", "body": "new"},
        ),
        ("/repos/octo/repo/issues/7/comments", {"body": "summary"}),
    ]
