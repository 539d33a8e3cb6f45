"""
GitHub -> ReviewPlatform adapter。

职责：
- 把一次 PR 的 owner/repo/number/head sha 绑定到 `GitHubClient`
- 将 GitHub PR files/comments 转为平台无关的 diff 文本与 `ExistingComment`
"""

from __future__ import annotations

from pr_reviewer.github.client import GitHubClient
from pr_reviewer.github.client import build_pull_request_diff
from pr_reviewer.github.schemas import GitHubPullRequestFile
from pr_reviewer.review.models import ExistingComment
from pr_reviewer.review.models import LineComment
from pr_reviewer.review.models import ReviewContext


class GitHubReviewPlatform:
    def __init__(self, client: GitHubClient, owner: str, repo: str, pull_number: int, head_sha: str) -> None:
        self._client = client
        self._owner = owner
        self._repo = repo
        self._pull_number = pull_number
        self._head_sha = head_sha
        self._files: list[GitHubPullRequestFile] | None = None

    async def _pull_request_files(self) -> list[GitHubPullRequestFile]:
        # 同一次 review 里 list_files / get_diff 共用一次拉取结果
        if self._files is None:
            self._files = await self._client.list_pull_request_files(
                owner=self._owner, repo=self._repo, pull_number=self._pull_number
            )
        return self._files

    async def list_files(self) -> list[str]:
        return [f.filename for f in await self._pull_request_files()]

    async def get_diff(self, context: ReviewContext) -> str:
        """只拼接 context.files 里的文件（已经过 skip pattern 过滤）。"""
        selected = set(context.files)
        files = [f for f in await self._pull_request_files() if f.filename in selected]
        return build_pull_request_diff(files)

    async def list_existing_comments(self, context: ReviewContext) -> list[ExistingComment]:
        comments = await self._client.list_review_comments(
            owner=self._owner, repo=self._repo, pull_number=self._pull_number
        )
        return [ExistingComment(file=c.path, line=c.line, body=c.body) for c in comments if c.line is not None]

    async def post_summary(self, body: str) -> None:
        await self._client.create_issue_comment(
            owner=self._owner, repo=self._repo, pull_number=self._pull_number, body=body
        )

    async def post_line_comment(self, comment: LineComment) -> None:
        await self._client.create_review_comment(
            owner=self._owner,
            repo=self._repo,
            pull_number=self._pull_number,
            commit_id=self._head_sha,
            path=comment.file,
            line=comment.line,
            body=comment.body,
        )
