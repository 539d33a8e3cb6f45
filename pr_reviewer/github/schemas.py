"""
GitHub Webhook / API response schemas（Pydantic）。

说明：
- 字段只覆盖当前闭环需要的子集（PR webhook + files + review comments）。
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel


class GitHubOwner(BaseModel):
    login: str


class GitHubRepository(BaseModel):
    name: str
    owner: GitHubOwner
    full_name: str


class GitHubPullRequestHead(BaseModel):
    sha: str
    ref: str


class GitHubPullRequestBase(BaseModel):
    ref: str


class GitHubPullRequest(BaseModel):
    number: int
    head: GitHubPullRequestHead
    base: GitHubPullRequestBase


class GitHubPullRequestWebhookEvent(BaseModel):
    """
    GitHub `pull_request` webhook event（最小结构）。

    action: GitHub 会发很多种（assigned/labeled/converted_to_draft ...），这里不做枚举，由路由层过滤
    """

    action: str
    pull_request: GitHubPullRequest
    repository: GitHubRepository


class GitHubPullRequestFile(BaseModel):
    """
    PR 文件列表 item（GET /pulls/{pull_number}/files）。

    patch 可能缺失（例如大文件/二进制/被截断），拼 diff 时直接跳过。
    """

    filename: str
    status: Literal["added", "modified", "removed", "renamed", "changed", "copied", "unchanged"]
    patch: str | None = None


class GitHubReviewComment(BaseModel):
    """PR 行级评论（GET /pulls/{pull_number}/comments）；outdated 评论的 line 为 null。"""

    path: str
    line: int | None = None
    body: str
