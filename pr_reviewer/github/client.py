"""
GitHub API 客户端（外部系统连接器）。

约定：
- 这里只做 HTTP 调用 + 错误处理 + schema 校验
- 出错直接抛 `PlatformError`（不要吞），便于定位与告警
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import BaseModel

from pr_reviewer.errors import PlatformError
from pr_reviewer.github.schemas import GitHubPullRequestFile
from pr_reviewer.github.schemas import GitHubReviewComment

logger = logging.getLogger(__name__)


class GitHubClient:
    """最小 GitHub API client（PR files / review comments / issue comment）。"""

    def __init__(self, api_base_url: str, token: str, http_client: httpx.AsyncClient) -> None:
        self._api_base_url = api_base_url.rstrip("/")
        self._token = token
        self._http_client = http_client

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.status_code >= 400:
            raise PlatformError(
                f"GitHub API error {response.status_code}: {response.text}",
                status_code=response.status_code,
            )

    async def _get_paginated(self, url: str, schema: type[BaseModel]) -> list[Any]:
        """GitHub 列表接口有分页；这里拉取全部。"""
        per_page = 100
        page = 1
        all_items: list[Any] = []
        while True:
            try:
                response = await self._http_client.get(
                    url,
                    headers=self._headers(),
                    params={"per_page": per_page, "page": page},
                )
            except httpx.HTTPError as exc:
                raise PlatformError(f"GitHub request failed: {type(exc).__name__}") from exc
            self._raise_for_status(response)
            data = response.json()
            if not isinstance(data, list):
                raise PlatformError(f"Unexpected GitHub response shape for {url}: {data}")
            items = [schema.model_validate(x) for x in data]
            all_items.extend(items)
            if len(items) < per_page:
                break
            page += 1
        return all_items

    async def _post(self, url: str, payload: dict[str, Any]) -> None:
        try:
            response = await self._http_client.post(url, headers=self._headers(), json=payload)
        except httpx.HTTPError as exc:
            raise PlatformError(f"GitHub request failed: {type(exc).__name__}") from exc
        self._raise_for_status(response)

    async def list_pull_request_files(self, owner: str, repo: str, pull_number: int) -> list[GitHubPullRequestFile]:
        """拉取 PR 的变更文件列表（包含每个文件的 patch diff）。"""
        url = f"{self._api_base_url}/repos/{owner}/{repo}/pulls/{pull_number}/files"
        return await self._get_paginated(url, GitHubPullRequestFile)

    async def list_review_comments(self, owner: str, repo: str, pull_number: int) -> list[GitHubReviewComment]:
        """拉取 PR 上已有的行级评论（用于去重）。"""
        url = f"{self._api_base_url}/repos/{owner}/{repo}/pulls/{pull_number}/comments"
        return await self._get_paginated(url, GitHubReviewComment)

    async def create_issue_comment(self, owner: str, repo: str, pull_number: int, body: str) -> None:
        """在 PR 会话区发一条普通评论（汇总）。"""
        url = f"{self._api_base_url}/repos/{owner}/{repo}/issues/{pull_number}/comments"
        await self._post(url, {"body": body})

    async def create_review_comment(
        self,
        owner: str,
        repo: str,
        pull_number: int,
        commit_id: str,
        path: str,
        line: int,
        body: str,
    ) -> None:
        """
        在 head commit 的新版本文件某一行上创建行级评论。

        说明：side=RIGHT 表示新版本（与 finding 的行号语义一致）。
        """
        url = f"{self._api_base_url}/repos/{owner}/{repo}/pulls/{pull_number}/comments"
        payload = {"commit_id": commit_id, "path": path, "line": line, "side": "RIGHT", "body": body}
        logger.info(f"Posting review comment on {path}:{line}")
        await self._post(url, payload)


def build_pull_request_diff(files: list[GitHubPullRequestFile]) -> str:
    """把每个文件的 patch 拼成 `File: <path>` 分段的整段 diff（没有 patch 的文件跳过）。"""
    sections = [f"File: {f.filename}\n{f.patch}" for f in files if f.patch]
    return "\n\n".join(sections)
