import asyncio
from typing import Any, Dict, List, Optional
import requests
from quicknotes.config import settings
from quicknotes.github.models import (
    CreatedComment,
    CreatedIssue,
    GitHubUser,
    Issue,
    Label,
    RepositoryRef,
)
from quicknotes.utils.logger import get_logger

logger = get_logger(__name__)


class GatewayRequestError(Exception):
    """ゲートウェイ呼び出しの失敗（非2xx応答または通信エラー）"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class GatewayUnauthorizedError(GatewayRequestError):
    """ゲートウェイが401を返した"""

    pass


class GatewayClient:
    """Quick Notes ゲートウェイのHTTPクライアント"""

    def __init__(self, base_url: Optional[str] = None, timeout: int = 30):
        self.base_url = (base_url or settings.GATEWAY_URL).rstrip("/")
        self.timeout = timeout

    async def _request(
        self,
        method: str,
        path: str,
        token: str,
        params: Dict[str, Any] = None,
        payload: Dict[str, Any] = None,
    ) -> Dict[str, Any]:
        """ゲートウェイを呼び出してJSONを返す

        Raises:
            GatewayUnauthorizedError: 401応答
            GatewayRequestError: その他の失敗
        """
        loop = asyncio.get_running_loop()
        try:
            response = await loop.run_in_executor(
                None,
                lambda: requests.request(
                    method,
                    f"{self.base_url}{path}",
                    params=params,
                    json=payload,
                    headers={"Authorization": f"Bearer {token}"},
                    timeout=self.timeout,
                ),
            )
        except requests.RequestException as e:
            raise GatewayRequestError(f"Gateway unreachable: {e}") from e

        if response.status_code == 401:
            raise GatewayUnauthorizedError(self._error_message(response), 401)
        if not response.ok:
            raise GatewayRequestError(self._error_message(response), response.status_code)
        try:
            return response.json()
        except ValueError as e:
            raise GatewayRequestError("Gateway returned an invalid response", response.status_code) from e

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        fallback = response.reason or f"HTTP {response.status_code}"
        try:
            data = response.json()
        except ValueError:
            return fallback
        if isinstance(data, dict) and data.get("error"):
            return data["error"]
        return fallback

    @staticmethod
    def _repo_params(repo: RepositoryRef) -> Dict[str, str]:
        return {"owner": repo.owner, "repo": repo.name}

    async def get_user(self, token: str) -> GitHubUser:
        """whoami: トークンの有効性確認"""
        data = await self._request("GET", "/user", token)
        return GitHubUser.model_validate(data)

    async def list_labels(self, token: str, repo: RepositoryRef) -> List[Label]:
        data = await self._request("GET", "/labels", token, params=self._repo_params(repo))
        return [Label.model_validate(label) for label in data.get("labels", [])]

    async def search_issues(self, token: str, query: str, repo: RepositoryRef) -> List[Issue]:
        params = {"q": query, **self._repo_params(repo)}
        data = await self._request("GET", "/search-issues", token, params=params)
        return [Issue.model_validate(issue) for issue in data.get("issues", [])]

    async def create_issue(
        self,
        token: str,
        title: str,
        body: str,
        labels: List[str],
        repo: RepositoryRef,
    ) -> CreatedIssue:
        payload = {
            "title": title,
            "body": body,
            "labels": list(labels),
            "repoOwner": repo.owner,
            "repoName": repo.name,
        }
        data = await self._request("POST", "/create-issue", token, payload=payload)
        return CreatedIssue.model_validate(data)

    async def add_comment(
        self, token: str, issue_number: int, body: str, repo: RepositoryRef
    ) -> CreatedComment:
        payload = {
            "issueNumber": issue_number,
            "body": body,
            "repoOwner": repo.owner,
            "repoName": repo.name,
        }
        data = await self._request("POST", "/add-comment", token, payload=payload)
        return CreatedComment.model_validate(data)
