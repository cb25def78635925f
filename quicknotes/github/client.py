import asyncio
from typing import Any, Dict, List, Optional
import requests
from quicknotes.config import settings
from quicknotes.github.models import RepositoryRef
from quicknotes.utils.logger import get_logger
from quicknotes.utils.rate_limiter import RateLimiter
from quicknotes.utils.retry import retry_with_backoff

logger = get_logger(__name__)

# プロセス全体で共有するレート制限
_rate_limiter = RateLimiter(
    max_requests=settings.GITHUB_API_MAX_REQUESTS,
    window_seconds=settings.GITHUB_API_WINDOW_SECONDS,
)


class GitHubAuthError(Exception):
    """GitHub認証エラー"""

    pass


class GitHubAPIError(Exception):
    """GitHub APIエラー（401以外の非2xx応答）"""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"GitHub API error {status_code}: {message}")
        self.status_code = status_code
        self.message = message


class GitHubClient:
    """GitHub REST APIクライアント"""

    def __init__(self, token: str, api_url: Optional[str] = None):
        self.api_url = api_url or settings.GITHUB_API_URL
        self.headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "QuickNotes/1.0",
        }
        self.rate_limiter = _rate_limiter

    async def _request(
        self,
        method: str,
        path: str,
        params: Dict[str, Any] = None,
        payload: Dict[str, Any] = None,
    ) -> Any:
        """REST APIを呼び出してJSONを返す

        Args:
            method: HTTPメソッド
            path: APIパス（例: /user）
            params: クエリパラメータ
            payload: JSONボディ

        Returns:
            Any: レスポンスJSON

        Raises:
            GitHubAuthError: 401応答
            GitHubAPIError: その他の非2xx応答
            requests.RequestException: 通信エラー
        """
        await self.rate_limiter.acquire()

        # requestsは同期ライブラリなので、非同期コンテキストで実行
        loop = asyncio.get_running_loop()
        response = await loop.run_in_executor(
            None,
            lambda: requests.request(
                method,
                f"{self.api_url}{path}",
                params=params,
                json=payload,
                headers=self.headers,
                timeout=settings.GITHUB_REQUEST_TIMEOUT,
            ),
        )

        if response.status_code == 401:
            raise GitHubAuthError("Bad credentials")
        if not response.ok:
            try:
                message = response.json().get("message", response.text)
            except ValueError:
                message = response.text
            raise GitHubAPIError(response.status_code, message)

        return response.json()

    @retry_with_backoff(max_retries=3)
    async def get_authenticated_user(self) -> Dict[str, Any]:
        """認証済みユーザー情報を取得"""
        return await self._request("GET", "/user")

    @retry_with_backoff(max_retries=3)
    async def list_labels(
        self, repo: RepositoryRef, per_page: int = None
    ) -> List[Dict[str, Any]]:
        """リポジトリのラベル一覧を取得（1ページ分）"""
        return await self._request(
            "GET",
            f"/repos/{repo.owner}/{repo.name}/labels",
            params={"per_page": per_page or settings.LABELS_PER_PAGE},
        )

    @retry_with_backoff(max_retries=3)
    async def search_issues(
        self, query: str, per_page: int = None
    ) -> List[Dict[str, Any]]:
        """Issue/PRを更新日時の降順で検索

        Returns:
            List[Dict[str, Any]]: 検索結果のitems（PRを含む）
        """
        data = await self._request(
            "GET",
            "/search/issues",
            params={
                "q": query,
                "sort": "updated",
                "order": "desc",
                "per_page": per_page or settings.SEARCH_RESULT_LIMIT,
            },
        )
        return data.get("items", [])

    async def create_issue(
        self, repo: RepositoryRef, title: str, body: str, labels: List[str] = None
    ) -> Dict[str, Any]:
        """Issueを作成"""
        return await self._request(
            "POST",
            f"/repos/{repo.owner}/{repo.name}/issues",
            payload={"title": title, "body": body, "labels": labels or []},
        )

    async def create_comment(
        self, repo: RepositoryRef, issue_number: int, body: str
    ) -> Dict[str, Any]:
        """Issueにコメントを追加"""
        return await self._request(
            "POST",
            f"/repos/{repo.owner}/{repo.name}/issues/{issue_number}/comments",
            payload={"body": body},
        )
