import time
from functools import wraps
from typing import Any, Callable, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from quicknotes.config import settings
from quicknotes.gateway.errors import GatewayError, InvalidInput, Unauthorized, UpstreamFailure
from quicknotes.github.client import GitHubAuthError, GitHubClient
from quicknotes.github.models import GitHubUser, RepositoryRef
from quicknotes.github.queries import (
    ADDED_FOOTER,
    CREATED_FOOTER,
    append_footer,
    compose_search_query,
    exclude_pull_requests,
)
from quicknotes.utils.logger import StructuredLogger, get_logger

logger = get_logger(__name__)

INVALID_TOKEN_MESSAGE = "Invalid token or failed to authenticate"


class CreateIssueRequest(BaseModel):
    """POST /create-issue のリクエストボディ"""

    model_config = ConfigDict(populate_by_name=True)

    title: str
    body: str
    labels: List[str] = Field(default_factory=list)
    repo_owner: Optional[str] = Field(default=None, alias="repoOwner")
    repo_name: Optional[str] = Field(default=None, alias="repoName")

    @field_validator("title", "body")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v

    @field_validator("labels", mode="before")
    @classmethod
    def default_labels(cls, v):
        return [] if v is None else v


class AddCommentRequest(BaseModel):
    """POST /add-comment のリクエストボディ"""

    model_config = ConfigDict(populate_by_name=True)

    issue_number: int = Field(alias="issueNumber", gt=0)
    body: str
    repo_owner: Optional[str] = Field(default=None, alias="repoOwner")
    repo_name: Optional[str] = Field(default=None, alias="repoName")

    @field_validator("body")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v


def parse_request(model: type, data: Any, message: str) -> BaseModel:
    """リクエストボディを検証し、失敗時はInvalidInputを送出"""
    if not isinstance(data, dict):
        raise InvalidInput(message)
    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.debug(f"Rejected {model.__name__}: {e.errors()}")
        raise InvalidInput(message) from e


def resolve_repository(owner: Optional[str] = None, name: Optional[str] = None) -> RepositoryRef:
    """未指定の owner/name を設定値で補完"""
    return RepositoryRef(
        owner=(owner or "").strip() or settings.GITHUB_REPO_OWNER,
        name=(name or "").strip() or settings.GITHUB_REPO_NAME,
    )


def upstream_guard(operation: str, failure_message: str):
    """上流エラーをゲートウェイのエラー体系に正規化するデコレータ

    Args:
        operation: 操作名（ログ用）
        failure_message: 呼び出し元に返す固定メッセージ
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            start = time.perf_counter()
            success = False
            try:
                result = await func(*args, **kwargs)
                success = True
                return result
            except GatewayError:
                raise
            except GitHubAuthError as e:
                logger.warning(f"GitHub rejected credential in {operation}")
                raise Unauthorized(INVALID_TOKEN_MESSAGE) from e
            except Exception as e:
                logger.error(f"Error in {operation}: {e}", exc_info=True)
                raise UpstreamFailure(failure_message) from e
            finally:
                StructuredLogger.log_operation(
                    operation, success, (time.perf_counter() - start) * 1000
                )

        return wrapper

    return decorator


async def _lookup_actor(client: GitHubClient) -> Optional[GitHubUser]:
    """フッター用のユーザー情報を取得（失敗してもNoneで続行）"""
    try:
        return GitHubUser.model_validate(await client.get_authenticated_user())
    except Exception as e:
        logger.warning(f"Could not get user info: {e}")
        return None


@upstream_guard("user", "Failed to validate token")
async def get_authenticated_user(client: GitHubClient) -> Dict[str, Any]:
    """トークンを検証し、ユーザー情報を返す"""
    data = await client.get_authenticated_user()
    return {
        "login": data["login"],
        "name": data.get("name"),
        "email": data.get("email"),
        "avatar_url": data.get("avatar_url"),
    }


@upstream_guard("labels", "Failed to fetch labels")
async def list_repo_labels(client: GitHubClient, repo: RepositoryRef) -> Dict[str, Any]:
    """リポジトリのラベル一覧"""
    items = await client.list_labels(repo, per_page=settings.LABELS_PER_PAGE)
    labels = [
        {
            "name": label["name"],
            "color": label["color"],
            "description": label.get("description"),
        }
        for label in items
    ]
    return {"labels": labels}


@upstream_guard("search-issues", "Failed to search issues")
async def search_issues(
    client: GitHubClient, query: str, repo: RepositoryRef
) -> Dict[str, Any]:
    """リポジトリ内のIssueを検索（PRは除外、最大SEARCH_RESULT_LIMIT件）"""
    items = await client.search_issues(
        compose_search_query(repo, query), per_page=settings.SEARCH_RESULT_LIMIT
    )
    issues = [
        {
            "number": item["number"],
            "title": item["title"],
            "url": item["html_url"],
            "state": item.get("state"),
            "updated_at": item.get("updated_at"),
        }
        for item in exclude_pull_requests(items)
    ]
    return {"issues": issues[: settings.SEARCH_RESULT_LIMIT]}


@upstream_guard("create-issue", "Failed to create issue")
async def create_issue(client: GitHubClient, request: CreateIssueRequest) -> Dict[str, Any]:
    """署名フッター付きでIssueを作成"""
    repo = resolve_repository(request.repo_owner, request.repo_name)
    actor = await _lookup_actor(client)
    body = append_footer(request.body, actor, CREATED_FOOTER)

    data = await client.create_issue(repo, request.title, body, request.labels)
    logger.info(f"Created issue #{data['number']} in {repo.full_name}")
    return {"number": data["number"], "url": data["html_url"], "title": data["title"]}


@upstream_guard("add-comment", "Failed to add comment")
async def add_comment(client: GitHubClient, request: AddCommentRequest) -> Dict[str, Any]:
    """署名フッター付きでコメントを追加"""
    repo = resolve_repository(request.repo_owner, request.repo_name)
    actor = await _lookup_actor(client)
    body = append_footer(request.body, actor, ADDED_FOOTER)

    data = await client.create_comment(repo, request.issue_number, body)
    logger.info(f"Added comment to #{request.issue_number} in {repo.full_name}")
    return {"id": data["id"], "url": data["html_url"], "created_at": data.get("created_at")}
