# quicknotes/gateway/server.py
from typing import Callable, Optional
from flask import Flask, current_app, jsonify, request
from quicknotes.config import settings
from quicknotes.gateway import operations as ops
from quicknotes.gateway.errors import GatewayError, InvalidInput, Unauthorized
from quicknotes.github.client import GitHubClient
from quicknotes.utils.logger import get_logger

logger = get_logger(__name__)

BEARER_PREFIX = "Bearer "


def extract_bearer_token(header: Optional[str]) -> str:
    """Authorization ヘッダからトークンを取り出す（GitHubへの呼び出し前に検証）"""
    if not header or not header.startswith(BEARER_PREFIX):
        raise Unauthorized("Authorization header required")
    token = header[len(BEARER_PREFIX):].strip()
    if not token:
        raise Unauthorized("Authorization header required")
    return token


def create_app(client_factory: Callable[[str], GitHubClient] = GitHubClient) -> Flask:
    app = Flask(__name__)
    app.config["GITHUB_CLIENT_FACTORY"] = client_factory

    # ---------- helpers ----------
    def _client() -> GitHubClient:
        token = extract_bearer_token(request.headers.get("Authorization"))
        return current_app.config["GITHUB_CLIENT_FACTORY"](token)

    def _query_repository():
        return ops.resolve_repository(request.args.get("owner"), request.args.get("repo"))

    @app.errorhandler(GatewayError)
    def handle_gateway_error(error: GatewayError):
        return jsonify(error.to_dict()), error.status_code

    # ---------- operations ----------
    @app.get("/user")
    async def user():
        client = _client()
        return jsonify(await ops.get_authenticated_user(client))

    @app.get("/labels")
    async def labels():
        client = _client()
        return jsonify(await ops.list_repo_labels(client, _query_repository()))

    @app.get("/search-issues")
    async def search_issues():
        client = _client()
        query = (request.args.get("q") or "").strip()
        if not query:
            raise InvalidInput("Query parameter required")
        return jsonify(await ops.search_issues(client, query, _query_repository()))

    @app.post("/create-issue")
    async def create_issue():
        client = _client()
        payload = ops.parse_request(
            ops.CreateIssueRequest,
            request.get_json(silent=True),
            "Title and body are required",
        )
        return jsonify(await ops.create_issue(client, payload))

    @app.post("/add-comment")
    async def add_comment():
        client = _client()
        payload = ops.parse_request(
            ops.AddCommentRequest,
            request.get_json(silent=True),
            "Issue number and body are required",
        )
        return jsonify(await ops.add_comment(client, payload))

    # ---------- repository defaults ----------
    @app.get("/config")
    def config_get():
        return jsonify({"owner": settings.GITHUB_REPO_OWNER, "name": settings.GITHUB_REPO_NAME})

    @app.post("/config")
    def config_set():
        data = request.get_json(silent=True) or {}
        owner = str(data.get("owner") or "").strip()
        name = str(data.get("name") or "").strip()
        if not owner or not name:
            raise InvalidInput("Owner and name are required")
        # サーバー側では保存しない（クライアントのストアが保持する）
        return jsonify({"owner": owner, "name": name, "message": "Repository configuration updated"})

    return app
