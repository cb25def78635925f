from typing import Callable, List, Optional, Protocol
from pydantic import ValidationError
from quicknotes.client.credential_store import (
    CREDENTIAL_KEYS,
    REPO_NAME_KEY,
    REPO_OWNER_KEY,
    THEME_KEY,
    TOKEN_KEY,
    TOKEN_SOURCE_KEY,
    CredentialStore,
)
from quicknotes.client.gateway_client import GatewayClient, GatewayRequestError
from quicknotes.client.notifications import Notifier
from quicknotes.config import settings
from quicknotes.github.models import Credential, GitHubUser, RepositoryRef
from quicknotes.utils.logger import get_logger

logger = get_logger(__name__)

INVALID_TOKEN_MESSAGE = "Invalid token"
SESSION_EXPIRED_MESSAGE = "Your GitHub token is no longer valid. Please sign in again."
THEMES = ("light", "dark")


class CredentialProvider(Protocol):
    """トークンの取得元を隠蔽するインターフェース"""

    def current_token(self) -> Optional[str]: ...

    def handle_unauthorized(self): ...


class AuthSession:
    """認証状態の管理

    トークンは保存済みでも入力直後でも、必ずwhoamiで1回検証してから使う。
    検証済みになるまで current_token() は None を返す。
    """

    def __init__(self, store: CredentialStore, gateway: GatewayClient, notifier: Notifier):
        self.store = store
        self.gateway = gateway
        self.notifier = notifier
        self.credential: Optional[Credential] = None
        self.user: Optional[GitHubUser] = None
        self._logout_listeners: List[Callable[[], None]] = []

    def on_logout(self, callback: Callable[[], None]):
        """明示的なログアウト時のコールバックを登録"""
        self._logout_listeners.append(callback)

    @property
    def is_authenticated(self) -> bool:
        return self.credential is not None and self.user is not None

    def current_token(self) -> Optional[str]:
        if not self.is_authenticated:
            return None
        return self.credential.token

    async def restore(self) -> bool:
        """保存済みトークンを再検証（起動時）"""
        token = self.store.get(TOKEN_KEY)
        if not token:
            return False
        source = self.store.get(TOKEN_SOURCE_KEY) or "manual"
        return await self._validate(token, source)

    async def sign_in(self, token: str, source: str = "manual") -> bool:
        """入力されたトークンを検証して保存"""
        token = (token or "").strip()
        if not token:
            self.notifier.error(INVALID_TOKEN_MESSAGE)
            return False
        return await self._validate(token, source)

    async def _validate(self, token: str, source: str) -> bool:
        try:
            credential = Credential(token=token, source=source)
            user = await self.gateway.get_user(token)
        except (GatewayRequestError, ValidationError) as e:
            logger.warning(f"Token validation failed: {e}")
            self._drop_credential()
            self.notifier.error(INVALID_TOKEN_MESSAGE)
            return False

        self.credential = credential
        self.user = user
        self.store.set(TOKEN_KEY, credential.token)
        self.store.set(TOKEN_SOURCE_KEY, credential.source)
        logger.info(f"Signed in as {user.login} ({credential.source} token)")
        return True

    def _drop_credential(self):
        self.credential = None
        self.user = None
        self.store.clear(*CREDENTIAL_KEYS)

    def handle_unauthorized(self):
        """いずれかのゲートウェイ呼び出しが401を返したときの処理"""
        if self.credential is None:
            return
        logger.warning("Gateway returned 401, clearing stored credential")
        self._drop_credential()
        self.notifier.error(SESSION_EXPIRED_MESSAGE)

    def logout(self):
        """明示的なログアウト"""
        if self.user:
            logger.info(f"Signed out {self.user.login}")
        self._drop_credential()
        for callback in self._logout_listeners:
            callback()

    @property
    def repository(self) -> RepositoryRef:
        """現在の対象リポジトリ（未設定なら設定値）"""
        owner = self.store.get(REPO_OWNER_KEY) or settings.GITHUB_REPO_OWNER
        name = self.store.get(REPO_NAME_KEY) or settings.GITHUB_REPO_NAME
        return RepositoryRef(owner=owner, name=name)

    def set_repository(self, owner: str, name: str) -> RepositoryRef:
        """対象リポジトリを変更して保存

        Raises:
            ValueError: owner/name が空
        """
        repo = RepositoryRef(owner=owner, name=name)
        self.store.set(REPO_OWNER_KEY, repo.owner)
        self.store.set(REPO_NAME_KEY, repo.name)
        logger.info(f"Repository set to {repo.full_name}")
        return repo

    @property
    def theme(self) -> str:
        theme = self.store.get(THEME_KEY)
        return theme if theme in THEMES else "light"

    def set_theme(self, theme: str) -> str:
        if theme not in THEMES:
            raise ValueError(f"Theme must be one of: {', '.join(THEMES)}")
        self.store.set(THEME_KEY, theme)
        return theme
