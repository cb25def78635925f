from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from functools import lru_cache


class Settings(BaseSettings):
    """アプリケーション設定"""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # GitHub
    GITHUB_API_URL: str = "https://api.github.com"
    GITHUB_REPO_OWNER: str = "github"
    GITHUB_REPO_NAME: str = "solutions-engineering"
    GITHUB_REQUEST_TIMEOUT: int = 30

    # Rate Limiting
    GITHUB_API_MAX_REQUESTS: int = 5000
    GITHUB_API_WINDOW_SECONDS: int = 3600

    # Gateway
    GATEWAY_HOST: str = "127.0.0.1"
    GATEWAY_PORT: int = 5000
    GATEWAY_URL: str = "http://127.0.0.1:5000"

    # Client
    SEARCH_DEBOUNCE_MS: int = 300
    SEARCH_RESULT_LIMIT: int = 5
    LABELS_PER_PAGE: int = 100
    NOTIFICATION_SECONDS: float = 3.0
    CREDENTIAL_STORE_FILE: str = "~/.quicknotes/storage.json"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "logs/quicknotes.log"

    @field_validator("GITHUB_REPO_OWNER", "GITHUB_REPO_NAME")
    @classmethod
    def validate_repository_default(cls, v: str) -> str:
        """デフォルトリポジトリの検証"""
        v = v.strip()
        if not v:
            raise ValueError("Default repository owner and name must be non-empty")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """ログレベルの検証"""
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log level: {v}")
        return v

    @field_validator("GATEWAY_URL", "GITHUB_API_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


@lru_cache()
def get_settings() -> Settings:
    """設定のシングルトンインスタンスを取得"""
    return Settings()


settings = get_settings()
