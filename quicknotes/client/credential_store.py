import json
from pathlib import Path
from typing import Dict, Optional
from quicknotes.config import settings
from quicknotes.utils.logger import get_logger

logger = get_logger(__name__)

# 永続化キー（有効期限なし。認証情報はログアウト時にのみ削除）
TOKEN_KEY = "quick-notes.token"
TOKEN_SOURCE_KEY = "quick-notes.token-source"
REPO_OWNER_KEY = "quick-notes.repo-owner"
REPO_NAME_KEY = "quick-notes.repo-name"
THEME_KEY = "quick-notes.theme"

CREDENTIAL_KEYS = (TOKEN_KEY, TOKEN_SOURCE_KEY)


class CredentialStore:
    """認証情報と設定を保持するキー・バリューストア（JSONファイル）"""

    def __init__(self, storage_file: Optional[str] = None):
        self.storage_file = Path(storage_file or settings.CREDENTIAL_STORE_FILE).expanduser()
        self.values: Dict[str, str] = {}
        self.loaded = False

    def load(self) -> "CredentialStore":
        """ストアを読み込み（最初の描画より前に呼ぶこと）"""
        self.loaded = True
        if not self.storage_file.exists():
            logger.info(f"Storage file {self.storage_file} not found, starting empty")
            self.values = {}
            return self

        try:
            with open(self.storage_file, "r", encoding="utf-8") as f:
                data = json.load(f)
            self.values = {str(k): str(v) for k, v in data.items()} if isinstance(data, dict) else {}
            logger.info(f"Loaded {len(self.values)} stored values")
        except Exception as e:
            logger.error(f"Failed to load storage file: {e}")
            self.values = {}
        return self

    def _save(self):
        """ストアをファイルに保存"""
        try:
            self.storage_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.storage_file, "w", encoding="utf-8") as f:
                json.dump(self.values, f, indent=2, ensure_ascii=False)
        except Exception as e:
            logger.error(f"Failed to save storage file: {e}")

    def get(self, key: str) -> Optional[str]:
        """値を取得"""
        if not self.loaded:
            self.load()
        return self.values.get(key)

    def set(self, key: str, value: str):
        """値を設定"""
        if not self.loaded:
            self.load()
        self.values[key] = value
        self._save()

    def clear(self, *keys: str):
        """指定キーを削除（キー未指定なら全削除）"""
        if not self.loaded:
            self.load()
        if keys:
            for key in keys:
                self.values.pop(key, None)
        else:
            self.values = {}
        self._save()
