import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from quicknotes.config import settings


def get_logger(name: str) -> logging.Logger:
    """ロガーインスタンスを取得

    Args:
        name: ロガー名（通常は__name__を渡す）

    Returns:
        logging.Logger: 設定済みロガーインスタンス
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, settings.LOG_LEVEL))

    if not logger.handlers:
        # ファイルハンドラ
        log_path = Path(settings.LOG_FILE)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        fh = logging.FileHandler(log_path, encoding="utf-8")
        fh.setLevel(logging.DEBUG)

        # コンソールハンドラ
        ch = logging.StreamHandler()
        ch.setLevel(logging.INFO)

        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
        fh.setFormatter(formatter)
        ch.setFormatter(formatter)

        logger.addHandler(fh)
        logger.addHandler(ch)

    return logger


class StructuredLogger:
    """構造化ログ出力用のヘルパークラス"""

    @staticmethod
    def log_operation(
        operation: str,
        success: bool,
        duration_ms: float,
        metadata: dict = None,
    ):
        """ゲートウェイ操作の実行ログを記録

        Args:
            operation: 操作名（例: create-issue）
            success: 成功フラグ
            duration_ms: 実行時間（ミリ秒）
            metadata: 追加メタデータ（トークンは含めないこと）
        """
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event": "gateway_operation",
            "operation": operation,
            "success": success,
            "duration_ms": round(duration_ms, 2),
            "metadata": metadata or {},
        }

        logger = get_logger(__name__)
        logger.info(json.dumps(log_entry, ensure_ascii=False))
