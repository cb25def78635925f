import asyncio
import threading
import time
from collections import deque


class RateLimiter:
    """シンプルなレート制限実装

    スライディングウィンドウ方式でGitHub APIリクエストのレート制限を管理します。
    ゲートウェイはリクエストごとに別スレッド・別イベントループで動くため、
    記録の更新はthreading.Lockで保護し、待機はasyncio.sleepで行います。
    """

    def __init__(self, max_requests: int, window_seconds: int):
        """RateLimiterの初期化

        Args:
            max_requests: ウィンドウ内での最大リクエスト数
            window_seconds: ウィンドウの長さ（秒）
        """
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.requests = deque()
        self._lock = threading.Lock()

    def _try_acquire(self) -> float:
        """枠があれば記録して0を返し、なければ必要な待機秒数を返す"""
        with self._lock:
            now = time.monotonic()

            # ウィンドウ外のリクエストを削除
            while self.requests and self.requests[0] <= now - self.window_seconds:
                self.requests.popleft()

            if len(self.requests) >= self.max_requests:
                oldest = self.requests[0]
                return max((oldest + self.window_seconds) - now, 0.001)

            self.requests.append(now)
            return 0.0

    async def acquire(self):
        """リクエストを実行する許可を取得

        レート制限に達している場合は、枠が空くまで待機します。
        """
        while True:
            sleep_time = self._try_acquire()
            if sleep_time <= 0:
                return
            await asyncio.sleep(sleep_time)

    def get_remaining(self) -> int:
        """残りのリクエスト可能数を取得

        Returns:
            int: 残りのリクエスト数
        """
        with self._lock:
            now = time.monotonic()
            valid_requests = [
                r for r in self.requests if r > now - self.window_seconds
            ]
            return max(0, self.max_requests - len(valid_requests))
