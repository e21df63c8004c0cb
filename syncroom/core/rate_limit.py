"""
syncroom.core.rate_limit
~~~~~~~~~~~~~~~~~~~~~~~~

REST 与 WebSocket 的限流配置。
"""
from __future__ import annotations

import time

from slowapi import Limiter
from slowapi.util import get_remote_address


# --------- HTTP 接口限流器 ---------
# 基于客户端 IP 地址进行限流
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri="memory://",
)


# --------- WebSocket 限流器 ---------
class WebSocketRateLimiter:
    """基于内存的简单 WebSocket 意图限流器。

    记录每个连接上一次被放行的时间，间隔不足则拒绝。
    ``interval_seconds`` 为 0 时全部放行。
    """

    def __init__(self, interval_seconds: float = 0.5) -> None:
        self.interval_seconds = interval_seconds
        self._last_allowed: dict[str, float] = {}

    def is_allowed(self, channel_id: str) -> bool:
        """检查连接是否允许本次操作。

        Args:
            channel_id: 连接唯一标识。

        Returns:
            是否放行。放行时同时更新上次放行时间。
        """
        if self.interval_seconds <= 0:
            return True

        now = time.monotonic()
        last_time = self._last_allowed.get(channel_id)
        if last_time is None or now - last_time >= self.interval_seconds:
            self._last_allowed[channel_id] = now
            return True
        return False

    def remove_client(self, channel_id: str) -> None:
        """清理断开连接的客户端记录。"""
        self._last_allowed.pop(channel_id, None)
