"""
tests.conftest
~~~~~~~~~~~~~~

共享 pytest fixtures —— 记录型假发送通道、手动触发的定时器，
使协调器测试无需真实 WebSocket 与事件循环即可运行。
"""
from __future__ import annotations

import os
from collections.abc import Callable, Iterable
from typing import Any

import pytest

# ── 在所有测试导入前设置环境变量 ─────────────────────────────────────
os.environ.setdefault("ENVIRONMENT", "test")  # 激活 .env.test 配置

from syncroom.schemas.room_events import RoomEvent  # noqa: E402
from syncroom.services.listening_system import ListeningSystem  # noqa: E402

FIXED_NOW_MS: int = 1_700_000_000_000


class RecordingTransport:
    """按接收方记录所有发出的事件，代替 ``ConnectionRegistry``。"""

    def __init__(self) -> None:
        self.sent: list[tuple[str, RoomEvent]] = []

    def send(self, channel_id: str, event: RoomEvent) -> None:
        self.sent.append((channel_id, event))

    def broadcast(
        self,
        channel_ids: Iterable[str],
        event: RoomEvent,
        exclude: str | None = None,
    ) -> None:
        for channel_id in channel_ids:
            if channel_id != exclude:
                self.sent.append((channel_id, event))

    def events_for(self, channel_id: str) -> list[RoomEvent]:
        return [event for cid, event in self.sent if cid == channel_id]

    def names_for(self, channel_id: str) -> list[str]:
        return [event.event for event in self.events_for(channel_id)]

    def last_for(self, channel_id: str) -> RoomEvent:
        return self.events_for(channel_id)[-1]

    def clear(self) -> None:
        self.sent.clear()


class ManualScheduler:
    """记录 ``call_later`` 式的调度请求，由测试手动触发。"""

    def __init__(self) -> None:
        self.pending: list[tuple[float, Callable[..., Any], tuple[Any, ...]]] = []

    def __call__(self, delay: float, callback: Callable[..., Any], *args: Any) -> None:
        self.pending.append((delay, callback, args))

    def fire_all(self) -> None:
        pending, self.pending = self.pending, []
        for _, callback, args in pending:
            callback(*args)


@pytest.fixture()
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture()
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture()
def system(transport: RecordingTransport, scheduler: ManualScheduler) -> ListeningSystem:
    """挂好假通道与手动定时器的收听系统。"""
    return ListeningSystem(
        transport=transport,
        grace_period=60.0,
        scheduler=scheduler,
        clock=lambda: FIXED_NOW_MS,
    )
