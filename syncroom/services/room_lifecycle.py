"""
syncroom.services.room_lifecycle
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

房间生命周期 —— 首次加入时懒创建房间，变空后经过宽限期再删除。

删除定时器只是"到点复查"，不是可取消的任务：到期时重新读取房间的实时成员，
仍为空才删除。宽限期内有人重新加入，复查自然失败，等同于取消。
同一房间叠加多个定时器也无害，最多只有一次真正执行删除。
"""
from __future__ import annotations

import asyncio
import contextvars
from collections.abc import Callable
from typing import Any

from syncroom.core.logging import get_logger
from syncroom.services.room_table import Room, RoomTable

logger = get_logger(__name__)

# (delay, callback, *args) -> None
Scheduler = Callable[..., Any]


def loop_scheduler(delay: float, callback: Callable[..., Any], *args: Any) -> asyncio.TimerHandle:
    """默认调度器：挂到当前事件循环的 ``call_later`` 上。

    回调在空白上下文中执行，不继承调度时所在连接的 ``channel_id``。
    """
    return asyncio.get_running_loop().call_later(
        delay, callback, *args, context=contextvars.Context(),
    )


class RoomLifecycleManager:
    """房间的创建与延迟回收。

    Attributes:
        table: 房间表。
        grace_period: 空房间的保留时长（秒）。
    """

    def __init__(
        self,
        table: RoomTable,
        grace_period: float = 60.0,
        scheduler: Scheduler | None = None,
    ) -> None:
        self.table = table
        self.grace_period = grace_period
        self._schedule: Scheduler = scheduler or loop_scheduler

    def ensure_room(self, room_id: str) -> Room:
        """返回已有房间，不存在则创建一个空房间。"""
        room = self.table.get(room_id)
        if room is None:
            room = self.table.create(room_id)
            logger.info("房间已创建 | room=%s | 房间总数: %d", room_id, len(self.table))
        return room

    def schedule_deletion_if_empty(self, room_id: str) -> bool:
        """房间无成员时安排一次宽限期后的删除复查。返回是否已安排。"""
        room = self.table.get(room_id)
        if room is None or not room.is_empty:
            return False
        self._schedule(self.grace_period, self._expire, room_id)
        logger.debug("房间已空，%.0f 秒后复查 | room=%s", self.grace_period, room_id)
        return True

    def _expire(self, room_id: str) -> None:
        room = self.table.get(room_id)
        if room is None or not room.is_empty:
            return
        self.table.remove(room_id)
        logger.info("空房间已回收 | room=%s | 房间总数: %d", room_id, len(self.table))
