"""
syncroom.services.playback
~~~~~~~~~~~~~~~~~~~~~~~~~~

队列与播放协调器 —— 点歌入队、空闲时自动开播、跳过后推进到下一首。

队列是严格 FIFO：不重排、不删除、不去重，重复曲目允许多次入队。
"""
from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any

from syncroom.core.logging import get_logger
from syncroom.schemas.room_events import (
    QueuedTrack,
    TrackChangedEvent,
    TrackQueuedEvent,
    TrackSkippedEvent,
)
from syncroom.services.connection_registry import Transport
from syncroom.services.membership import member_ids
from syncroom.services.room_lifecycle import RoomLifecycleManager
from syncroom.services.room_table import IDLE, Room

logger = get_logger(__name__)


def now_millis() -> int:
    return int(time.time() * 1000)


class PlaybackCoordinator:
    """队列与播放协调器。

    Attributes:
        lifecycle: 用于懒创建房间。
        transport: 广播通道。
        clock: 返回毫秒时间戳，作为 ``queuedAt``。
    """

    def __init__(
        self,
        lifecycle: RoomLifecycleManager,
        transport: Transport,
        clock: Callable[[], int] = now_millis,
    ) -> None:
        self.lifecycle = lifecycle
        self.transport = transport
        self.clock = clock

    def enqueue(self, room_id: str, channel_id: str, track: dict[str, Any]) -> QueuedTrack:
        """追加一首曲目并广播 ``track_queued``。

        如果房间此时空闲，在同一次处理中立即把队首提升为当前曲目并广播
        ``track_changed``，也就是"点歌即开播"。
        """
        room = self.lifecycle.ensure_room(room_id)
        entry = QueuedTrack.from_catalog(track, added_by=channel_id, queued_at=self.clock())
        room.queue.append(entry)
        self.transport.broadcast(
            member_ids(room), TrackQueuedEvent(track=entry, queue=room.snapshot_queue()),
        )
        logger.debug("曲目入队 | room=%s | track=%s | 队列: %d", room_id, entry.track_id, len(room.queue))

        if room.playback is IDLE:
            current = room.promote_next()
            if current is not None:
                self.transport.broadcast(
                    member_ids(room),
                    TrackChangedEvent(track=current, queue=room.snapshot_queue()),
                )
                logger.info("开始播放 | room=%s | track=%s", room_id, current.track_id)

        # 未加入就点歌的房间没有成员，同样需要走空房间回收
        self.lifecycle.schedule_deletion_if_empty(room_id)
        return entry

    def advance(self, room: Room) -> QueuedTrack | None:
        """跳过当前曲目：队首顶上（队列空则进入空闲），票数清零，广播 ``track_skipped``。"""
        current = room.promote_next()
        self.transport.broadcast(
            member_ids(room),
            TrackSkippedEvent(current_track=current, queue=room.snapshot_queue()),
        )
        logger.info(
            "曲目已跳过 | room=%s | next=%s | 队列: %d",
            room.room_id, current.track_id if current else None, len(room.queue),
        )
        return current
