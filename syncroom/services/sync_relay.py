"""
syncroom.services.sync_relay
~~~~~~~~~~~~~~~~~~~~~~~~~~~~

播放同步中继 —— 转发播放进度 / 播放状态提示与表情反应。

无状态：不写房间表，只做扇出。投递是尽力而为，除单条连接上的传输顺序外
不保证顺序与送达。
"""
from __future__ import annotations

from typing import Any

from syncroom.core.logging import get_logger
from syncroom.schemas.room_events import PlaybackSyncEvent, ReactionAddedEvent
from syncroom.services.connection_registry import Transport
from syncroom.services.membership import member_ids
from syncroom.services.room_table import RoomTable

logger = get_logger(__name__)


class PlaybackSyncRelay:
    def __init__(self, table: RoomTable, transport: Transport) -> None:
        self.table = table
        self.transport = transport

    def relay(
        self,
        room_id: str,
        sender_id: str,
        is_playing: Any,
        position: Any,
    ) -> None:
        """把播放状态转发给房间内除发送者以外的所有成员。"""
        room = self.table.get(room_id)
        if room is None:
            return
        self.transport.broadcast(
            member_ids(room),
            PlaybackSyncEvent(is_playing=is_playing, position=position),
            exclude=sender_id,
        )

    def reaction(self, room_id: str, sender_id: str, reaction: Any) -> None:
        """把表情反应广播给房间内全部成员（含发送者）。"""
        room = self.table.get(room_id)
        if room is None:
            return
        self.transport.broadcast(
            member_ids(room), ReactionAddedEvent(user_id=sender_id, reaction=reaction),
        )
        logger.debug("表情反应 | room=%s | %s", room_id, reaction)
