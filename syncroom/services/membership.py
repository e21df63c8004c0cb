"""
syncroom.services.membership
~~~~~~~~~~~~~~~~~~~~~~~~~~~~

成员协调器 —— 处理加入 / 离开 / 断线，并广播成员变化。
"""
from __future__ import annotations

from syncroom.core.logging import get_logger
from syncroom.schemas.room_events import (
    Participant,
    RoomStateEvent,
    UserJoinedEvent,
    UserLeftEvent,
)
from syncroom.services.connection_registry import Transport
from syncroom.services.room_lifecycle import RoomLifecycleManager
from syncroom.services.room_table import Room, RoomTable

logger = get_logger(__name__)


def default_username(channel_id: str) -> str:
    return f"User {channel_id[:6]}"


def member_ids(room: Room) -> list[str]:
    return [member.id for member in room.members]


class MembershipCoordinator:
    """成员协调器。

    一个连接可以同时是多个房间的成员，成员关系按 (房间, 连接) 维护。
    """

    def __init__(
        self,
        table: RoomTable,
        lifecycle: RoomLifecycleManager,
        transport: Transport,
    ) -> None:
        self.table = table
        self.lifecycle = lifecycle
        self.transport = transport

    def join(self, room_id: str, channel_id: str, username: str | None = None) -> Room:
        """加入房间（不存在则创建）。

        先向房间全体（含新成员）广播 ``user_joined``，
        再单播一次完整快照 ``room_state`` 给加入者。
        """
        room = self.lifecycle.ensure_room(room_id)
        user = room.add_member(
            Participant(id=channel_id, username=username or default_username(channel_id)),
        )
        members = room.snapshot_members()

        self.transport.broadcast(
            member_ids(room), UserJoinedEvent(user=user, members=members),
        )
        self.transport.send(
            channel_id,
            RoomStateEvent(
                members=members,
                queue=room.snapshot_queue(),
                current_track=room.current_track,
            ),
        )
        logger.info("用户加入房间 | room=%s | user=%s | 成员: %d", room_id, user.username, room.member_count)
        return room

    def leave(self, room_id: str, channel_id: str) -> None:
        """离开房间，同时撤回该连接在当前曲目上的跳过票。

        房间不存在或该连接本就不是成员时什么也不做。
        """
        room = self.table.get(room_id)
        if room is None or not room.remove_member(channel_id):
            return

        logger.info("用户离开房间 | room=%s | channel=%s | 成员: %d", room_id, channel_id, room.member_count)
        if room.is_empty:
            self.lifecycle.schedule_deletion_if_empty(room_id)
            return
        self.transport.broadcast(
            member_ids(room),
            UserLeftEvent(user_id=channel_id, members=room.snapshot_members()),
        )

    def disconnect(self, channel_id: str) -> list[str]:
        """连接断开：对其所在的每个房间执行 ``leave``。返回受影响的房间 ID。"""
        room_ids = [room.room_id for room in self.table.rooms_of(channel_id)]
        for room_id in room_ids:
            self.leave(room_id, channel_id)
        return room_ids
