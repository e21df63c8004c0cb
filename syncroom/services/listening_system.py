"""
syncroom.services.listening_system
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

收听系统 —— 持有房间表、连接注册表与各协调器，是 WebSocket / REST 层的唯一入口。

在 FastAPI lifespan 中创建并挂载到 ``app.state.listening_system``。

客户端意图全部是"发出即忘"：没有应答通道，所以格式错误、房间不存在等情况
一律静默丢弃（记 DEBUG 日志），绝不向连接抛出异常。各意图的幂等性:

- ``join_room``：重复加入不会重复添加成员，但会再次广播并下发快照；
- ``leave_room``：非成员离开为空操作；
- ``vote_skip``：同一曲目内重复投票不重复计数，空闲时为空操作；
- ``queue_track``：不幂等，每次都会追加一条（允许重复曲目）；
- ``playback_update`` / ``track_reaction``：纯转发，不改状态。
"""
from __future__ import annotations

from collections.abc import Callable
from typing import Any

from pydantic import ValidationError

from syncroom.core.logging import get_logger
from syncroom.schemas.room_events import (
    JoinRoomIntent,
    LeaveRoomIntent,
    PlaybackUpdateIntent,
    QueueTrackIntent,
    RoomIntent,
    TrackReactionIntent,
    VoteSkipIntent,
)
from syncroom.schemas.room_info import RoomDetailData, RoomSummaryData
from syncroom.services.connection_registry import ConnectionRegistry, Transport
from syncroom.services.membership import MembershipCoordinator
from syncroom.services.playback import PlaybackCoordinator, now_millis
from syncroom.services.room_lifecycle import RoomLifecycleManager, Scheduler
from syncroom.services.room_table import RoomTable
from syncroom.services.sync_relay import PlaybackSyncRelay
from syncroom.services.vote_skip import VoteSkipCoordinator, skip_threshold

logger = get_logger(__name__)


class ListeningSystem:
    """收听系统（每个进程一个）。

    - ``dispatch(channel_id, event, data)`` → 校验并执行一条客户端意图
    - ``disconnect(channel_id)``            → 断线清理（离开所有房间）
    - ``list_rooms()`` / ``room_detail()``   → REST 查询，不会创建房间

    Attributes:
        table: 房间表。
        transport: 发送通道，默认为 ``ConnectionRegistry``。
        lifecycle / membership / playback / votes / relay: 各协调器。
    """

    def __init__(
        self,
        transport: Transport | None = None,
        grace_period: float = 60.0,
        scheduler: Scheduler | None = None,
        clock: Callable[[], int] = now_millis,
    ) -> None:
        self.table = RoomTable()
        self.transport: Transport = transport if transport is not None else ConnectionRegistry()
        self.lifecycle = RoomLifecycleManager(self.table, grace_period, scheduler)
        self.membership = MembershipCoordinator(self.table, self.lifecycle, self.transport)
        self.playback = PlaybackCoordinator(self.lifecycle, self.transport, clock)
        self.votes = VoteSkipCoordinator(self.table, self.playback, self.transport)
        self.relay = PlaybackSyncRelay(self.table, self.transport)

        self._handlers: dict[str, tuple[type[RoomIntent], Callable[[str, Any], None]]] = {
            "join_room": (JoinRoomIntent, self._on_join),
            "leave_room": (LeaveRoomIntent, self._on_leave),
            "queue_track": (QueueTrackIntent, self._on_queue_track),
            "vote_skip": (VoteSkipIntent, self._on_vote_skip),
            "playback_update": (PlaybackUpdateIntent, self._on_playback_update),
            "track_reaction": (TrackReactionIntent, self._on_reaction),
        }

    # ── 意图分发 ──────────────────────────────────────────────────────

    def dispatch(self, channel_id: str, event: str, data: Any) -> bool:
        """执行一条客户端意图。返回意图是否被受理（格式合法且事件名已知）。"""
        entry = self._handlers.get(event)
        if entry is None:
            logger.debug("未知事件已忽略 | event=%s", event)
            return False

        intent_model, handler = entry
        try:
            intent = intent_model.model_validate(data)
        except ValidationError as e:
            logger.debug("意图格式错误已忽略 | event=%s | %d 处错误", event, e.error_count())
            return False

        handler(channel_id, intent)
        return True

    def disconnect(self, channel_id: str) -> None:
        """连接断开：离开其所在的全部房间。"""
        left = self.membership.disconnect(channel_id)
        if left:
            logger.info("断线清理 | 离开 %d 个房间", len(left))

    def _on_join(self, channel_id: str, intent: JoinRoomIntent) -> None:
        self.membership.join(intent.room_id, channel_id, intent.username)

    def _on_leave(self, channel_id: str, intent: LeaveRoomIntent) -> None:
        self.membership.leave(intent.room_id, channel_id)

    def _on_queue_track(self, channel_id: str, intent: QueueTrackIntent) -> None:
        self.playback.enqueue(intent.room_id, channel_id, intent.track)

    def _on_vote_skip(self, channel_id: str, intent: VoteSkipIntent) -> None:
        self.votes.cast_vote(intent.room_id, channel_id)

    def _on_playback_update(self, channel_id: str, intent: PlaybackUpdateIntent) -> None:
        self.relay.relay(intent.room_id, channel_id, intent.is_playing, intent.position)

    def _on_reaction(self, channel_id: str, intent: TrackReactionIntent) -> None:
        self.relay.reaction(intent.room_id, channel_id, intent.reaction)

    # ── 查询 ──────────────────────────────────────────────────────────

    def list_rooms(self) -> list[RoomSummaryData]:
        """列出所有房间的摘要信息。"""
        return [
            RoomSummaryData(
                room_id=room.room_id,
                member_count=room.member_count,
                queue_length=len(room.queue),
                current_track=room.current_track,
                skip_votes=len(room.skip_votes),
            )
            for room in self.table
        ]

    def room_detail(self, room_id: str) -> RoomDetailData | None:
        """返回房间完整快照；房间不存在时返回 None。"""
        room = self.table.get(room_id)
        if room is None:
            return None
        return RoomDetailData(
            room_id=room.room_id,
            members=room.snapshot_members(),
            queue=room.snapshot_queue(),
            current_track=room.current_track,
            skip_votes=len(room.skip_votes),
            threshold=skip_threshold(room.member_count),
        )
