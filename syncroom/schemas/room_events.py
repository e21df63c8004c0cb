"""
syncroom.schemas.room_events
~~~~~~~~~~~~~~~~~~~~~~~~~~~~

房间实时通道的 Pydantic 模型：客户端意图（入站）与房间事件（出站）。

线上格式统一为 ``{"event": "<名称>", "data": {...}}``，``data`` 内的键名
使用 camelCase（``roomId``、``currentTrack`` …），Python 侧字段保持 snake_case，
通过 ``alias_generator=to_camel`` 双向映射。
"""
from __future__ import annotations

import json
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """所有线上模型的基类：camelCase 别名，且允许按字段名构造。"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── 房间成员与队列条目 ────────────────────────────────────────────────

class Participant(WireModel):
    """房间成员。``id`` 即其连接 ID，重连后会变化。"""

    id: str = Field(..., description="连接 ID")
    username: str = Field(..., description="显示名")


class QueuedTrack(WireModel):
    """队列条目：外部曲库返回的原始曲目数据 + 核心附加字段。

    曲库字段（``id``、``name``、``artists``、``album`` …）原样保留在
    ``model_extra`` 中，核心不做任何校验。
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow",
    )

    added_by: str = Field(..., description="点歌者的连接 ID")
    queued_at: int = Field(..., description="入队时间（毫秒时间戳）")

    @classmethod
    def from_catalog(cls, payload: dict[str, Any], added_by: str, queued_at: int) -> QueuedTrack:
        """用曲库数据构造队列条目，核心字段覆盖曲库里的同名键。"""
        return cls.model_validate({**payload, "addedBy": added_by, "queuedAt": queued_at})

    @property
    def track_id(self) -> Any:
        """曲库中的曲目 ID（可能不存在）。"""
        return (self.model_extra or {}).get("id")


# ── 出站事件 ──────────────────────────────────────────────────────────

class RoomEvent(WireModel):
    """出站事件基类。子类通过 ``event`` 声明事件名。"""

    event: ClassVar[str]

    def to_message(self) -> str:
        """序列化为一帧 WebSocket 文本消息。"""
        return json.dumps(
            {"event": self.event, "data": self.model_dump(mode="json", by_alias=True)},
            ensure_ascii=False,
        )


class RoomStateEvent(RoomEvent):
    """加入房间后单播给新成员的完整快照。"""

    event: ClassVar[str] = "room_state"

    members: list[Participant]
    queue: list[QueuedTrack]
    current_track: QueuedTrack | None


class UserJoinedEvent(RoomEvent):
    event: ClassVar[str] = "user_joined"

    user: Participant
    members: list[Participant]


class UserLeftEvent(RoomEvent):
    event: ClassVar[str] = "user_left"

    user_id: str
    members: list[Participant]


class TrackQueuedEvent(RoomEvent):
    event: ClassVar[str] = "track_queued"

    track: QueuedTrack
    queue: list[QueuedTrack]


class TrackChangedEvent(RoomEvent):
    """空闲房间入队后自动开始播放。"""

    event: ClassVar[str] = "track_changed"

    track: QueuedTrack
    queue: list[QueuedTrack]


class TrackSkippedEvent(RoomEvent):
    """投票跳过成功；``current_track`` 为 None 表示队列已空。"""

    event: ClassVar[str] = "track_skipped"

    current_track: QueuedTrack | None
    queue: list[QueuedTrack]


class VoteUpdateEvent(RoomEvent):
    event: ClassVar[str] = "vote_update"

    votes: int
    threshold: int


class PlaybackSyncEvent(RoomEvent):
    event: ClassVar[str] = "playback_sync"

    is_playing: Any = None
    position: Any = None


class ReactionAddedEvent(RoomEvent):
    event: ClassVar[str] = "reaction_added"

    user_id: str
    reaction: Any


# ── 入站意图 ──────────────────────────────────────────────────────────

class RoomIntent(WireModel):
    """所有意图都必须携带非空的 ``roomId``。"""

    room_id: str = Field(..., min_length=1)


class JoinRoomIntent(RoomIntent):
    username: str | None = None


class LeaveRoomIntent(RoomIntent):
    pass


class QueueTrackIntent(RoomIntent):
    track: dict[str, Any]


class VoteSkipIntent(RoomIntent):
    pass


class PlaybackUpdateIntent(RoomIntent):
    is_playing: Any = None
    position: Any = None


class TrackReactionIntent(RoomIntent):
    reaction: Any
