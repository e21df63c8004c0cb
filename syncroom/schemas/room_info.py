"""
syncroom.schemas.room_info
~~~~~~~~~~~~~~~~~~~~~~~~~~

房间查询接口（REST）的响应模型。
"""
from __future__ import annotations

from pydantic import Field

from syncroom.schemas.room_events import Participant, QueuedTrack, WireModel


class RoomSummaryData(WireModel):
    """房间摘要信息。"""

    room_id: str = Field(..., description="房间唯一标识")
    member_count: int = Field(..., description="当前成员数")
    queue_length: int = Field(..., description="待播队列长度")
    current_track: QueuedTrack | None = Field(None, description="正在播放的曲目")
    skip_votes: int = Field(..., description="当前曲目已收到的跳过票数")


class RoomDetailData(WireModel):
    """房间完整快照。"""

    room_id: str = Field(..., description="房间唯一标识")
    members: list[Participant] = Field(..., description="成员列表（按加入顺序）")
    queue: list[QueuedTrack] = Field(..., description="待播队列（FIFO）")
    current_track: QueuedTrack | None = Field(None, description="正在播放的曲目")
    skip_votes: int = Field(..., description="当前曲目已收到的跳过票数")
    threshold: int = Field(..., description="跳过所需票数")
