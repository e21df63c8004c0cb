"""
syncroom.services.vote_skip
~~~~~~~~~~~~~~~~~~~~~~~~~~~

跳过投票协调器。

每个房间的投票状态绑定在当前曲目上（``Playing.votes``）:

- ``Idle`` 时投票直接忽略，不广播；
- ``Playing`` 时记票（同一连接重复投票不重复计数），按当前成员数重新计算
  ``threshold = ceil(成员数 / 2)``，无条件广播 ``vote_update``；
- 票数达到阈值时交给 ``PlaybackCoordinator.advance`` 切到下一首，
  整个过程只产生一次 ``track_skipped``。
"""
from __future__ import annotations

import math

from syncroom.core.logging import get_logger
from syncroom.schemas.room_events import VoteUpdateEvent
from syncroom.services.connection_registry import Transport
from syncroom.services.membership import member_ids
from syncroom.services.playback import PlaybackCoordinator
from syncroom.services.room_table import Playing, RoomTable

logger = get_logger(__name__)


def skip_threshold(member_count: int) -> int:
    """跳过所需票数：成员数的一半向上取整。"""
    return math.ceil(member_count / 2)


class VoteSkipCoordinator:
    def __init__(
        self,
        table: RoomTable,
        playback: PlaybackCoordinator,
        transport: Transport,
    ) -> None:
        self.table = table
        self.playback = playback
        self.transport = transport

    def cast_vote(self, room_id: str, channel_id: str) -> bool:
        """投一票跳过当前曲目。返回本次是否触发了跳过。

        房间不存在、房间空闲或投票者不是成员时不做任何事。
        """
        room = self.table.get(room_id)
        if room is None or not isinstance(room.playback, Playing):
            return False
        if not room.is_member(channel_id):
            logger.debug("非成员投票已忽略 | room=%s | channel=%s", room_id, channel_id)
            return False

        state = room.playback
        state.votes.add(channel_id)
        votes = len(state.votes)
        threshold = skip_threshold(room.member_count)
        self.transport.broadcast(
            member_ids(room), VoteUpdateEvent(votes=votes, threshold=threshold),
        )
        logger.debug("跳过投票 | room=%s | %d/%d", room_id, votes, threshold)

        if votes < threshold:
            return False
        self.playback.advance(room)
        return True
