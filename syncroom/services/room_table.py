"""
syncroom.services.room_table
~~~~~~~~~~~~~~~~~~~~~~~~~~~~

房间表 —— 房间 ID 到房间状态的权威内存映射。

每个 ``Room`` 持有成员列表、FIFO 待播队列，以及显式的播放状态:

- ``Idle``：没有正在播放的曲目，此时不接受跳过投票；
- ``Playing(track, votes)``：正在播放 ``track``，``votes`` 只属于这一首曲目。

票数集合挂在 ``Playing`` 上，曲目一换就随旧状态一起丢弃，
因此"空闲时仍有票数"这种非法状态无法表示。

房间表只做数据结构层面的读写，不广播任何事件；
广播由各协调器（membership / playback / vote_skip）负责。
"""
from __future__ import annotations

from collections import deque
from collections.abc import Iterator

from syncroom.schemas.room_events import Participant, QueuedTrack


class Idle:
    """空闲：没有当前曲目。"""

    current_track: QueuedTrack | None = None

    @property
    def votes(self) -> frozenset[str]:
        return frozenset()

    def __repr__(self) -> str:
        return "Idle()"


IDLE = Idle()


class Playing:
    """正在播放某首曲目，并累计针对这首曲目的跳过票。

    Attributes:
        current_track: 当前曲目。
        votes: 已投跳过票的连接 ID 集合（本曲目纪元内有效）。
    """

    def __init__(self, track: QueuedTrack) -> None:
        self.current_track: QueuedTrack = track
        self.votes: set[str] = set()

    def __repr__(self) -> str:
        return f"Playing(track={self.current_track.track_id!r}, votes={len(self.votes)})"


PlaybackState = Idle | Playing


class Room:
    """一个收听房间。

    Attributes:
        room_id: 房间唯一标识（客户端提供）。
        members: 成员列表，按加入顺序排列。
        queue: 待播队列，入队顺序即播放顺序。
        playback: 播放状态（``IDLE`` 或 ``Playing``）。
    """

    def __init__(self, room_id: str) -> None:
        self.room_id = room_id
        self.members: list[Participant] = []
        self.queue: deque[QueuedTrack] = deque()
        self.playback: PlaybackState = IDLE

    # ── 只读视图 ──────────────────────────────────────────────────────

    @property
    def current_track(self) -> QueuedTrack | None:
        return self.playback.current_track

    @property
    def skip_votes(self) -> frozenset[str]:
        return frozenset(self.playback.votes)

    @property
    def member_count(self) -> int:
        return len(self.members)

    @property
    def is_empty(self) -> bool:
        return not self.members

    def get_member(self, channel_id: str) -> Participant | None:
        for member in self.members:
            if member.id == channel_id:
                return member
        return None

    def is_member(self, channel_id: str) -> bool:
        return self.get_member(channel_id) is not None

    # ── 成员变更 ──────────────────────────────────────────────────────

    def add_member(self, participant: Participant) -> Participant:
        """追加成员；已在房间内时返回原有成员，不重复添加。"""
        existing = self.get_member(participant.id)
        if existing is not None:
            return existing
        self.members.append(participant)
        return participant

    def remove_member(self, channel_id: str) -> bool:
        """移除成员及其跳过票。返回该连接此前是否为成员。"""
        before = len(self.members)
        self.members = [m for m in self.members if m.id != channel_id]
        if isinstance(self.playback, Playing):
            self.playback.votes.discard(channel_id)
        return len(self.members) != before

    # ── 队列与播放 ────────────────────────────────────────────────────

    def promote_next(self) -> QueuedTrack | None:
        """把队首提升为当前曲目（队列为空则进入空闲），票数随之清零。"""
        if self.queue:
            self.playback = Playing(self.queue.popleft())
        else:
            self.playback = IDLE
        return self.current_track

    def snapshot_members(self) -> list[Participant]:
        return list(self.members)

    def snapshot_queue(self) -> list[QueuedTrack]:
        return list(self.queue)


class RoomTable:
    """房间表：房间 ID → ``Room``。

    单事件循环内由各意图处理函数独占读写，不需要加锁。
    """

    def __init__(self) -> None:
        self._rooms: dict[str, Room] = {}

    def get(self, room_id: str) -> Room | None:
        return self._rooms.get(room_id)

    def create(self, room_id: str) -> Room:
        room = Room(room_id)
        self._rooms[room_id] = room
        return room

    def remove(self, room_id: str) -> Room | None:
        return self._rooms.pop(room_id, None)

    def rooms_of(self, channel_id: str) -> list[Room]:
        """该连接作为成员所在的全部房间。"""
        return [room for room in self._rooms.values() if room.is_member(channel_id)]

    def __contains__(self, room_id: object) -> bool:
        return room_id in self._rooms

    def __iter__(self) -> Iterator[Room]:
        return iter(list(self._rooms.values()))

    def __len__(self) -> int:
        return len(self._rooms)
