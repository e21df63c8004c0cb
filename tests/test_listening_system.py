"""
tests.test_listening_system
~~~~~~~~~~~~~~~~~~~~~~~~~~~

ListeningSystem 意图分发与查询接口单元测试。
"""
from __future__ import annotations

from typing import Any

import pytest

from syncroom.services.listening_system import ListeningSystem

from conftest import RecordingTransport


class TestDispatch:
    """测试从线上 data 到协调器的分发与格式校验。"""

    def test_full_session_flow(
        self, system: ListeningSystem, transport: RecordingTransport,
    ) -> None:
        assert system.dispatch("alice0001", "join_room", {"roomId": "R1", "username": "Ann"})
        assert system.dispatch("bob000002", "join_room", {"roomId": "R1"})
        assert system.dispatch("alice0001", "queue_track", {"roomId": "R1", "track": {"id": "T1"}})
        assert system.dispatch("bob000002", "vote_skip", {"roomId": "R1"})
        assert system.dispatch(
            "alice0001", "playback_update", {"roomId": "R1", "isPlaying": True, "position": 10},
        )
        assert system.dispatch("bob000002", "track_reaction", {"roomId": "R1", "reaction": "❤️"})
        assert system.dispatch("bob000002", "leave_room", {"roomId": "R1"})

        assert transport.names_for("bob000002") == [
            "user_joined",
            "room_state",
            "track_queued",
            "track_changed",
            "vote_update",
            "track_skipped",
            "playback_sync",
            "reaction_added",
        ]
        assert transport.names_for("alice0001")[-1] == "user_left"

    @pytest.mark.parametrize(
        ("event", "data"),
        [
            ("join_room", {}),
            ("join_room", {"roomId": ""}),
            ("join_room", None),
            ("join_room", ["R1"]),
            ("queue_track", {"roomId": "R1"}),
            ("queue_track", {"roomId": "R1", "track": "not-an-object"}),
            ("track_reaction", {"roomId": "R1"}),
            ("vote_skip", {"room": "R1"}),
            ("unknown_event", {"roomId": "R1"}),
        ],
    )
    def test_malformed_intent_is_dropped(
        self,
        system: ListeningSystem,
        transport: RecordingTransport,
        event: str,
        data: Any,
    ) -> None:
        """格式错误的意图静默丢弃，不抛异常，也不改变状态。"""
        assert system.dispatch("alice0001", event, data) is False
        assert transport.sent == []
        assert len(system.table) == 0

    def test_relay_payloads_pass_through_unchanged(
        self, system: ListeningSystem, transport: RecordingTransport,
    ) -> None:
        """反应与播放进度是不透明负载，原样转发，不做类型或长度校验。"""
        system.dispatch("alice0001", "join_room", {"roomId": "R1"})
        system.dispatch("bob000002", "join_room", {"roomId": "R1"})
        transport.clear()

        long_reaction = "x" * 65
        assert system.dispatch("alice0001", "track_reaction", {"roomId": "R1", "reaction": long_reaction})
        assert system.dispatch(
            "alice0001", "track_reaction", {"roomId": "R1", "reaction": {"emoji": "fire"}},
        )
        assert system.dispatch(
            "alice0001", "playback_update", {"roomId": "R1", "isPlaying": "yes", "position": "1:23"},
        )

        assert transport.names_for("bob000002") == ["reaction_added", "reaction_added", "playback_sync"]
        first, second, sync = transport.events_for("bob000002")
        assert first.reaction == long_reaction
        assert second.reaction == {"emoji": "fire"}
        assert sync.is_playing == "yes"
        assert sync.position == "1:23"

    def test_snake_case_keys_also_accepted(self, system: ListeningSystem) -> None:
        assert system.dispatch("alice0001", "join_room", {"room_id": "R1"})
        assert "R1" in system.table

    def test_disconnect_without_rooms_is_noop(
        self, system: ListeningSystem, transport: RecordingTransport,
    ) -> None:
        system.disconnect("ghost0000")
        assert transport.sent == []


class TestQueries:
    """测试 REST 查询用的摘要与快照。"""

    def test_list_rooms(self, system: ListeningSystem) -> None:
        system.dispatch("alice0001", "join_room", {"roomId": "R1"})
        system.dispatch("alice0001", "queue_track", {"roomId": "R1", "track": {"id": "T1"}})
        system.dispatch("alice0001", "queue_track", {"roomId": "R1", "track": {"id": "T2"}})
        system.dispatch("bob000002", "join_room", {"roomId": "R2"})

        summaries = {s.room_id: s for s in system.list_rooms()}

        assert set(summaries) == {"R1", "R2"}
        assert summaries["R1"].member_count == 1
        assert summaries["R1"].queue_length == 1
        assert summaries["R1"].current_track.track_id == "T1"
        assert summaries["R2"].current_track is None

    def test_room_detail(self, system: ListeningSystem) -> None:
        for channel_id in ("alice0001", "bob000002", "carol0003"):
            system.dispatch(channel_id, "join_room", {"roomId": "R1"})
        system.dispatch("alice0001", "queue_track", {"roomId": "R1", "track": {"id": "T1"}})
        system.dispatch("alice0001", "vote_skip", {"roomId": "R1"})

        detail = system.room_detail("R1")

        assert [m.id for m in detail.members] == ["alice0001", "bob000002", "carol0003"]
        assert detail.skip_votes == 1
        assert detail.threshold == 2
        assert detail.model_dump(by_alias=True)["currentTrack"]["id"] == "T1"

    def test_room_detail_does_not_create_room(self, system: ListeningSystem) -> None:
        assert system.room_detail("missing") is None
        assert "missing" not in system.table
