"""
tests.test_sync_relay
~~~~~~~~~~~~~~~~~~~~~

播放同步中继单元测试。
"""
from __future__ import annotations

from syncroom.schemas.room_events import PlaybackSyncEvent, ReactionAddedEvent
from syncroom.services.listening_system import ListeningSystem

from conftest import RecordingTransport


class TestPlaybackSyncRelay:
    def setup_room(self, system: ListeningSystem, transport: RecordingTransport) -> None:
        for channel_id in ("alice0001", "bob000002", "carol0003"):
            system.membership.join("R1", channel_id, None)
        transport.clear()

    def test_relay_excludes_sender(
        self, system: ListeningSystem, transport: RecordingTransport,
    ) -> None:
        self.setup_room(system, transport)

        system.relay.relay("R1", "alice0001", True, 42.5)

        assert transport.names_for("alice0001") == []
        for channel_id in ("bob000002", "carol0003"):
            event = transport.last_for(channel_id)
            assert isinstance(event, PlaybackSyncEvent)
            assert (event.is_playing, event.position) == (True, 42.5)

    def test_relay_is_stateless(
        self, system: ListeningSystem, transport: RecordingTransport,
    ) -> None:
        self.setup_room(system, transport)
        room = system.table.get("R1")

        system.relay.relay("R1", "alice0001", False, 0.0)

        assert room.current_track is None
        assert list(room.queue) == []

    def test_reaction_includes_sender(
        self, system: ListeningSystem, transport: RecordingTransport,
    ) -> None:
        self.setup_room(system, transport)

        system.relay.reaction("R1", "bob000002", "🔥")

        for channel_id in ("alice0001", "bob000002", "carol0003"):
            event = transport.last_for(channel_id)
            assert isinstance(event, ReactionAddedEvent)
            assert event.user_id == "bob000002"
            assert event.reaction == "🔥"

    def test_unknown_room_is_noop(
        self, system: ListeningSystem, transport: RecordingTransport,
    ) -> None:
        system.relay.relay("nowhere", "alice0001", True, 1.0)
        system.relay.reaction("nowhere", "alice0001", "👍")

        assert transport.sent == []
        assert "nowhere" not in system.table

    def test_playback_sync_wire_shape(self) -> None:
        message = PlaybackSyncEvent(is_playing=True, position=3.0).to_message()
        assert message == '{"event": "playback_sync", "data": {"isPlaying": true, "position": 3.0}}'
