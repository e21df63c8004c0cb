"""
tests.test_room_api
~~~~~~~~~~~~~~~~~~~

REST 查询接口与 WebSocket 实时通道的集成测试（FastAPI TestClient）。
"""
from __future__ import annotations

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from syncroom.main import app


@pytest.fixture()
def client() -> Iterator[TestClient]:
    # 进入上下文才会执行 lifespan，创建 ListeningSystem
    with TestClient(app) as test_client:
        yield test_client


def join(ws, room_id: str, username: str) -> dict:
    """发送 join_room，读掉 user_joined，返回 room_state 的 data。"""
    ws.send_json({"event": "join_room", "data": {"roomId": room_id, "username": username}})
    assert ws.receive_json()["event"] == "user_joined"
    state = ws.receive_json()
    assert state["event"] == "room_state"
    return state["data"]


class TestRestEndpoints:
    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["environment"] == "test"
        assert body["rooms"] == 0

    def test_unknown_room_returns_404(self, client: TestClient) -> None:
        response = client.get("/api/rooms/nowhere")

        assert response.status_code == 404
        assert response.json()["code"] == 404
        # 查询不会顺带创建房间
        assert client.get("/api/rooms").json()["data"] == []


class TestWebSocketChannel:
    def test_join_and_queue_flow(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as ws:
            state = join(ws, "R1", "Ann")
            assert state["queue"] == []
            assert state["currentTrack"] is None
            assert [m["username"] for m in state["members"]] == ["Ann"]
            my_id = state["members"][0]["id"]

            ws.send_json({
                "event": "queue_track",
                "data": {"roomId": "R1", "track": {"id": "T1", "name": "Song"}},
            })
            queued = ws.receive_json()
            assert queued["event"] == "track_queued"
            assert queued["data"]["track"]["addedBy"] == my_id
            assert isinstance(queued["data"]["track"]["queuedAt"], int)

            changed = ws.receive_json()
            assert changed["event"] == "track_changed"
            assert changed["data"]["track"]["id"] == "T1"
            assert changed["data"]["queue"] == []

            detail = client.get("/api/rooms/R1").json()["data"]
            assert detail["currentTrack"]["name"] == "Song"
            assert detail["threshold"] == 1

    def test_malformed_frames_are_ignored(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as ws:
            ws.send_text("not json")
            ws.send_json({"event": "join_room"})
            ws.send_json({"no_event": True})
            ws.send_json({"event": "vote_skip", "data": {"roomId": "R1"}})

            state = join(ws, "R1", "Ann")
            assert len(state["members"]) == 1

    def test_binary_frame_does_not_drop_channel(self, client: TestClient) -> None:
        """二进制帧直接忽略，连接继续可用。"""
        with client.websocket_connect("/ws") as ws:
            ws.send_bytes(b"\x00\x01")

            state = join(ws, "R1", "Ann")
            assert [m["username"] for m in state["members"]] == ["Ann"]
            assert client.get("/api/rooms").json()["data"][0]["memberCount"] == 1

    def test_two_clients_share_room(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as ws_a:
            join(ws_a, "R2", "Ann")

            with client.websocket_connect("/ws") as ws_b:
                b_state = join(ws_b, "R2", "Bob")
                assert [m["username"] for m in b_state["members"]] == ["Ann", "Bob"]
                b_id = b_state["members"][1]["id"]

                joined = ws_a.receive_json()
                assert joined["event"] == "user_joined"
                assert joined["data"]["user"]["username"] == "Bob"

                ws_b.send_json({
                    "event": "playback_update",
                    "data": {"roomId": "R2", "isPlaying": True, "position": 12.5},
                })
                sync = ws_a.receive_json()
                assert sync == {
                    "event": "playback_sync",
                    "data": {"isPlaying": True, "position": 12.5},
                }

                ws_b.send_json({"event": "track_reaction", "data": {"roomId": "R2", "reaction": "🎉"}})
                for ws in (ws_a, ws_b):
                    reaction = ws.receive_json()
                    assert reaction["event"] == "reaction_added"
                    assert reaction["data"] == {"userId": b_id, "reaction": "🎉"}

            # B 断线：A 收到 user_left
            left = ws_a.receive_json()
            assert left["event"] == "user_left"
            assert left["data"]["userId"] == b_id
            assert [m["username"] for m in left["data"]["members"]] == ["Ann"]
