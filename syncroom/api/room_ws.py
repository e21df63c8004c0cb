"""
syncroom.api.room_ws
~~~~~~~~~~~~~~~~~~~~

WebSocket 实时通道 —— 每个客户端一条连接，可同时加入多个房间。

消息协议（双向均为 JSON 文本帧）::

    {"event": "join_room", "data": {"roomId": "abc", "username": "Ann"}}

客户端 → 服务端：``join_room`` / ``leave_room`` / ``queue_track`` /
``vote_skip`` / ``playback_update`` / ``track_reaction``；断开连接视为离开全部房间。

服务端 → 客户端：``room_state`` / ``user_joined`` / ``user_left`` /
``track_queued`` / ``track_changed`` / ``track_skipped`` / ``vote_update`` /
``playback_sync`` / ``reaction_added``。
"""
from __future__ import annotations

import asyncio
import json

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from syncroom.core.logging import channel_id_ctx_var, get_logger
from syncroom.core.rate_limit import WebSocketRateLimiter
from syncroom.core.settings import settings
from syncroom.services.connection_registry import ConnectionRegistry
from syncroom.services.listening_system import ListeningSystem

logger = get_logger(__name__)

router: APIRouter = APIRouter()


def parse_frame(raw: str) -> tuple[str, object] | None:
    """解析一帧客户端消息，返回 ``(event, data)``；格式不对返回 None。"""
    try:
        message = json.loads(raw)
    except ValueError:
        return None
    if not isinstance(message, dict) or not isinstance(message.get("event"), str):
        return None
    return message["event"], message.get("data")


@router.websocket("/ws")
async def websocket_room_endpoint(websocket: WebSocket) -> None:
    """收听房间实时通道。

    接收循环逐条解析并同步执行意图（一条处理完才读下一条），
    发送由该连接自己的写循环 ``Channel.pump()`` 负责。

    Args:
        websocket: FastAPI WebSocket 连接对象。
    """
    system: ListeningSystem = websocket.app.state.listening_system
    connections: ConnectionRegistry = websocket.app.state.connections

    channel = await connections.connect(websocket)
    channel_id = channel.channel_id
    token = channel_id_ctx_var.set(channel_id)
    logger.info("连接建立 | 在线: %d", connections.online_count)

    # 表情反应按连接限流，其余意图不限
    reaction_limiter = WebSocketRateLimiter(interval_seconds=settings.WS_REACTION_INTERVAL)

    async def receive_loop() -> None:
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(message.get("code", 1000))
                raw = message.get("text")
                if raw is None:
                    logger.debug("二进制消息已忽略")
                    continue
                parsed = parse_frame(raw)
                if parsed is None:
                    logger.debug("无法解析的消息已忽略")
                    continue
                event, data = parsed
                if event == "track_reaction" and not reaction_limiter.is_allowed(channel_id):
                    logger.debug("表情反应过快，已丢弃")
                    continue
                system.dispatch(channel_id, event, data)
        except WebSocketDisconnect:
            pass  # 正常断开
        except Exception as e:
            logger.error("WebSocket 接收异常: %s", e, exc_info=True)
        finally:
            # 断线清理与关闭写循环
            system.disconnect(channel_id)
            connections.disconnect(channel_id)
            reaction_limiter.remove_client(channel_id)

    try:
        await asyncio.gather(receive_loop(), channel.pump())
    finally:
        logger.info("连接断开 | 在线: %d", connections.online_count)
        channel_id_ctx_var.reset(token)
