"""
syncroom.services.connection_registry
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

连接注册表 —— 为每个在线客户端维护一条双向通道，并提供单播 / 广播能力。

协调器是同步代码，不能在处理意图的中途 ``await`` 网络 I/O，
因此每个 ``Channel`` 自带一个有界发送队列（outbox）：

- 协调器调用 ``send`` / ``broadcast`` 时只做 ``put_nowait``，立即返回；
- 连接自己的 ``pump()`` 协程按入队顺序把消息真正写到 WebSocket。

队列满时直接丢弃该帧并告警（广播是尽力而为、至多一次）。
"""
from __future__ import annotations

import asyncio
import secrets
from collections.abc import Iterable
from typing import Protocol

from fastapi import WebSocket

from syncroom.core.logging import get_logger
from syncroom.schemas.room_events import RoomEvent

logger = get_logger(__name__)


class Transport(Protocol):
    """协调器使用的最小发送接口。"""

    def send(self, channel_id: str, event: RoomEvent) -> None: ...

    def broadcast(
        self,
        channel_ids: Iterable[str],
        event: RoomEvent,
        exclude: str | None = None,
    ) -> None: ...


def generate_channel_id() -> str:
    """生成 20 位十六进制连接 ID。"""
    return secrets.token_hex(10)


class Channel:
    """一条在线连接。

    Attributes:
        channel_id: 连接唯一标识，同时作为房间成员 ID。
        websocket: 底层 WebSocket。
        outbox: 待发送的文本帧队列，``None`` 为结束信号。
    """

    def __init__(self, channel_id: str, websocket: WebSocket, outbox_size: int) -> None:
        self.channel_id = channel_id
        self.websocket = websocket
        self.outbox: asyncio.Queue[str | None] = asyncio.Queue(maxsize=outbox_size)
        self.closed = False

    def push(self, message: str) -> bool:
        """非阻塞地放入一帧消息。返回是否成功入队。"""
        if self.closed:
            return False
        try:
            self.outbox.put_nowait(message)
        except asyncio.QueueFull:
            logger.warning("发送队列已满，丢弃消息 | channel=%s", self.channel_id)
            return False
        return True

    def close(self) -> None:
        """停止接收新消息，并让 ``pump()`` 在发完积压消息后退出。"""
        if self.closed:
            return
        self.closed = True
        try:
            self.outbox.put_nowait(None)
        except asyncio.QueueFull:
            # 队列已满时丢掉最旧的一帧，给结束信号腾位置
            self.outbox.get_nowait()
            self.outbox.put_nowait(None)

    async def pump(self) -> None:
        """把 outbox 中的消息依次写入 WebSocket，直到收到结束信号或发送失败。"""
        while True:
            message = await self.outbox.get()
            if message is None:
                break
            try:
                await self.websocket.send_text(message)
            except Exception as e:
                logger.warning("发送失败，停止该连接的写循环 | channel=%s | %s", self.channel_id, e)
                self.closed = True
                break


class ConnectionRegistry:
    """连接注册表：连接 ID → ``Channel``。

    实现 ``Transport`` 接口，未知或已关闭的连接会被静默跳过。
    """

    def __init__(self, outbox_size: int = 256) -> None:
        self.outbox_size = outbox_size
        self._channels: dict[str, Channel] = {}

    async def connect(self, websocket: WebSocket) -> Channel:
        """接受新连接，分配连接 ID 并加入注册表。"""
        await websocket.accept()
        channel = Channel(generate_channel_id(), websocket, self.outbox_size)
        self._channels[channel.channel_id] = channel
        return channel

    def disconnect(self, channel_id: str) -> None:
        """从注册表移除连接并关闭其发送队列。"""
        channel = self._channels.pop(channel_id, None)
        if channel is not None:
            channel.close()

    def get(self, channel_id: str) -> Channel | None:
        return self._channels.get(channel_id)

    def send(self, channel_id: str, event: RoomEvent) -> None:
        """单播一条事件。"""
        channel = self._channels.get(channel_id)
        if channel is not None:
            channel.push(event.to_message())

    def broadcast(
        self,
        channel_ids: Iterable[str],
        event: RoomEvent,
        exclude: str | None = None,
    ) -> None:
        """向一组连接广播同一条事件（只序列化一次）。"""
        message = event.to_message()
        for channel_id in channel_ids:
            if channel_id == exclude:
                continue
            channel = self._channels.get(channel_id)
            if channel is not None:
                channel.push(message)

    @property
    def online_count(self) -> int:
        """当前在线连接数。"""
        return len(self._channels)
