"""
syncroom
~~~~~~~~

多人同步收听房间后端 —— 房间协调核心 + WebSocket 实时通道。
"""
