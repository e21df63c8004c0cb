"""
syncroom.core.settings
~~~~~~~~~~~~~~~~~~~~~~

集中式配置管理，基于 pydantic-settings 自动从 ``.env`` 文件加载。

支持多环境配置（dev / test / prod），加载顺序为:
  1. 环境变量（最高优先级）
  2. ``.env.{ENVIRONMENT}`` 环境专属文件
  3. ``.env`` 基础文件
  4. 字段默认值（最低优先级）
"""
from __future__ import annotations

import os
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# 读取当前环境标识（在 Settings 类定义之前，用于决定加载哪个 .env 文件）
_CURRENT_ENV: str = os.getenv("ENVIRONMENT", "dev")

_DEFAULT_LOG_LEVELS: dict[str, str] = {"dev": "INFO", "test": "DEBUG", "prod": "WARNING"}


class Settings(BaseSettings):
    """全局配置对象，字段值按如下优先级加载：环境变量 > .env.{env} > .env > 默认值。"""

    # ── 基础 ──────────────────────────────────────────────────────────
    PROJECT_NAME: str = Field(default="SyncRoom Backend", description="项目名称")
    VERSION: str = Field(default="0.1.0", description="版本号")
    ENVIRONMENT: Literal["dev", "test", "prod"] = Field(
        default="dev",
        description="运行环境：dev / test / prod",
    )

    # ── 服务 ──────────────────────────────────────────────────────────
    HOST: str = Field(default="0.0.0.0", description="服务监听地址")
    PORT: int = Field(default=5000, description="服务监听端口")
    LOG_LEVEL: str | None = Field(default=None, description="日志级别；不设置时按环境推断")
    ALLOWED_ORIGINS: list[str] = Field(
        default=["http://localhost:5173"],
        description="prod 环境允许的前端来源",
    )

    # ── 房间 ──────────────────────────────────────────────────────────
    ROOM_GRACE_PERIOD: float = Field(
        default=60.0,
        gt=0,
        description="房间变空后延迟删除的宽限期（秒）",
    )

    # ── WebSocket ─────────────────────────────────────────────────────
    WS_OUTBOX_SIZE: int = Field(
        default=256,
        ge=1,
        description="每个连接的待发送消息队列上限，超出即丢弃",
    )
    WS_REACTION_INTERVAL: float = Field(
        default=0.5,
        ge=0,
        description="同一连接两次表情反应之间的最小间隔（秒），0 表示不限流",
    )

    # ── REST 限流 ─────────────────────────────────────────────────────
    API_RATE_LIMIT: str = Field(default="10/second", description="REST 接口限流规则")

    # ── Pydantic Settings ─────────────────────────────────────────────
    # 后列出的文件覆盖先列出的，因此 .env.{env} 放在 .env 之后
    model_config = SettingsConfigDict(
        env_file=(".env", f".env.{_CURRENT_ENV}"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── 派生属性 ──────────────────────────────────────────────────────

    @property
    def is_prod(self) -> bool:
        return self.ENVIRONMENT == "prod"

    @property
    def dev_mode(self) -> bool:
        """dev 环境同时打开 FastAPI debug 与 uvicorn 热重载。"""
        return self.ENVIRONMENT == "dev"

    @property
    def effective_log_level(self) -> str:
        """显式的 ``LOG_LEVEL`` 优先，否则按环境取默认级别。

        test 环境默认 DEBUG，被丢弃的帧与意图都会留下日志。
        """
        if self.LOG_LEVEL:
            return self.LOG_LEVEL.upper()
        return _DEFAULT_LOG_LEVELS[self.ENVIRONMENT]

    @property
    def cors_origins(self) -> list[str]:
        """prod 只放行 ``ALLOWED_ORIGINS``，其余环境放开全部来源。"""
        return self.ALLOWED_ORIGINS if self.is_prod else ["*"]


@lru_cache
def get_settings() -> Settings:
    """获取全局 Settings 单例（带缓存，避免重复解析 .env）。"""
    return Settings()


settings: Settings = get_settings()
