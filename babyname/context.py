"""
应用上下文

进程级共享资源（数据库引擎、Redis、HTTP 客户端、频率限制器、起名生成器）在启动时
统一创建，挂到 app.state.ctx 上，通过依赖注入给路由使用，关闭时统一释放。
"""
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

import httpx
import redis.asyncio as redis
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from babyname.config import Settings

if TYPE_CHECKING:
    from babyname.services.name_generator import NameGenerator
    from babyname.services.rate_limit_service import NameRateLimiter
    from babyname.utils.rate_limiter import MemoryWindowCounter

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    redis: Optional[redis.Redis]
    http_client: httpx.AsyncClient
    name_rate_limiter: "NameRateLimiter"
    name_generator: "NameGenerator"
    request_counter: "MemoryWindowCounter"
    started_at: float = field(default_factory=time.monotonic)

    async def aclose(self) -> None:
        """释放所有外部连接"""
        await self.http_client.aclose()
        await self.name_rate_limiter.close()
        await self.engine.dispose()
        logger.info("应用资源已释放")


def build_context(
    settings: Settings,
    *,
    engine: Optional[AsyncEngine] = None,
    redis_client: Optional[redis.Redis] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> AppContext:
    """根据配置创建应用上下文，测试时可注入替身"""
    from babyname.database import create_engine_from_settings, create_session_factory
    from babyname.services.ai_client import AiCompletionClient
    from babyname.services.name_generator import NameGenerator
    from babyname.services.rate_limit_service import NameRateLimiter
    from babyname.utils.rate_limiter import MemoryWindowCounter
    from babyname.utils.redis_client import create_redis_client

    if engine is None:
        engine = create_engine_from_settings(settings)
    if redis_client is None:
        redis_client = create_redis_client(settings)
    if http_client is None:
        http_client = httpx.AsyncClient(timeout=settings.ai_timeout_seconds)

    ai_client = AiCompletionClient(settings, http_client)
    return AppContext(
        settings=settings,
        engine=engine,
        session_factory=create_session_factory(engine),
        redis=redis_client,
        http_client=http_client,
        name_rate_limiter=NameRateLimiter.from_redis(
            redis_client,
            cooldown_seconds=settings.name_rate_limit_seconds,
            max_entries=settings.memory_rate_limit_max_entries,
        ),
        name_generator=NameGenerator(ai_client, timeout=settings.ai_timeout_seconds),
        request_counter=MemoryWindowCounter(settings.memory_rate_limit_max_entries),
    )


def get_context(request: Request) -> AppContext:
    """获取应用上下文依赖"""
    return request.app.state.ctx
