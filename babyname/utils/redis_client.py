"""
Redis 客户端
"""
import logging
from typing import Optional

import redis.asyncio as redis

from babyname.config import Settings

logger = logging.getLogger(__name__)


def create_redis_client(settings: Settings) -> Optional[redis.Redis]:
    """根据配置创建 Redis 客户端，未配置 REDIS_URL 时返回 None"""
    if not settings.redis_url:
        logger.info("未配置 Redis，频率限制将使用内存缓存")
        return None

    # 连接池配置，防止高并发下连接池耗尽
    client = redis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=50,
        # 超时配置
        socket_timeout=5,
        socket_connect_timeout=5,
        # 重试配置
        retry_on_timeout=True,
        retry_on_error=[redis.ConnectionError, redis.TimeoutError],
        # 健康检查
        health_check_interval=30,
    )
    logger.info("Redis 频率限制已启用")
    return client
