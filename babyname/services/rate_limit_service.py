"""
起名频率限制服务

基于用户 ID 的冷却时间控制：同一用户两次起名请求之间至少间隔 cooldown 秒。

- 配置了 Redis 时使用 Redis 存储上次请求时间戳（支持多进程部署，依赖 EX 过期）
- 未配置 Redis 时使用进程内存字典，超过阈值后顺带清理过期条目
- 存储出错时放行请求（fail open），保证服务可用
"""
import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import redis.asyncio as redis

from babyname.utils.mask import mask_code

logger = logging.getLogger(__name__)

KEY_PREFIX = "ratelimit:name:"


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class RateLimitResult:
    """频率限制结果"""
    allowed: bool
    wait_seconds: int = 0


class RedisCooldownStore:
    """Redis 时间戳存储"""

    def __init__(self, client: redis.Redis):
        self.client = client

    async def get(self, key: str) -> Optional[int]:
        raw = await self.client.get(key)
        if raw is None:
            return None
        return int(raw)

    async def set(self, key: str, timestamp_ms: int, ttl_seconds: int) -> None:
        await self.client.set(key, str(timestamp_ms), ex=ttl_seconds)

    async def delete(self, key: str) -> None:
        await self.client.delete(key)

    async def close(self) -> None:
        await self.client.aclose()


class MemoryCooldownStore:
    """进程内存时间戳存储（单进程降级方案）"""

    def __init__(self, max_entries: int = 10000, clock: Callable[[], int] = _now_ms):
        self.max_entries = max_entries
        self.clock = clock
        self._entries: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, key: str) -> Optional[int]:
        return self._entries.get(key)

    async def set(self, key: str, timestamp_ms: int, ttl_seconds: int) -> None:
        self._entries[key] = timestamp_ms
        if len(self._entries) > self.max_entries:
            self.prune(ttl_seconds)

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def prune(self, ttl_seconds: int) -> None:
        """清理已过冷却期的条目"""
        now = self.clock()
        expire_ms = ttl_seconds * 1000
        expired = [key for key, ts in self._entries.items() if now - ts >= expire_ms]
        for key in expired:
            del self._entries[key]
        logger.info("内存缓存清理完成", extra={"size": len(self._entries), "removed": len(expired)})

    async def close(self) -> None:
        self._entries.clear()


class NameRateLimiter:
    """
    起名请求冷却限制

    使用方式:
        limiter = NameRateLimiter(store, cooldown_seconds=30)
        result = await limiter.check_limit(user_id)
        if not result.allowed:
            raise RateLimitExceeded(result.wait_seconds)
    """

    def __init__(
        self,
        store,
        cooldown_seconds: int = 30,
        clock: Callable[[], int] = _now_ms,
    ):
        self.store = store
        self.cooldown_seconds = cooldown_seconds
        self.clock = clock

    @classmethod
    def from_redis(cls, client: Optional[redis.Redis], cooldown_seconds: int = 30, max_entries: int = 10000):
        if client is not None:
            return cls(RedisCooldownStore(client), cooldown_seconds)
        return cls(MemoryCooldownStore(max_entries), cooldown_seconds)

    @staticmethod
    def _key(user_id: str) -> str:
        return f"{KEY_PREFIX}{user_id}"

    def _remaining(self, last_request_ms: Optional[int], now_ms: int) -> int:
        """距离冷却结束的秒数，0 表示可以请求"""
        if last_request_ms is None:
            return 0
        elapsed = now_ms - last_request_ms
        window = self.cooldown_seconds * 1000
        if elapsed >= window:
            return 0
        return math.ceil((window - elapsed) / 1000)

    async def check_limit(self, user_id: str) -> RateLimitResult:
        """检查频率限制，允许时记录本次请求时间"""
        key = self._key(user_id)
        try:
            now = self.clock()
            wait_seconds = self._remaining(await self.store.get(key), now)
            if wait_seconds > 0:
                logger.warning("频率限制触发", extra={"user": mask_code(user_id), "wait_seconds": wait_seconds})
                return RateLimitResult(allowed=False, wait_seconds=wait_seconds)

            await self.store.set(key, now, self.cooldown_seconds)
            return RateLimitResult(allowed=True)
        except Exception as exc:
            # 出错时允许请求，避免影响正常使用
            logger.error("频率限制检查失败: %s", exc)
            return RateLimitResult(allowed=True)

    async def get_wait_seconds(self, user_id: str) -> int:
        """获取用户剩余等待时间（只读，不记录）"""
        try:
            return self._remaining(await self.store.get(self._key(user_id)), self.clock())
        except Exception as exc:
            logger.error("获取等待时间失败: %s", exc)
            return 0

    async def reset_limit(self, user_id: str) -> None:
        try:
            await self.store.delete(self._key(user_id))
        except Exception as exc:
            logger.error("重置频率限制失败: %s", exc)

    async def close(self) -> None:
        await self.store.close()
