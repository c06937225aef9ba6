"""
API 速率限制器

按客户端 IP 的固定窗口计数，用于授权码验证/恢复等匿名接口：
- 配置了 Redis：INCR + EXPIRE 计数
- 未配置 Redis：进程内存计数
- Redis 出错时放行
"""
import logging
import math
import time
from typing import Callable, Dict, Tuple

from fastapi import Depends, Request

from babyname.context import AppContext, get_context
from babyname.utils.errors import RateLimitExceeded
from babyname.utils.mask import mask_ip
from babyname.utils.request_context import get_client_ip

logger = logging.getLogger(__name__)


class MemoryWindowCounter:
    """进程内存固定窗口计数器"""

    def __init__(self, max_entries: int = 10000, clock: Callable[[], float] = time.monotonic):
        self.max_entries = max_entries
        self.clock = clock
        self._windows: Dict[str, Tuple[int, float]] = {}

    def hit(self, key: str, times: int, seconds: int) -> int:
        """
        记录一次请求

        Returns:
            需要等待的秒数，0 表示允许
        """
        now = self.clock()
        count, started = self._windows.get(key, (0, now))
        if now - started >= seconds:
            count, started = 0, now
        if count >= times:
            return max(1, math.ceil(seconds - (now - started)))
        self._windows[key] = (count + 1, started)
        if len(self._windows) > self.max_entries:
            self._prune(now, seconds)
        return 0

    def _prune(self, now: float, seconds: int) -> None:
        for key in [k for k, (_, started) in self._windows.items() if now - started >= seconds]:
            del self._windows[key]


class RateLimiter:
    def __init__(self, times: int = 10, seconds: int = 900, scope: str = "api"):
        """
        Args:
            times: 时间窗口内允许的请求次数
            seconds: 时间窗口（秒）
            scope: 计数键前缀，区分不同接口组
        """
        self.times = times
        self.seconds = seconds
        self.scope = scope

    async def __call__(self, request: Request, ctx: AppContext = Depends(get_context)):
        client_ip = get_client_ip(request)
        key = f"rate_limit:{self.scope}:ip:{client_ip}"

        if ctx.redis is None:
            wait_seconds = ctx.request_counter.hit(key, self.times, self.seconds)
        else:
            wait_seconds = await self._hit_redis(ctx, key)

        if wait_seconds > 0:
            logger.warning("触发接口限流", extra={"scope": self.scope, "ip": mask_ip(client_ip)})
            raise RateLimitExceeded(wait_seconds, f"操作过于频繁，请{math.ceil(wait_seconds / 60)}分钟后再试")

    async def _hit_redis(self, ctx: AppContext, key: str) -> int:
        try:
            current = await ctx.redis.get(key)
            if current and int(current) >= self.times:
                ttl = await ctx.redis.ttl(key)
                return ttl if ttl and ttl > 0 else self.seconds

            # 增加计数
            async with ctx.redis.pipeline() as pipe:
                await pipe.incr(key)
                if not current:
                    await pipe.expire(key, self.seconds)
                await pipe.execute()
        except Exception as exc:
            logger.warning("限流计数失败，放行请求: %s", exc)
        return 0
