"""
起名服务 - 生成名字、历史记录、使用统计
"""
import logging
import time
from datetime import timedelta
from typing import List, Tuple

from pydantic import ValidationError
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from babyname.context import AppContext
from babyname.models.authorization_code import CodeStatus
from babyname.models.usage_record import UsageRecord
from babyname.schemas.auth import TokenPayload
from babyname.schemas.name import (
    AIResult,
    BabyInfo,
    HistoryDetailResponse,
    HistoryRecord,
    HistoryResponse,
    NameInput,
    NameResponse,
    RateLimitStatus,
    UsageStats,
)
from babyname.services.code_store import CodeStore
from babyname.utils.errors import (
    ApiError,
    DataCorrupted,
    Forbidden,
    InvalidToken,
    NotFound,
    RateLimitExceeded,
)
from babyname.utils.mask import mask_code
from babyname.utils.metrics import NAME_GENERATION_LATENCY
from babyname.utils.timezone import to_china_time, to_iso_utc, utc_now_naive

logger = logging.getLogger(__name__)

RECENT_DAYS = 7
RECENT_SAMPLE_SIZE = 10


def to_history_record(record: UsageRecord) -> HistoryRecord:
    """数据库记录转换为历史记录，存储数据不合法时抛出 DataCorrupted"""
    try:
        baby_info = BabyInfo.model_validate(record.baby_info)
        ai_result = AIResult.model_validate(record.ai_result)
    except ValidationError as exc:
        logger.error("使用记录数据损坏", extra={"record_id": record.id})
        raise DataCorrupted() from exc

    return HistoryRecord(
        id=str(record.id),
        user_id=record.user_id,
        date=to_china_time(record.created_at).date().isoformat(),
        surname=baby_info.surname,
        gender=baby_info.gender,
        birth_date=baby_info.birth_date,
        birth_time=baby_info.birth_time,
        requirements=baby_info.requirements,
        names=ai_result.names,
        created_at=to_iso_utc(record.created_at),
    )


class NameService:
    def __init__(self, db: AsyncSession, ctx: AppContext):
        self.db = db
        self.ctx = ctx
        self.store = CodeStore(db)

    async def generate(self, payload: TokenPayload, params: NameInput) -> NameResponse:
        """
        生成名字

        1. 确认授权码已激活
        2. 频率限制
        3. 调用 AI 生成
        4. 写入使用记录
        """
        start = time.perf_counter()
        user_id = payload.user_id
        logger.info("开始起名流程", extra={"user": mask_code(user_id), "gender": params.gender})

        auth_code = await self.store.find_by_user_id(user_id)
        if auth_code is None or auth_code.status != CodeStatus.USED.value:
            raise InvalidToken("用户未激活或授权状态异常")

        limit = await self.ctx.name_rate_limiter.check_limit(user_id)
        if not limit.allowed:
            raise RateLimitExceeded(limit.wait_seconds, "操作过于频繁，请稍后再试")

        baby_info = BabyInfo(**params.model_dump())
        try:
            names = await self.ctx.name_generator.generate(baby_info)
        except ApiError as exc:
            elapsed = int((time.perf_counter() - start) * 1000)
            logger.error(
                "起名失败",
                extra={"user": mask_code(user_id), "code": exc.code, "elapsed_ms": elapsed},
            )
            raise

        duration = time.perf_counter() - start
        generation_time = int(duration * 1000)
        NAME_GENERATION_LATENCY.observe(duration)

        self.db.add(
            UsageRecord(
                code_id=auth_code.id,
                code=auth_code.code,
                user_id=user_id,
                device_id=payload.device_id,
                baby_info=baby_info.model_dump(),
                ai_result=AIResult(names=names).model_dump(),
                generation_time=generation_time,
            )
        )
        await self.db.flush()

        logger.info(
            "起名完成",
            extra={"user": mask_code(user_id), "count": len(names), "generation_time_ms": generation_time},
        )
        return NameResponse(names=names, generation_time=generation_time)

    async def _find_by_user(self, user_id: str, limit: int, offset: int) -> Tuple[List[UsageRecord], int]:
        total = await self.db.scalar(
            select(func.count(UsageRecord.id)).where(UsageRecord.user_id == user_id)
        )
        result = await self.db.execute(
            select(UsageRecord)
            .where(UsageRecord.user_id == user_id)
            .order_by(UsageRecord.created_at.desc(), UsageRecord.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all()), total or 0

    async def history(self, user_id: str, limit: int = 100, offset: int = 0) -> HistoryResponse:
        records, total = await self._find_by_user(user_id, limit, offset)
        return HistoryResponse(
            records=[to_history_record(record) for record in records],
            total=total,
            has_more=offset + len(records) < total,
        )

    async def history_detail(self, user_id: str, record_id: str) -> HistoryDetailResponse:
        try:
            record_pk = int(record_id)
        except (TypeError, ValueError):
            raise ApiError("无效的记录ID")

        record = await self.db.get(UsageRecord, record_pk)
        if record is None:
            raise NotFound("记录不存在")
        if record.user_id != user_id:
            logger.warning("越权访问历史记录", extra={"user": mask_code(user_id), "record_id": record_pk})
            raise Forbidden("无权访问此记录")
        return HistoryDetailResponse(record=to_history_record(record))

    async def stats(self, user_id: str) -> UsageStats:
        """总使用次数，以及最近 10 条中近 7 天内的次数"""
        records, total = await self._find_by_user(user_id, RECENT_SAMPLE_SIZE, 0)
        since = utc_now_naive() - timedelta(days=RECENT_DAYS)
        recent = sum(1 for record in records if record.created_at > since)
        return UsageStats(total_usage=total, recent_usage=recent)

    async def rate_limit_status(self, user_id: str) -> RateLimitStatus:
        wait_seconds = await self.ctx.name_rate_limiter.get_wait_seconds(user_id)
        return RateLimitStatus(wait_seconds=wait_seconds, can_generate=wait_seconds == 0)
