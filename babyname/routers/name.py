"""
起名路由
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from babyname.context import AppContext, get_context
from babyname.database import get_db
from babyname.schemas.auth import TokenPayload
from babyname.schemas.common import ApiResponse
from babyname.schemas.name import (
    HistoryDetailResponse,
    HistoryResponse,
    NameInput,
    NameResponse,
    RateLimitStatus,
    UsageStats,
)
from babyname.services.name_service import NameService
from babyname.utils.security import get_current_payload

router = APIRouter()


def get_name_service(
    db: AsyncSession = Depends(get_db),
    ctx: AppContext = Depends(get_context),
) -> NameService:
    return NameService(db, ctx)


@router.post("/generate", response_model=ApiResponse[NameResponse])
async def generate_names(
    data: NameInput,
    payload: TokenPayload = Depends(get_current_payload),
    service: NameService = Depends(get_name_service),
):
    """生成名字（每个用户 30 秒冷却）"""
    result = await service.generate(payload, data)
    return ApiResponse(data=result)


@router.get("/history", response_model=ApiResponse[HistoryResponse])
async def get_history(
    limit: int = Query(100, ge=1, le=100),
    offset: int = Query(0, ge=0),
    payload: TokenPayload = Depends(get_current_payload),
    service: NameService = Depends(get_name_service),
):
    """获取起名历史"""
    result = await service.history(payload.user_id, limit, offset)
    return ApiResponse(data=result)


@router.get("/history/{record_id}", response_model=ApiResponse[HistoryDetailResponse])
async def get_history_detail(
    record_id: str,
    payload: TokenPayload = Depends(get_current_payload),
    service: NameService = Depends(get_name_service),
):
    result = await service.history_detail(payload.user_id, record_id)
    return ApiResponse(data=result)


@router.get("/stats", response_model=ApiResponse[UsageStats])
async def get_stats(
    payload: TokenPayload = Depends(get_current_payload),
    service: NameService = Depends(get_name_service),
):
    result = await service.stats(payload.user_id)
    return ApiResponse(data=result)


@router.get("/rate-limit", response_model=ApiResponse[RateLimitStatus])
async def get_rate_limit_status(
    payload: TokenPayload = Depends(get_current_payload),
    service: NameService = Depends(get_name_service),
):
    """查询剩余冷却时间"""
    result = await service.rate_limit_status(payload.user_id)
    return ApiResponse(data=result)
