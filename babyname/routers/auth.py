"""
授权路由 - 授权码激活、Token 恢复、授权状态
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from babyname.config import get_settings
from babyname.database import get_db
from babyname.schemas.auth import (
    AuthStatusResponse,
    TokenPayload,
    TokenResponse,
    ValidateCodeRequest,
)
from babyname.schemas.common import ApiResponse
from babyname.services.auth_service import AuthService
from babyname.utils.rate_limiter import RateLimiter
from babyname.utils.request_context import get_client_ip
from babyname.utils.security import get_current_payload

settings = get_settings()
router = APIRouter()

auth_rate_limiter = RateLimiter(
    times=settings.auth_rate_limit_times,
    seconds=settings.auth_rate_limit_window_seconds,
    scope="auth",
)


@router.post(
    "/validate",
    response_model=ApiResponse[TokenResponse],
    dependencies=[Depends(auth_rate_limiter)],
)
async def validate_code(
    data: ValidateCodeRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """验证并激活授权码"""
    result = await AuthService(db).activate(data.code, data.device_id, get_client_ip(request))
    return ApiResponse(data=result)


@router.post(
    "/recover",
    response_model=ApiResponse[TokenResponse],
    dependencies=[Depends(auth_rate_limiter)],
)
async def recover_token(
    data: ValidateCodeRequest,
    db: AsyncSession = Depends(get_db),
):
    """同一设备恢复 Token"""
    result = await AuthService(db).recover(data.code, data.device_id)
    return ApiResponse(data=result)


@router.get("/status", response_model=ApiResponse[AuthStatusResponse])
async def auth_status(
    payload: TokenPayload = Depends(get_current_payload),
    db: AsyncSession = Depends(get_db),
):
    """查询授权状态"""
    result = await AuthService(db).status(payload.user_id)
    return ApiResponse(data=result)
