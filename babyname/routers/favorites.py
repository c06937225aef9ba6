"""
收藏路由
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from babyname.database import get_db
from babyname.schemas.auth import TokenPayload
from babyname.schemas.common import ApiResponse
from babyname.schemas.favorite import (
    AddFavoriteRequest,
    FavoriteCheckResponse,
    FavoriteCreatedResponse,
    FavoriteListResponse,
    MessageResponse,
)
from babyname.services.favorite_service import FavoriteService
from babyname.utils.errors import ApiError
from babyname.utils.security import get_current_payload

router = APIRouter()

VALID_FILTERS = ("all", "high", "new")


@router.get("", response_model=ApiResponse[FavoriteListResponse])
async def list_favorites(
    filter: str = Query("all"),
    payload: TokenPayload = Depends(get_current_payload),
    db: AsyncSession = Depends(get_db),
):
    """收藏列表"""
    if filter not in VALID_FILTERS:
        raise ApiError("筛选参数无效，必须是 all、high 或 new", code="INVALID_FILTER")
    result = await FavoriteService(db).list(payload.user_id, filter)
    return ApiResponse(data=result)


@router.get("/check", response_model=ApiResponse[FavoriteCheckResponse])
async def check_favorite(
    name_id: Optional[str] = Query(None, alias="nameId"),
    payload: TokenPayload = Depends(get_current_payload),
    db: AsyncSession = Depends(get_db),
):
    """检查名字是否已收藏"""
    if not name_id:
        raise ApiError("nameId不能为空", code="INVALID_NAME_ID")
    result = await FavoriteService(db).check(payload.user_id, name_id)
    return ApiResponse(data=result)


@router.post("", response_model=ApiResponse[FavoriteCreatedResponse])
async def add_favorite(
    data: AddFavoriteRequest,
    payload: TokenPayload = Depends(get_current_payload),
    db: AsyncSession = Depends(get_db),
):
    favorite = await FavoriteService(db).add(payload.user_id, data.name_data)
    return ApiResponse(data=FavoriteCreatedResponse(id=str(favorite.id), message="收藏成功"))


@router.delete("/{favorite_id}", response_model=ApiResponse[MessageResponse])
async def remove_favorite(
    favorite_id: str,
    payload: TokenPayload = Depends(get_current_payload),
    db: AsyncSession = Depends(get_db),
):
    await FavoriteService(db).remove(payload.user_id, favorite_id)
    return ApiResponse(data=MessageResponse(message="取消收藏成功"))
