"""
收藏服务
"""
import logging
from typing import Optional

from pydantic import ValidationError
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from babyname.models.favorite import Favorite
from babyname.schemas.favorite import (
    FavoriteCheckResponse,
    FavoriteItem,
    FavoriteListResponse,
)
from babyname.schemas.name import NameResult
from babyname.utils.errors import DataCorrupted, Forbidden, NotFound
from babyname.utils.mask import mask_code
from babyname.utils.timezone import to_iso_utc

logger = logging.getLogger(__name__)

MAX_FAVORITES_PER_USER = 100
HIGH_SCORE_THRESHOLD = 96
FAVORITE_LIST_LIMIT = 100


def to_favorite_item(favorite: Favorite) -> FavoriteItem:
    try:
        name_data = NameResult.model_validate(favorite.name_data)
    except ValidationError as exc:
        logger.error("收藏数据损坏", extra={"favorite_id": favorite.id})
        raise DataCorrupted() from exc
    return FavoriteItem(
        id=str(favorite.id),
        user_id=favorite.user_id,
        name_id=favorite.name_id,
        name_data=name_data,
        created_at=to_iso_utc(favorite.created_at),
        updated_at=to_iso_utc(favorite.updated_at),
    )


class FavoriteService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _find(self, user_id: str, name_id: str) -> Optional[Favorite]:
        result = await self.db.execute(
            select(Favorite).where(Favorite.user_id == user_id, Favorite.name_id == name_id)
        )
        return result.scalar_one_or_none()

    async def count(self, user_id: str) -> int:
        total = await self.db.scalar(
            select(func.count(Favorite.id)).where(Favorite.user_id == user_id)
        )
        return total or 0

    async def add(self, user_id: str, name_data: NameResult) -> Favorite:
        """添加收藏，同一名字重复收藏时返回已有记录"""
        existing = await self._find(user_id, name_data.id)
        if existing is not None:
            logger.info("重复收藏", extra={"user": mask_code(user_id), "name_id": name_data.id})
            return existing

        if await self.count(user_id) >= MAX_FAVORITES_PER_USER:
            raise Forbidden(f"收藏数量已达上限（{MAX_FAVORITES_PER_USER}个），请先删除部分收藏")

        favorite = Favorite(
            user_id=user_id,
            name_id=name_data.id,
            name_data=name_data.model_dump(),
            score=name_data.score,
        )
        self.db.add(favorite)
        await self.db.flush()
        logger.info("收藏添加成功", extra={"user": mask_code(user_id), "favorite_id": favorite.id})
        return favorite

    async def remove(self, user_id: str, favorite_id: str) -> None:
        try:
            favorite_pk = int(favorite_id)
        except (TypeError, ValueError):
            raise NotFound("收藏不存在")

        favorite = await self.db.get(Favorite, favorite_pk)
        if favorite is None:
            raise NotFound("收藏不存在")
        if favorite.user_id != user_id:
            raise Forbidden("无权删除此收藏")

        await self.db.delete(favorite)
        await self.db.flush()
        logger.info("收藏删除成功", extra={"user": mask_code(user_id), "favorite_id": favorite_pk})

    async def list(self, user_id: str, filter: str = "all") -> FavoriteListResponse:
        """
        收藏列表，按收藏时间倒序

        filter:
            all  全部
            high 评分 >= 96
            new  全部（按时间倒序，前端用于展示最新收藏）
        """
        conditions = [Favorite.user_id == user_id]
        if filter == "high":
            conditions.append(Favorite.score >= HIGH_SCORE_THRESHOLD)

        total = await self.db.scalar(select(func.count(Favorite.id)).where(*conditions))
        result = await self.db.execute(
            select(Favorite)
            .where(*conditions)
            .order_by(Favorite.created_at.desc(), Favorite.id.desc())
            .limit(FAVORITE_LIST_LIMIT)
        )
        return FavoriteListResponse(
            favorites=[to_favorite_item(item) for item in result.scalars().all()],
            total=total or 0,
        )

    async def check(self, user_id: str, name_id: str) -> FavoriteCheckResponse:
        favorite = await self._find(user_id, name_id)
        if favorite is None:
            return FavoriteCheckResponse(is_favorite=False)
        return FavoriteCheckResponse(is_favorite=True, favorite_id=str(favorite.id))
