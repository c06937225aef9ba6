"""
收藏相关 Schemas
"""
from typing import List, Optional

from babyname.schemas.common import CamelModel
from babyname.schemas.name import NameResult


class AddFavoriteRequest(CamelModel):
    name_data: NameResult


class FavoriteItem(CamelModel):
    id: str
    user_id: str
    name_id: str
    name_data: NameResult
    created_at: str
    updated_at: str


class FavoriteListResponse(CamelModel):
    favorites: List[FavoriteItem]
    total: int


class FavoriteCheckResponse(CamelModel):
    is_favorite: bool
    favorite_id: Optional[str] = None


class FavoriteCreatedResponse(CamelModel):
    id: str
    message: str


class MessageResponse(CamelModel):
    message: str
