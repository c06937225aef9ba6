"""
收藏模型
"""
from datetime import datetime
from sqlalchemy import String, Integer, DateTime, JSON, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from babyname.database import Base
from babyname.utils.timezone import utc_now_naive


class Favorite(Base):
    """收藏表"""
    __tablename__ = "favorites"
    __table_args__ = (
        UniqueConstraint("user_id", "name_id", name="uq_favorites_user_name"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(32), index=True)
    name_id: Mapped[str] = mapped_column(String(36))
    name_data: Mapped[dict] = mapped_column(JSON)
    score: Mapped[int] = mapped_column(Integer, default=0, index=True)  # 冗余字段，便于高分筛选
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now_naive, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now_naive, onupdate=utc_now_naive
    )
