"""
起名使用记录模型
"""
from datetime import datetime
from sqlalchemy import String, Integer, DateTime, ForeignKey, JSON
from sqlalchemy.orm import Mapped, mapped_column
from babyname.database import Base
from babyname.utils.timezone import utc_now_naive


class UsageRecord(Base):
    """使用记录表 - 每次成功起名记录一条，写入后不再修改"""
    __tablename__ = "usage_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("authorization_codes.id"), index=True
    )
    code: Mapped[str] = mapped_column(String(32))
    user_id: Mapped[str] = mapped_column(String(32), index=True)
    device_id: Mapped[str] = mapped_column(String(128))
    baby_info: Mapped[dict] = mapped_column(JSON)  # 起名输入参数
    ai_result: Mapped[dict] = mapped_column(JSON)  # {"names": [...]}
    generation_time: Mapped[int] = mapped_column(Integer, nullable=True)  # 毫秒
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now_naive, index=True
    )
