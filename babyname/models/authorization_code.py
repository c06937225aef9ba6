"""
授权码模型
"""
import secrets
import uuid
from datetime import datetime
from enum import Enum
from sqlalchemy import String, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column
from babyname.database import Base
from babyname.utils.timezone import utc_now_naive

# 排除易混淆字符: I, O, 0, 1
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_PREFIX = "BABY"


class CodeStatus(str, Enum):
    """授权码状态"""
    UNUSED = "UNUSED"    # 未使用
    USED = "USED"        # 已激活
    EXPIRED = "EXPIRED"  # 已过期


def generate_authorization_code(prefix: str = CODE_PREFIX) -> str:
    """生成随机授权码，格式 BABY-XXXX-XXXX-XXXX"""
    segments = [
        "".join(secrets.choice(CODE_ALPHABET) for _ in range(4))
        for _ in range(3)
    ]
    return "-".join([prefix, *segments])


class AuthorizationCode(Base):
    """授权码表"""
    __tablename__ = "authorization_codes"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    code: Mapped[str] = mapped_column(
        String(32), unique=True, index=True, default=generate_authorization_code
    )
    status: Mapped[str] = mapped_column(
        String(16), default=CodeStatus.UNUSED.value, index=True
    )
    device_id: Mapped[str] = mapped_column(String(128), nullable=True, index=True)
    activated_at: Mapped[datetime] = mapped_column(DateTime, nullable=True)
    activated_ip: Mapped[str] = mapped_column(String(45), nullable=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=True)
    batch_id: Mapped[str] = mapped_column(String(64), nullable=True, index=True)  # 批次ID
    # metadata 是 DeclarativeBase 保留属性名
    extra_metadata: Mapped[str] = mapped_column("metadata", Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now_naive, onupdate=utc_now_naive
    )

    def is_expired(self, now: datetime) -> bool:
        """已激活的授权码永久有效，未激活的超过 expires_at 即过期"""
        if self.status == CodeStatus.USED.value:
            return False
        if self.status == CodeStatus.EXPIRED.value:
            return True
        return self.expires_at is not None and now > self.expires_at
