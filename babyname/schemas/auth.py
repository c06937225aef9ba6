"""
授权相关 Schemas
"""
from typing import Optional
from pydantic import Field, field_validator

from babyname.schemas.common import CamelModel


class ValidateCodeRequest(CamelModel):
    """授权码验证/恢复请求"""
    code: str = Field(..., min_length=1, max_length=32)
    device_id: str = Field(..., min_length=1, max_length=128)

    @field_validator("code")
    @classmethod
    def normalize_code(cls, value: str) -> str:
        return value.strip().upper()

    @field_validator("device_id")
    @classmethod
    def validate_device_id(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("设备ID不能为空")
        return cleaned


class TokenResponse(CamelModel):
    """验证/恢复结果"""
    token: str
    recovered: bool
    message: str


class AuthStatusResponse(CamelModel):
    """授权状态"""
    activated: bool
    code: Optional[str] = None
    device_id: Optional[str] = None
    activated_at: Optional[str] = None


class TokenPayload(CamelModel):
    """JWT 载荷"""
    user_id: str
    device_id: str
    code: str
    iat: Optional[int] = None
    exp: Optional[int] = None
