"""
安全相关工具：JWT、Bearer 认证依赖、指标接口 Basic Auth
"""
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import (
    HTTPAuthorizationCredentials,
    HTTPBasic,
    HTTPBasicCredentials,
    HTTPBearer,
)
from jose import JWTError, jwt
from pydantic import ValidationError

from babyname.config import get_settings
from babyname.schemas.auth import TokenPayload
from babyname.utils.errors import InvalidToken

settings = get_settings()
security = HTTPBearer(auto_error=False)
metrics_security = HTTPBasic(auto_error=False)


def create_access_token(user_id: str, device_id: str, code: str,
                        expires_delta: Optional[timedelta] = None) -> str:
    """创建 JWT Token，userId 即授权码"""
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(days=settings.jwt_access_token_expire_days))
    to_encode = {
        "userId": user_id,
        "deviceId": device_id,
        "code": code,
        "iat": int(now.timestamp()),
        "exp": int(expire.timestamp()),
    }
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> TokenPayload:
    """解码并校验 JWT Token，任何失败都视为 INVALID_TOKEN"""
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
        return TokenPayload.model_validate(payload)
    except (JWTError, ValidationError):
        raise InvalidToken()


async def get_current_payload(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> TokenPayload:
    """获取当前用户的 Token 载荷"""
    if not credentials or not credentials.credentials:
        raise InvalidToken("未提供认证信息")
    return decode_token(credentials.credentials)


def verify_metrics_basic_auth(
    credentials: Optional[HTTPBasicCredentials] = Depends(metrics_security),
) -> None:
    """配置了账号密码时 /metrics 需要 Basic Auth"""
    if not settings.metrics_basic_auth_user or not settings.metrics_basic_auth_password:
        return
    valid = (
        credentials is not None
        and secrets.compare_digest(credentials.username, settings.metrics_basic_auth_user)
        and secrets.compare_digest(credentials.password, settings.metrics_basic_auth_password)
    )
    if not valid:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="需要认证",
            headers={"WWW-Authenticate": "Basic"},
        )
