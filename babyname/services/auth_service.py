"""
授权服务 - 授权码激活、Token 恢复、授权状态查询

激活流程：
1. 校验授权码格式
2. 查询授权码，判断已使用 / 已过期
3. 条件更新为已激活（并发激活只有一个成功）
4. 签发 Token（userId 即授权码）
"""
import logging
import re
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from babyname.config import Settings, get_settings
from babyname.models.authorization_code import CodeStatus
from babyname.schemas.auth import AuthStatusResponse, TokenPayload, TokenResponse
from babyname.services.code_store import CodeStore
from babyname.utils.errors import (
    CodeAlreadyUsed,
    CodeExpired,
    CodeFormatInvalid,
    CodeNotFound,
    DeviceMismatch,
)
from babyname.utils.mask import mask_code, mask_device_id, mask_ip
from babyname.utils.security import create_access_token, decode_token
from babyname.utils.timezone import to_iso_utc, utc_now_naive

logger = logging.getLogger(__name__)

ACTIVATED_MESSAGE = "激活成功"
RECOVERED_MESSAGE = "Token恢复成功"


def code_pattern(prefix: str) -> "re.Pattern[str]":
    return re.compile(rf"^{re.escape(prefix)}-[A-Z0-9]{{4}}-[A-Z0-9]{{4}}-[A-Z0-9]{{4}}$")


class AuthService:
    def __init__(self, db: AsyncSession, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or get_settings()
        self.store = CodeStore(db)
        self._pattern = code_pattern(self.settings.code_prefix)

    def _check_format(self, code: str) -> None:
        if not self._pattern.match(code):
            raise CodeFormatInvalid()

    async def activate(self, code: str, device_id: str, client_ip: Optional[str] = None) -> TokenResponse:
        """激活授权码并签发 Token"""
        self._check_format(code)

        record = await self.store.find_by_code(code)
        if record is None:
            logger.info("授权码不存在", extra={"code": mask_code(code)})
            raise CodeNotFound()
        if record.status == CodeStatus.USED.value:
            raise CodeAlreadyUsed()
        if record.is_expired(utc_now_naive()):
            if record.status == CodeStatus.UNUSED.value:
                await self.store.update_status(code, CodeStatus.EXPIRED, expected=CodeStatus.UNUSED)
                await self.db.commit()
                logger.info("授权码已过期，标记为 EXPIRED", extra={"code": mask_code(code)})
            raise CodeExpired()

        activated = await self.store.activate_code(code, device_id, client_ip)
        if activated is None:
            raise CodeAlreadyUsed()

        logger.info(
            "授权码激活成功",
            extra={
                "code": mask_code(code),
                "device_id": mask_device_id(device_id),
                "ip": mask_ip(client_ip or ""),
            },
        )
        token = create_access_token(activated.code, device_id, activated.code)
        return TokenResponse(token=token, recovered=False, message=ACTIVATED_MESSAGE)

    async def recover(self, code: str, device_id: str) -> TokenResponse:
        """同一设备丢失 Token 后重新签发"""
        self._check_format(code)

        record = await self.store.find_by_code(code)
        if record is None or record.status != CodeStatus.USED.value:
            raise CodeNotFound()
        if record.device_id != device_id:
            logger.warning(
                "Token恢复设备不匹配",
                extra={"code": mask_code(code), "device_id": mask_device_id(device_id)},
            )
            raise DeviceMismatch()

        token = create_access_token(record.code, device_id, record.code)
        return TokenResponse(token=token, recovered=True, message=RECOVERED_MESSAGE)

    async def status(self, user_id: str) -> AuthStatusResponse:
        record = await self.store.find_by_user_id(user_id)
        if record is None or record.status != CodeStatus.USED.value:
            return AuthStatusResponse(activated=False)
        return AuthStatusResponse(
            activated=True,
            code=mask_code(record.code),
            device_id=record.device_id,
            activated_at=to_iso_utc(record.activated_at) if record.activated_at else None,
        )

    @staticmethod
    def verify(token: str) -> TokenPayload:
        return decode_token(token)
