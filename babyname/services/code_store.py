"""
授权码存储

所有授权码读写都经过这里；激活使用条件更新（status = UNUSED）保证同一授权码只能激活一次。
"""
import logging
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from babyname.models.authorization_code import AuthorizationCode, CodeStatus
from babyname.utils.mask import mask_code
from babyname.utils.timezone import utc_now_naive

logger = logging.getLogger(__name__)


class CodeStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_code(self, code: str) -> Optional[AuthorizationCode]:
        result = await self.db.execute(
            select(AuthorizationCode).where(AuthorizationCode.code == code)
        )
        return result.scalar_one_or_none()

    async def find_by_user_id(self, user_id: str) -> Optional[AuthorizationCode]:
        """用户 ID 即授权码本身"""
        return await self.find_by_code(user_id)

    async def find_by_device_id(self, device_id: str) -> Optional[AuthorizationCode]:
        result = await self.db.execute(
            select(AuthorizationCode)
            .where(
                AuthorizationCode.device_id == device_id,
                AuthorizationCode.status == CodeStatus.USED.value,
            )
            .order_by(AuthorizationCode.activated_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def activate_code(
        self,
        code: str,
        device_id: str,
        client_ip: Optional[str] = None,
    ) -> Optional[AuthorizationCode]:
        """
        激活授权码（条件更新）

        Returns:
            激活后的授权码；条件更新未命中（已被并发激活）时返回 None
        """
        now = utc_now_naive()
        result = await self.db.execute(
            update(AuthorizationCode)
            .where(
                AuthorizationCode.code == code,
                AuthorizationCode.status == CodeStatus.UNUSED.value,
            )
            .values(
                status=CodeStatus.USED.value,
                device_id=device_id,
                activated_at=now,
                activated_ip=client_ip,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            logger.warning("授权码激活条件更新未命中", extra={"code": mask_code(code)})
            return None

        refreshed = await self.db.execute(
            select(AuthorizationCode)
            .where(AuthorizationCode.code == code)
            .execution_options(populate_existing=True)
        )
        return refreshed.scalar_one()

    async def create_many(
        self,
        codes: Iterable[str],
        batch_id: Optional[str] = None,
        expires_at: Optional[datetime] = None,
    ) -> int:
        """
        批量创建授权码，已存在的跳过

        Returns:
            实际新增的数量
        """
        unique_codes = list(dict.fromkeys(codes))
        if not unique_codes:
            return 0

        existing = await self.db.execute(
            select(AuthorizationCode.code).where(AuthorizationCode.code.in_(unique_codes))
        )
        existing_codes = set(existing.scalars().all())

        new_rows = [
            AuthorizationCode(
                code=code,
                status=CodeStatus.UNUSED.value,
                batch_id=batch_id,
                expires_at=expires_at,
            )
            for code in unique_codes
            if code not in existing_codes
        ]
        self.db.add_all(new_rows)
        await self.db.flush()
        inserted = len(new_rows)

        logger.info("批量创建授权码", extra={"batch_id": batch_id, "inserted": inserted})
        return inserted

    async def update_status(
        self, code: str, status: CodeStatus, expected: Optional[CodeStatus] = None
    ) -> bool:
        """更新授权码状态；传入 expected 时仅在当前状态一致时更新"""
        stmt = update(AuthorizationCode).where(AuthorizationCode.code == code)
        if expected is not None:
            stmt = stmt.where(AuthorizationCode.status == expected.value)
        result = await self.db.execute(
            stmt
            .values(status=status.value, updated_at=utc_now_naive())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0
