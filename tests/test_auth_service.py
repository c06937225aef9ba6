from datetime import timedelta

import pytest

from babyname.models.authorization_code import AuthorizationCode, CodeStatus
from babyname.services.auth_service import AuthService
from babyname.utils.errors import (
    CodeAlreadyUsed,
    CodeExpired,
    CodeFormatInvalid,
    CodeNotFound,
    DeviceMismatch,
    InvalidToken,
)
from babyname.utils.security import create_access_token
from babyname.utils.timezone import utc_now_naive

CODE = "BABY-AAAA-BBBB-CCCC"


@pytest.mark.anyio
async def test_activate_issues_token_with_code_claims(db_session, seed_code):
    await seed_code(CODE)
    service = AuthService(db_session)

    result = await service.activate(CODE, "dev1", "10.0.0.1")
    await db_session.commit()

    assert result.recovered is False
    assert result.message == "激活成功"
    payload = service.verify(result.token)
    assert payload.user_id == CODE
    assert payload.device_id == "dev1"
    assert payload.code == CODE
    assert payload.exp - payload.iat == 90 * 24 * 3600


@pytest.mark.anyio
@pytest.mark.parametrize("code", ["BABY-AAAA-BBBB", "baby-aaaa-bbbb-cccc", "CODE-AAAA-BBBB-CCCC", ""])
async def test_activate_rejects_bad_format(db_session, code):
    with pytest.raises(CodeFormatInvalid):
        await AuthService(db_session).activate(code, "dev1")


@pytest.mark.anyio
async def test_activate_unknown_code(db_session):
    with pytest.raises(CodeNotFound):
        await AuthService(db_session).activate(CODE, "dev1")


@pytest.mark.anyio
async def test_activate_twice_fails_with_already_used(db_session, seed_code):
    await seed_code(CODE)
    service = AuthService(db_session)
    await service.activate(CODE, "dev1")
    await db_session.commit()

    with pytest.raises(CodeAlreadyUsed):
        await service.activate(CODE, "dev2")


@pytest.mark.anyio
async def test_activate_lost_race_fails_with_already_used(db_session, seed_code, monkeypatch):
    await seed_code(CODE)
    await AuthService(db_session).activate(CODE, "dev1")
    await db_session.commit()

    # 模拟并发：读到的还是未使用状态，但条件更新时已被其他请求激活
    service = AuthService(db_session)
    stale = AuthorizationCode(code=CODE, status=CodeStatus.UNUSED.value)

    async def stale_find_by_code(_code):
        return stale

    monkeypatch.setattr(service.store, "find_by_code", stale_find_by_code)

    with pytest.raises(CodeAlreadyUsed):
        await service.activate(CODE, "dev2")


@pytest.mark.anyio
async def test_expired_code_is_marked_and_rejected(db_session, seed_code):
    await seed_code(CODE, expires_at=utc_now_naive() - timedelta(days=1))
    service = AuthService(db_session)

    with pytest.raises(CodeExpired):
        await service.activate(CODE, "dev1")

    db_session.expire_all()
    record = await service.store.find_by_code(CODE)
    assert record.status == CodeStatus.EXPIRED.value

    with pytest.raises(CodeExpired):
        await service.activate(CODE, "dev1")


@pytest.mark.anyio
async def test_code_with_future_expiry_activates(db_session, seed_code):
    await seed_code(CODE, expires_at=utc_now_naive() + timedelta(days=1))
    result = await AuthService(db_session).activate(CODE, "dev1")
    assert result.token


@pytest.mark.anyio
async def test_recover_same_device(db_session, seed_code):
    await seed_code(CODE, status=CodeStatus.USED, device_id="dev1")
    service = AuthService(db_session)

    result = await service.recover(CODE, "dev1")

    assert result.recovered is True
    assert result.message == "Token恢复成功"
    assert service.verify(result.token).user_id == CODE


@pytest.mark.anyio
async def test_recover_other_device_is_rejected(db_session, seed_code):
    await seed_code(CODE, status=CodeStatus.USED, device_id="dev1")

    with pytest.raises(DeviceMismatch):
        await AuthService(db_session).recover(CODE, "dev2")


@pytest.mark.anyio
async def test_recover_unused_code_is_not_found(db_session, seed_code):
    await seed_code(CODE)

    with pytest.raises(CodeNotFound):
        await AuthService(db_session).recover(CODE, "dev1")


@pytest.mark.anyio
async def test_status_reports_masked_code(db_session, seed_code):
    service = AuthService(db_session)
    assert (await service.status(CODE)).activated is False

    await seed_code(CODE)
    assert (await service.status(CODE)).activated is False

    await service.activate(CODE, "dev1")
    status = await service.status(CODE)
    assert status.activated is True
    assert status.code == "BABY-AAAA-****"
    assert status.device_id == "dev1"
    assert status.activated_at.endswith("Z")


def test_verify_rejects_tampered_and_expired_tokens():
    token = create_access_token(CODE, "dev1", CODE)
    header, body, signature = token.split(".")
    tampered = ".".join([header, body, signature[::-1]])
    expired = create_access_token(CODE, "dev1", CODE, expires_delta=timedelta(seconds=-10))

    for bad_token in (tampered, expired, "not-a-token"):
        with pytest.raises(InvalidToken):
            AuthService.verify(bad_token)
