import re

import pytest

from babyname.models.authorization_code import (
    CODE_ALPHABET,
    CodeStatus,
    generate_authorization_code,
)
from babyname.services.code_store import CodeStore

CODE = "BABY-AAAA-BBBB-CCCC"


def test_generated_codes_use_unambiguous_alphabet():
    for _ in range(50):
        code = generate_authorization_code()
        assert re.match(r"^BABY-[A-Z0-9]{4}-[A-Z0-9]{4}-[A-Z0-9]{4}$", code)
        assert all(ch in CODE_ALPHABET for ch in code[5:].replace("-", ""))
        assert not set("IO01") & set(code[5:])


@pytest.mark.anyio
async def test_create_many_skips_duplicates(db_session):
    store = CodeStore(db_session)

    inserted = await store.create_many([CODE, "BABY-DDDD-EEEE-FFFF", CODE], batch_id="batch-1")
    await db_session.commit()
    assert inserted == 2

    inserted = await store.create_many([CODE, "BABY-GGGG-HHHH-JJJJ"], batch_id="batch-2")
    await db_session.commit()
    assert inserted == 1

    record = await store.find_by_code(CODE)
    assert record.status == CodeStatus.UNUSED.value
    assert record.batch_id == "batch-1"


@pytest.mark.anyio
async def test_activate_code_sets_device_and_timestamp(db_session):
    store = CodeStore(db_session)
    await store.create_many([CODE])
    await db_session.commit()

    activated = await store.activate_code(CODE, "dev1", "10.0.0.1")
    await db_session.commit()

    assert activated.status == CodeStatus.USED.value
    assert activated.device_id == "dev1"
    assert activated.activated_ip == "10.0.0.1"
    assert activated.activated_at is not None
    assert (await store.find_by_user_id(CODE)).device_id == "dev1"
    assert (await store.find_by_device_id("dev1")).code == CODE


@pytest.mark.anyio
async def test_activate_code_only_succeeds_once(db_session):
    store = CodeStore(db_session)
    await store.create_many([CODE])
    await db_session.commit()

    first = await store.activate_code(CODE, "dev1")
    second = await store.activate_code(CODE, "dev2")
    await db_session.commit()

    assert first is not None
    assert second is None
    assert (await store.find_by_code(CODE)).device_id == "dev1"


@pytest.mark.anyio
async def test_update_status(db_session):
    store = CodeStore(db_session)
    await store.create_many([CODE])

    assert await store.update_status(CODE, CodeStatus.EXPIRED) is True
    assert await store.update_status("BABY-ZZZZ-ZZZZ-ZZZZ", CodeStatus.EXPIRED) is False

    db_session.expire_all()
    assert (await store.find_by_code(CODE)).status == CodeStatus.EXPIRED.value


@pytest.mark.anyio
async def test_update_status_with_expected_status_skips_changed_rows(db_session):
    store = CodeStore(db_session)
    await store.create_many([CODE])
    await store.activate_code(CODE, "dev1")

    assert await store.update_status(CODE, CodeStatus.EXPIRED, expected=CodeStatus.UNUSED) is False

    db_session.expire_all()
    record = await store.find_by_code(CODE)
    assert record.status == CodeStatus.USED.value
    assert record.device_id == "dev1"
