import json
import re
from datetime import datetime
from typing import Optional

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

import babyname.models  # noqa: F401
from babyname.config import Settings
from babyname.context import build_context
from babyname.database import Base, create_session_factory
from babyname.main import app
from babyname.models.authorization_code import AuthorizationCode, CodeStatus

AI_URL = "https://ai.test/v1/chat/completions"
GIVEN_NAMES = [
    "子轩", "浩然", "梓涵", "欣怡", "宇航", "思远", "若曦", "雨桐", "书瑶", "嘉懿",
    "明哲", "清扬", "安然", "沐阳", "知夏", "景行", "语嫣", "承泽", "君浩", "静姝",
    "一诺", "锦程", "芷若", "晨曦", "星辰", "致远", "婉清", "博文", "予安", "南乔",
]
COUNT_PATTERN = re.compile(r"生成(\d+)个精选名字")
SURNAME_PATTERN = re.compile(r"- 姓氏：(\S+)")


def ai_completion(content: str) -> httpx.Response:
    return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": content}}]})


class FakeAiBackend:
    """模拟 chat/completions 接口，按提示词中的数量返回不重复的名字"""

    def __init__(self) -> None:
        self.calls = 0
        self.generated = 0
        self.prompts = []
        self.queued = []

    def queue(self, *responses) -> None:
        """按调用顺序返回指定响应，用完后恢复正常生成"""
        self.queued.extend(responses)

    def names_payload(self, surname: str, count: int) -> str:
        names = []
        for _ in range(count):
            given = GIVEN_NAMES[self.generated % len(GIVEN_NAMES)]
            self.generated += 1
            names.append(
                {
                    "id": "model-id",
                    "name": given,
                    "full_name": f"{surname}{given}",
                    "pinyin": "wang zi xuan",
                    "meaning": "寓意美好",
                    "cultural_source": "无",
                    "wuxing_analysis": "",
                    "score": 95,
                    "highlight": "朗朗上口",
                }
            )
        return json.dumps({"names": names}, ensure_ascii=False)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        prompt = body["messages"][0]["content"]
        self.prompts.append(prompt)
        self.calls += 1
        if self.queued:
            queued = self.queued.pop(0)
            if isinstance(queued, Exception):
                raise queued
            return queued
        count = int(COUNT_PATTERN.search(prompt).group(1))
        surname = SURNAME_PATTERN.search(prompt).group(1)
        return ai_completion(self.names_payload(surname, count))


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        database_url="sqlite+aiosqlite://",
        redis_url="",
        environment="test",
        ai_api_url=AI_URL,
        ai_api_key="test-key",
        ai_model="test-model",
    )


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(engine):
    async with create_session_factory(engine)() as session:
        yield session


@pytest.fixture
def fake_ai():
    return FakeAiBackend()


@pytest.fixture
async def app_context(settings, engine, fake_ai):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(fake_ai))
    ctx = build_context(settings, engine=engine, http_client=http_client)
    yield ctx
    await ctx.aclose()


@pytest.fixture
async def client(app_context):
    app.state.ctx = app_context
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def seed_code(engine):
    """写入一条授权码"""
    session_factory = create_session_factory(engine)

    async def _seed(
        code: str,
        status: CodeStatus = CodeStatus.UNUSED,
        device_id: Optional[str] = None,
        expires_at: Optional[datetime] = None,
    ) -> AuthorizationCode:
        async with session_factory() as session:
            record = AuthorizationCode(
                code=code,
                status=status.value,
                device_id=device_id,
                expires_at=expires_at,
            )
            session.add(record)
            await session.commit()
            return record

    return _seed
