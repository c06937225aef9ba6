"""
数据库连接模块
"""
import asyncio
from pathlib import Path
from typing import AsyncIterator

from alembic import command
from alembic.config import Config
from fastapi import Depends
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from babyname.config import Settings
from babyname.context import AppContext, get_context


class Base(DeclarativeBase):
    """SQLAlchemy 基类"""
    pass


def normalize_database_url(url: str) -> str:
    """将 postgresql:// 转换为 postgresql+asyncpg://"""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def create_engine_from_settings(settings: Settings) -> AsyncEngine:
    url = normalize_database_url(settings.database_url)
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=False)
    return create_async_engine(
        url,
        echo=False,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


async def get_db(ctx: AppContext = Depends(get_context)) -> AsyncIterator[AsyncSession]:
    """获取数据库会话依赖"""
    async with ctx.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


def run_migrations() -> None:
    """运行 Alembic 数据库迁移"""
    config_path = Path(__file__).resolve().parents[1] / "alembic.ini"
    alembic_cfg = Config(str(config_path))
    alembic_cfg.attributes["configure_logger"] = False
    command.upgrade(alembic_cfg, "head")


async def init_db(engine: AsyncEngine, migrate: bool = True) -> None:
    """初始化数据库表"""
    # 先导入所有模型，确保它们注册到 Base.metadata
    from babyname.models import authorization_code, usage_record, favorite  # noqa: F401

    # 创建基础表结构（如果不存在）
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # 运行 Alembic 迁移（处理增量变更）
    if migrate:
        await asyncio.to_thread(run_migrations)
