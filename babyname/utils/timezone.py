"""
统一时区处理模块

数据库存储 UTC 时间（不带时区信息的 naive datetime），
对外展示日期时使用北京时间（东八区）。
"""
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

# 东八区时区（中国北京时间）
CHINA_TZ = ZoneInfo("Asia/Shanghai")


def utc_now_naive() -> datetime:
    """
    获取当前 UTC 时间（naive，不带时区信息）

    这是数据库存储的标准格式
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_china_time(dt: datetime) -> datetime:
    """将 UTC 时间（naive 或 aware）转换为北京时间"""
    if dt.tzinfo is None:
        # 假设是 UTC 时间，添加时区信息
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(CHINA_TZ)


def to_iso_utc(dt: datetime) -> str:
    """naive UTC 时间格式化为带 Z 的 ISO 字符串"""
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.isoformat(timespec="milliseconds") + "Z"
