"""
起名相关 Schemas
"""
from typing import List, Literal, Optional
from pydantic import BaseModel, Field

from babyname.schemas.common import CamelModel

DEFAULT_SCORE = 90
NO_CULTURAL_SOURCE = "无"

Gender = Literal["male", "female", "unknown"]


class NameInput(CamelModel):
    """起名输入参数"""
    surname: str = Field(..., pattern="^[\u4e00-\u9fa5]{1,2}$", description="姓氏，1-2个汉字")
    gender: Gender
    birth_date: Optional[str] = Field(default=None, max_length=32)
    birth_time: Optional[str] = Field(default=None, pattern=r"^\d{2}:\d{2}$")
    requirements: Optional[str] = Field(default=None, max_length=200)


class BabyInfo(CamelModel):
    """宝宝信息（存储到数据库）"""
    surname: str
    gender: str
    birth_date: Optional[str] = None
    birth_time: Optional[str] = None
    requirements: Optional[str] = None


class NameResult(BaseModel):
    """AI 生成的名字结果，字段名与模型输出保持一致"""
    id: str
    name: str = Field(..., min_length=1)
    full_name: str = Field(..., min_length=1)
    pinyin: str = Field(..., min_length=1)
    meaning: str = ""
    cultural_source: str = NO_CULTURAL_SOURCE
    wuxing_analysis: str = ""
    score: int = Field(default=DEFAULT_SCORE, ge=0, le=100)
    highlight: str = ""


class AIResult(BaseModel):
    """AI 结果（存储到数据库）"""
    names: List[NameResult]


class NameResponse(CamelModel):
    names: List[NameResult]
    generation_time: int  # 毫秒


class HistoryRecord(CamelModel):
    """历史记录"""
    id: str
    user_id: str
    date: str
    surname: str
    gender: str
    birth_date: Optional[str] = None
    birth_time: Optional[str] = None
    requirements: Optional[str] = None
    names: List[NameResult]
    created_at: str  # ISO 8601 UTC


class HistoryResponse(CamelModel):
    records: List[HistoryRecord]
    total: int
    has_more: bool


class HistoryDetailResponse(CamelModel):
    record: HistoryRecord


class UsageStats(CamelModel):
    total_usage: int
    recent_usage: int


class RateLimitStatus(CamelModel):
    wait_seconds: int
    can_generate: bool
