"""
数据库模型
"""
from babyname.models.authorization_code import AuthorizationCode, CodeStatus
from babyname.models.usage_record import UsageRecord
from babyname.models.favorite import Favorite

__all__ = [
    "AuthorizationCode",
    "CodeStatus",
    "UsageRecord",
    "Favorite",
]
