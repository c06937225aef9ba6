"""
通用响应 Schemas
"""
from typing import Generic, TypeVar
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """对外字段使用 camelCase，内部使用 snake_case"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ApiResponse(BaseModel, Generic[T]):
    """成功响应包装"""
    success: bool = True
    data: T
