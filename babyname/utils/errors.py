"""
业务异常定义

每个异常携带稳定的错误码和默认提示语，由 main.py 中的异常处理器统一转换为
{"success": false, "error": {"code", "message"}} 响应。
"""
from typing import Optional

from fastapi import status


class ApiError(Exception):
    """API 业务异常"""
    code: str = "BAD_REQUEST"
    message: str = "请求参数错误"
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        message: Optional[str] = None,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        if message is not None:
            self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


# 授权码相关
class CodeFormatInvalid(ApiError):
    code = "CODE_FORMAT_INVALID"
    message = "授权码格式不正确，请检查"


class CodeNotFound(ApiError):
    code = "CODE_NOT_FOUND"
    message = "授权码无效，请确认后重新输入"
    status_code = status.HTTP_404_NOT_FOUND


class CodeAlreadyUsed(ApiError):
    code = "CODE_ALREADY_USED"
    message = "该授权码已被使用，每个授权码仅限激活一次"


class CodeExpired(ApiError):
    code = "CODE_EXPIRED"
    message = "授权码已过期，请重新购买"


# 认证相关
class InvalidToken(ApiError):
    code = "INVALID_TOKEN"
    message = "Token无效或已过期"
    status_code = status.HTTP_401_UNAUTHORIZED


class DeviceMismatch(ApiError):
    code = "DEVICE_MISMATCH"
    message = "该授权码已在其他设备激活，请联系客服"
    status_code = status.HTTP_403_FORBIDDEN


class RateLimitExceeded(ApiError):
    """频率限制异常（包含等待秒数）"""
    code = "RATE_LIMIT_EXCEEDED"
    message = "操作过于频繁，请稍后再试"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(self, wait_seconds: int, message: Optional[str] = None):
        self.wait_seconds = wait_seconds
        super().__init__(message)

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["waitSeconds"] = self.wait_seconds
        return data


# 通用
class NotFound(ApiError):
    code = "NOT_FOUND"
    message = "资源不存在"
    status_code = status.HTTP_404_NOT_FOUND


class Forbidden(ApiError):
    code = "FORBIDDEN"
    message = "无权访问"
    status_code = status.HTTP_403_FORBIDDEN


class DataCorrupted(ApiError):
    code = "DATA_CORRUPTED"
    message = "记录数据异常，请联系客服"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


# AI 服务相关，统一返回 503
class AiError(ApiError):
    code = "AI_ERROR"
    message = "AI服务错误"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class AiServiceUnavailable(AiError):
    code = "AI_SERVICE_UNAVAILABLE"
    message = "AI服务暂不可用，请稍后再试"


class AiAuthFailed(AiError):
    code = "AI_AUTH_FAILED"
    message = "AI服务认证失败，请检查API密钥配置"


class AiRateLimit(AiError):
    code = "AI_RATE_LIMIT"
    message = "AI服务请求过于频繁，请稍后再试"


class AiServiceError(AiError):
    code = "AI_SERVICE_ERROR"
    message = "AI服务暂时不可用，请稍后再试"


class AiEmptyResponse(AiError):
    code = "AI_EMPTY_RESPONSE"
    message = "AI返回内容为空，请重试"


class AiTimeout(AiError):
    code = "AI_TIMEOUT"
    message = "AI服务响应超时，请稍后再试"


class AiParseError(AiError):
    code = "AI_PARSE_ERROR"
    message = "解析AI结果失败，请重试"
