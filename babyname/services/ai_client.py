"""
AI 补全接口客户端 - 调用 OpenAI 兼容的 chat/completions 接口（DeepSeek / 智谱等）
"""
import logging
import re
from typing import Any

import httpx

from babyname.config import Settings
from babyname.utils.errors import (
    AiAuthFailed,
    AiEmptyResponse,
    AiError,
    AiRateLimit,
    AiServiceError,
    AiServiceUnavailable,
    AiTimeout,
)

logger = logging.getLogger(__name__)

_SECRET_VALUE_PATTERN = re.compile(r"(?:sk-[A-Za-z0-9]{8,}|Bearer\s+[A-Za-z0-9\-_.=]{8,})")


def _sanitize_error_detail(text: str) -> str:
    if not text:
        return ""
    sanitized = _SECRET_VALUE_PATTERN.sub("***", text)
    sanitized = " ".join(sanitized.split())
    return sanitized[:200]


def _extract_error_message(payload: Any) -> str:
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict):
            for key in ("message", "detail", "code"):
                value = error.get(key)
                if isinstance(value, str) and value.strip():
                    return value.strip()
        for key in ("message", "detail", "error"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return ""


def _safe_error_detail_from_response(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    message = _extract_error_message(payload) if payload is not None else ""
    if not message:
        message = f"HTTP {response.status_code}"
    return _sanitize_error_detail(message)


def _error_for_status(status_code: int) -> AiError:
    if status_code in (401, 403):
        return AiAuthFailed()
    if status_code == 429:
        return AiRateLimit()
    if status_code >= 500:
        return AiServiceError()
    return AiError(f"AI服务错误: HTTP {status_code}")


class AiCompletionClient:
    """单次补全调用，不做重试"""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self.settings = settings
        self.http_client = http_client

    @property
    def configured(self) -> bool:
        return bool(self.settings.ai_api_key)

    def build_payload(self, prompt: str) -> dict:
        payload = {
            "model": self.settings.ai_model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.settings.ai_temperature,
            "max_tokens": self.settings.ai_max_tokens_effective,
        }
        top_p = self.settings.ai_top_p_effective
        if top_p is not None:
            payload["top_p"] = top_p
        return payload

    async def complete(self, prompt: str) -> str:
        """
        发送一次补全请求

        Returns:
            模型返回的文本内容

        Raises:
            AiError 子类: 认证失败、限流、服务错误、超时、空响应
        """
        if not self.configured:
            logger.error("AI服务未配置AI_API_KEY，无法生成名字")
            raise AiServiceUnavailable()

        try:
            response = await self.http_client.post(
                self.settings.ai_api_url,
                json=self.build_payload(prompt),
                headers={"Authorization": f"Bearer {self.settings.ai_api_key}"},
                timeout=self.settings.ai_timeout_seconds,
            )
        except httpx.TimeoutException as exc:
            logger.error("AI请求超时: %s", type(exc).__name__)
            raise AiTimeout() from exc
        except httpx.HTTPError as exc:
            logger.error("AI请求失败: %s", _sanitize_error_detail(str(exc)))
            raise AiServiceError() from exc

        if response.status_code >= 400:
            logger.error(
                "AI API响应错误",
                extra={
                    "status_code": response.status_code,
                    "detail": _safe_error_detail_from_response(response),
                },
            )
            raise _error_for_status(response.status_code)

        try:
            data = response.json()
        except ValueError as exc:
            logger.error("AI响应不是合法JSON")
            raise AiServiceError() from exc

        content = None
        choices = data.get("choices") if isinstance(data, dict) else None
        if choices and isinstance(choices[0], dict):
            message = choices[0].get("message") or {}
            content = message.get("content")
        if not content or not str(content).strip():
            logger.error("AI返回内容为空", extra={"choices": len(choices or [])})
            raise AiEmptyResponse()
        return content
