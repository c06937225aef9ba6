"""
起名生成器

并发发起两批请求（每批 3 个名字），合并去重后取前 5 个。
只有一批成功时再补一批 2 个；补充批次失败则返回已有结果。
"""
import asyncio
import json
import logging
import uuid
from typing import Any, List, Optional, Sequence

from pydantic import ValidationError

from babyname.schemas.name import DEFAULT_SCORE, BabyInfo, NameResult
from babyname.services.ai_client import AiCompletionClient
from babyname.services.prompt_builder import build_name_prompt
from babyname.utils.errors import AiError, AiParseError, AiTimeout
from babyname.utils.metrics import AI_BATCH_FAILURES

logger = logging.getLogger(__name__)

REQUIRED_NAME_FIELDS = ("name", "full_name", "pinyin")
OPTIONAL_TEXT_FIELDS = ("meaning", "cultural_source", "wuxing_analysis", "highlight")


def strip_code_fence(content: str) -> str:
    """去掉模型输出中可能包裹的 markdown 代码块"""
    text = content.strip()
    if text.startswith("```json"):
        text = text[len("```json"):]
    elif text.startswith("```"):
        text = text[len("```"):]
    if text.endswith("```"):
        text = text[: -len("```")]
    return text.strip()


def _normalize_score(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return DEFAULT_SCORE
    return max(0, min(100, int(round(value))))


def parse_ai_response(content: str) -> List[NameResult]:
    """
    解析模型输出为名字列表

    Raises:
        AiParseError: JSON 不合法、缺少 names 数组或名字缺少必填字段
    """
    try:
        data = json.loads(strip_code_fence(content))
    except json.JSONDecodeError as exc:
        logger.error("AI输出不是合法JSON", extra={"preview": content[:100]})
        raise AiParseError() from exc

    names = data.get("names") if isinstance(data, dict) else None
    if not isinstance(names, list):
        raise AiParseError("AI返回格式不正确")

    results: List[NameResult] = []
    for item in names:
        if not isinstance(item, dict) or any(not item.get(key) for key in REQUIRED_NAME_FIELDS):
            raise AiParseError("AI返回的名字缺少必要字段")
        fields = {key: value for key, value in item.items() if key in NameResult.model_fields}
        fields["id"] = str(uuid.uuid4())
        fields["score"] = _normalize_score(item.get("score"))
        for key in OPTIONAL_TEXT_FIELDS:
            value = fields.get(key)
            if value is None or value == "":
                # 缺省值由 NameResult 补齐（cultural_source 为“无”）
                fields.pop(key, None)
            elif not isinstance(value, str):
                fields[key] = str(value)
        try:
            results.append(NameResult.model_validate(fields))
        except ValidationError as exc:
            raise AiParseError("AI返回的名字缺少必要字段") from exc
    return results


def merge_and_deduplicate(*batches: Sequence[NameResult], limit: int = 5) -> List[NameResult]:
    """按完整姓名去重，保留首次出现的顺序"""
    seen = set()
    merged: List[NameResult] = []
    for batch in batches:
        for item in batch:
            if item.full_name in seen:
                continue
            seen.add(item.full_name)
            merged.append(item)
    return merged[:limit]


class NameGenerator:
    def __init__(
        self,
        ai_client: AiCompletionClient,
        timeout: Optional[float] = None,
        batch_size: int = 3,
        target_count: int = 5,
    ):
        self.ai_client = ai_client
        self.timeout = timeout
        self.batch_size = batch_size
        self.target_count = target_count

    async def generate_batch(self, params: BabyInfo, count: int) -> List[NameResult]:
        prompt = build_name_prompt(params, count)
        try:
            content = await asyncio.wait_for(self.ai_client.complete(prompt), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            raise AiTimeout() from exc
        return parse_ai_response(content)

    async def generate(self, params: BabyInfo) -> List[NameResult]:
        """生成名字，尽量凑满 target_count 个"""
        outcomes = await asyncio.gather(
            self.generate_batch(params, self.batch_size),
            self.generate_batch(params, self.batch_size),
            return_exceptions=True,
        )

        successes: List[List[NameResult]] = []
        failures: List[BaseException] = []
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                failures.append(outcome)
                self._record_failure(outcome)
            else:
                successes.append(outcome)

        if not successes:
            logger.error("两批名字生成均失败", extra={"errors": [type(e).__name__ for e in failures]})
            raise failures[0]

        if len(successes) == 2:
            return merge_and_deduplicate(*successes, limit=self.target_count)

        logger.warning("一批名字生成失败，补充生成", extra={"error": type(failures[0]).__name__})
        remaining = self.target_count - self.batch_size
        try:
            supplement = await self.generate_batch(params, remaining)
        except Exception as exc:
            self._record_failure(exc)
            logger.warning("补充生成失败，返回已有结果", extra={"error": type(exc).__name__})
            return merge_and_deduplicate(successes[0], limit=self.target_count)
        return merge_and_deduplicate(successes[0], supplement, limit=self.target_count)

    @staticmethod
    def _record_failure(exc: BaseException) -> None:
        code = exc.code if isinstance(exc, AiError) else "UNKNOWN"
        AI_BATCH_FAILURES.labels(code=code).inc()
