from __future__ import annotations

import asyncio
import json
import logging
import os
import re
from typing import Any, Optional, Protocol, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

logger = logging.getLogger("pivota-look-replicator.llm")

ModelT = TypeVar("ModelT", bound=BaseModel)

LLM_CONFIG_MISSING = "LLM_CONFIG_MISSING"
LLM_REQUEST_FAILED = "LLM_REQUEST_FAILED"
LLM_REQUEST_REJECTED = "LLM_REQUEST_REJECTED"
LLM_TIMEOUT = "LLM_TIMEOUT"
LLM_PARSE_FAILED = "LLM_PARSE_FAILED"
LLM_SCHEMA_INVALID = "LLM_SCHEMA_INVALID"

_RETRYABLE_CODES = {LLM_REQUEST_FAILED, LLM_TIMEOUT, LLM_PARSE_FAILED}

SYSTEM_PROMPT = "You are a strict JSON generator. Output JSON only. No markdown, no extra keys, no prose."


class LlmError(Exception):
    def __init__(self, code: str, message: str) -> None:
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message


class LlmProvider(Protocol):
    async def analyze_text_to_json(self, *, prompt: str, schema: type[ModelT]) -> ModelT: ...


class OpenAICompatibleProvider:
    def __init__(
        self,
        *,
        base_url: str,
        api_key: str,
        model: str,
        timeout_s: float = 20.0,
        max_attempts: int = 3,
        retry_base_s: float = 0.75,
        retry_max_s: float = 10.0,
        json_response_format: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url
        self.model = model
        self.timeout_s = timeout_s
        self.max_attempts = max(1, min(10, int(max_attempts)))
        self.retry_base_s = retry_base_s
        self.retry_max_s = retry_max_s
        self.json_response_format = json_response_format
        self._api_key = api_key
        self._transport = transport

    @property
    def completions_url(self) -> str:
        base = self.base_url.rstrip("/")
        if base.endswith("/v1"):
            return f"{base}/chat/completions"
        return f"{base}/v1/chat/completions"

    async def analyze_text_to_json(self, *, prompt: str, schema: type[ModelT]) -> ModelT:
        data = await self._complete_json_with_retries(prompt)
        try:
            return schema.model_validate(data)
        except ValidationError as exc:
            raise LlmError(LLM_SCHEMA_INVALID, f"{exc.error_count()} validation error(s): {exc}") from exc

    async def _complete_json_with_retries(self, prompt: str) -> dict[str, Any]:
        attempt = 0
        while True:
            attempt += 1
            try:
                text = await self._complete(prompt)
                data = extract_json_object(text)
                if data is None:
                    raise LlmError(LLM_PARSE_FAILED, f"No JSON object in model output: {text[:200]!r}")
                return data
            except LlmError as exc:
                if exc.code not in _RETRYABLE_CODES or attempt >= self.max_attempts:
                    raise
                delay = min(self.retry_max_s, self.retry_base_s * (2 ** (attempt - 1)))
                logger.warning(
                    "llm_retry attempt=%s max_attempts=%s code=%s delay_s=%.2f",
                    attempt,
                    self.max_attempts,
                    exc.code,
                    delay,
                )
                await asyncio.sleep(delay)

    async def _complete(self, prompt: str) -> str:
        payload: dict[str, Any] = {
            "model": self.model,
            "temperature": 0.2,
            "max_tokens": 900,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
        }
        if self.json_response_format:
            payload["response_format"] = {"type": "json_object"}
        headers = {"Authorization": f"Bearer {self._api_key}"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport) as client:
                res = await client.post(self.completions_url, json=payload, headers=headers)
        except httpx.TimeoutException as exc:
            raise LlmError(LLM_TIMEOUT, f"timed out after {self.timeout_s}s") from exc
        except httpx.HTTPError as exc:
            raise LlmError(LLM_REQUEST_FAILED, str(exc) or exc.__class__.__name__) from exc

        if res.status_code >= 400:
            # Client errors other than rate limiting will not succeed on retry.
            code = LLM_REQUEST_REJECTED if res.status_code < 500 and res.status_code != 429 else LLM_REQUEST_FAILED
            raise LlmError(code, f"status={res.status_code} body={res.text[:300]}")

        try:
            body = res.json()
        except ValueError as exc:
            raise LlmError(LLM_PARSE_FAILED, "response body is not JSON") from exc

        choices = body.get("choices") if isinstance(body, dict) else None
        message = choices[0].get("message") if isinstance(choices, list) and choices and isinstance(choices[0], dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str) or not content.strip():
            raise LlmError(LLM_PARSE_FAILED, "response has no message content")
        return content


_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
_SMART_QUOTES = str.maketrans({"“": '"', "”": '"', "‘": "'", "’": "'"})


def extract_json_object(text: str) -> Optional[dict[str, Any]]:
    if not text:
        return None

    sources = [m.group(1) for m in _FENCE_RE.finditer(text)] + [text]
    for source in sources:
        for start in (i for i, ch in enumerate(source) if ch == "{"):
            candidate = _extract_braced(source, start)
            if not candidate:
                continue
            obj = _loads_lenient(candidate)
            if isinstance(obj, dict):
                return obj

    return None


def _loads_lenient(candidate: str) -> Any:
    for attempt in (candidate, _TRAILING_COMMA_RE.sub(r"\1", candidate.translate(_SMART_QUOTES))):
        try:
            return json.loads(attempt)
        except ValueError:
            continue
    return None


def _extract_braced(text: str, start: int) -> Optional[str]:
    depth = 0
    in_str = False
    escape = False
    end: Optional[int] = None

    for i in range(start, len(text)):
        ch = text[i]
        if in_str:
            if escape:
                escape = False
                continue
            if ch == "\\":
                escape = True
                continue
            if ch == '"':
                in_str = False
            continue

        if ch == '"':
            in_str = True
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                end = i
                break

    if end is None or depth != 0:
        return None
    return text[start : end + 1]


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_str(*names: str) -> str:
    for name in names:
        value = (os.getenv(name) or "").strip()
        if value:
            return value
    return ""


def create_provider_from_env() -> OpenAICompatibleProvider:
    api_key = _env_str("LLM_API_KEY", "OPENAI_API_KEY")
    model = _env_str("LLM_MODEL_NAME", "OPENAI_MODEL")
    if not api_key or not model:
        missing = [name for name, value in (("LLM_API_KEY", api_key), ("LLM_MODEL_NAME", model)) if not value]
        raise LlmError(LLM_CONFIG_MISSING, f"missing {', '.join(missing)}")

    base_url = _env_str("LLM_BASE_URL", "OPENAI_BASE_URL") or "https://api.openai.com"
    return OpenAICompatibleProvider(
        base_url=base_url,
        api_key=api_key,
        model=model,
        timeout_s=_env_float("LLM_TIMEOUT_MS", 20000.0) / 1000.0,
        max_attempts=int(_env_float("LLM_MAX_ATTEMPTS", 3)),
        retry_base_s=_env_float("LLM_RETRY_BASE_MS", 750.0) / 1000.0,
        retry_max_s=_env_float("LLM_RETRY_MAX_MS", 10000.0) / 1000.0,
        json_response_format=(os.getenv("LLM_JSON_RESPONSE_FORMAT") or "1").strip().lower() in {"1", "true", "yes", "y"},
    )
