"""Google Gemini AI 클라이언트."""
import asyncio
import logging
from typing import Any, Optional

import httpx

from core.config import get_settings

logger = logging.getLogger(__name__)

CAPTCHA_PROMPT = """이미지와 질문을 보고 답만 반환하세요.

질문: {question}

설명이나 단위 없이 답만 한 줄로 쓰세요. 숫자를 묻는 질문이면 숫자만 쓰세요."""


class GeminiClient:
    """Google Gemini API 클라이언트."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = get_settings()
        self._api_key = api_key or self.settings.gemini_api_key
        self._transport = transport
        self.base_url = "https://generativelanguage.googleapis.com/v1beta"
        self.model = self.settings.gemini_model

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    async def _generate(
        self,
        parts: list[dict[str, Any]],
        max_retries: int = 4,
        max_output_tokens: int = 2048,
    ) -> Optional[str]:
        """Gemini API 호출. 429 시 지수 백오프 재시도."""
        if not self.is_configured:
            return None

        url = f"{self.base_url}/models/{self.model}:generateContent"
        payload = {
            "contents": [{"parts": parts}],
            "generationConfig": {
                "temperature": 0.0,
                "maxOutputTokens": max_output_tokens,
            },
        }

        for attempt in range(max_retries + 1):
            try:
                async with httpx.AsyncClient(timeout=60.0, transport=self._transport) as client:
                    response = await client.post(
                        url,
                        params={"key": self._api_key},
                        json=payload,
                    )
                    response.raise_for_status()
                    data = response.json()

                    candidates = data.get("candidates", [])
                    if candidates:
                        content = candidates[0].get("content", {})
                        content_parts = content.get("parts", [])
                        if content_parts:
                            return content_parts[0].get("text", "")
            except httpx.HTTPStatusError as e:
                if e.response.status_code == 429 and attempt < max_retries:
                    # Retry-After 헤더 존중, 없으면 지수 백오프 (2, 4, 8, 16초)
                    retry_after = e.response.headers.get("Retry-After")
                    if retry_after and retry_after.isdigit():
                        wait = min(int(retry_after), 30)
                    else:
                        wait = 2 ** (attempt + 1)  # 2, 4, 8, 16초
                    logger.warning(
                        f"Gemini 429 → {wait}초 후 재시도 ({attempt + 1}/{max_retries})"
                    )
                    await asyncio.sleep(wait)
                    continue
                logger.error(f"Gemini API 호출 실패: {e}")
                break
            except httpx.HTTPError as e:
                logger.error(f"Gemini API 호출 실패: {e}")
                break

        return None

    async def solve_image_question(
        self,
        image_base64: str,
        question: str,
        mime_type: str = "image/png",
    ) -> Optional[str]:
        """이미지 + 질문으로 CAPTCHA 답 생성. 실패 시 None."""
        parts = [
            {"inline_data": {"mime_type": mime_type, "data": image_base64}},
            {"text": CAPTCHA_PROMPT.format(question=question or "이미지에 보이는 문자를 그대로 입력하세요.")},
        ]
        return await self._generate(parts, max_output_tokens=64)

