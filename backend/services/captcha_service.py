"""CAPTCHA 풀이 백엔드 선택."""
import logging
import re
from abc import ABC, abstractmethod
from typing import Optional

from core.config import Settings, get_settings
from core.exceptions import CaptchaError, ConfigError
from integrations.captcha.two_captcha import TwoCaptchaClient
from integrations.gemini.client import GeminiClient

logger = logging.getLogger(__name__)

NUMERIC_QUESTION_HINTS = ("숫자", "몇", "금액", "가격", "합계", "번호", "number", "how many")


class CaptchaResolver(ABC):
    """이미지 + 질문 → 답 텍스트. 재시도 한도는 호출자(로그인 흐름)가 관리한다."""

    @abstractmethod
    async def solve(self, image_base64: str, question_text: str) -> str:
        pass


def clean_captcha_answer(raw: str, question_text: str = "") -> str:
    """모델/작업자 답 정리: 따옴표/공백 제거, 숫자 질문이면 숫자만 남김."""
    answer = raw.strip().splitlines()[0] if raw.strip() else ""
    answer = answer.strip().strip("\"'`").strip()
    answer = answer.replace(",", "")

    lowered = question_text.lower()
    if any(hint in lowered for hint in NUMERIC_QUESTION_HINTS):
        digits = re.sub(r"[^0-9]", "", answer)
        if digits:
            return digits
    return answer


class TwoCaptchaResolver(CaptchaResolver):
    def __init__(self, client: TwoCaptchaClient):
        self.client = client

    async def solve(self, image_base64: str, question_text: str) -> str:
        raw = await self.client.solve_image(image_base64, comment=question_text)
        answer = clean_captcha_answer(raw, question_text)
        if not answer:
            raise CaptchaError("2Captcha 가 빈 답을 반환했습니다")
        return answer


class GeminiCaptchaResolver(CaptchaResolver):
    def __init__(self, client: GeminiClient):
        self.client = client

    async def solve(self, image_base64: str, question_text: str) -> str:
        raw = await self.client.solve_image_question(image_base64, question_text)
        if raw is None:
            raise CaptchaError("Gemini CAPTCHA 풀이 실패")
        answer = clean_captcha_answer(raw, question_text)
        if not answer:
            raise CaptchaError("Gemini 가 빈 답을 반환했습니다")
        return answer


def build_captcha_resolver(settings: Optional[Settings] = None) -> CaptchaResolver:
    """설정된 백엔드로 resolver 생성. 필요한 키가 없으면 ConfigError."""
    settings = settings or get_settings()
    provider = (settings.captcha_provider or "").lower()

    if provider == "two_captcha":
        if not settings.two_captcha_api_key:
            raise ConfigError("TWO_CAPTCHA_API_KEY 가 설정되지 않았습니다")
        return TwoCaptchaResolver(TwoCaptchaClient(api_key=settings.two_captcha_api_key))

    if provider == "gemini":
        if not settings.gemini_api_key:
            raise ConfigError("GEMINI_API_KEY 가 설정되지 않았습니다")
        return GeminiCaptchaResolver(GeminiClient(api_key=settings.gemini_api_key))

    raise ConfigError(f"지원하지 않는 CAPTCHA 제공자: {settings.captcha_provider}")
