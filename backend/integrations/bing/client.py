"""Bing Webmaster API 클라이언트."""
import logging
from typing import Any, Optional

import httpx

from core.config import get_settings
from core.exceptions import AuthError, SubmissionError, SubmissionErrorKind
from integrations.base_client import BaseAPIClient, error_message_from

logger = logging.getLogger(__name__)

# Bing Webmaster API ErrorCode
AUTH_ERROR_CODES = {3, 14, "InvalidApiKey", "NotAuthorized"}
RATE_LIMIT_ERROR_CODES = {4, 5, "ThrottleUser", "ThrottleHost"}
INVALID_URL_ERROR_CODES = {7, "InvalidUrl"}
DUPLICATE_ERROR_CODES = {12, "AlreadyExists"}


def _logical_error(body: Any) -> Optional[tuple[Any, str]]:
    """200 응답 본문에 담긴 논리 오류 (d.ErrorCode) 추출."""
    if not isinstance(body, dict):
        return None
    payload = body.get("d") if isinstance(body.get("d"), dict) else body
    code = payload.get("ErrorCode")
    if not code:
        return None
    return code, str(payload.get("Message") or f"ErrorCode {code}")


def _error_for_code(code: Any, message: str) -> Exception:
    if code in AUTH_ERROR_CODES:
        return AuthError(f"Bing API 키 오류: {message}", provider="BING")
    if code in RATE_LIMIT_ERROR_CODES:
        return SubmissionError(message, kind=SubmissionErrorKind.RATE_LIMITED, provider="BING")
    if code in INVALID_URL_ERROR_CODES:
        return SubmissionError(message, kind=SubmissionErrorKind.INVALID_URL, provider="BING")
    if code in DUPLICATE_ERROR_CODES:
        return SubmissionError(message, kind=SubmissionErrorKind.DUPLICATE, provider="BING")
    return SubmissionError(
        f"Bing 제출 실패: {message}",
        kind=SubmissionErrorKind.UNKNOWN,
        provider="BING",
        details={"error_code": code},
    )


class BingWebmasterClient(BaseAPIClient):
    """Bing Webmaster SubmitUrlBatch 클라이언트."""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(rate_limit=5.0, timeout=30.0, transport=transport)
        self.settings = get_settings()

    def get_headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json; charset=utf-8"}

    async def submit_url_batch(self, api_key: str, site_url: str, urls: list[str]) -> dict[str, Any]:
        response = await self._send(
            "POST",
            self.settings.bing_endpoint,
            params={"apikey": api_key},
            json_data={"siteUrl": site_url, "urlList": urls},
        )

        body: Any = None
        try:
            body = response.json()
        except ValueError:
            pass

        if response.status_code == 401:
            raise AuthError(f"Bing 인증 실패: {error_message_from(response)}", provider="BING")
        if response.status_code == 403:
            raise SubmissionError(
                f"Bing 접근 거부: {error_message_from(response)}",
                kind=SubmissionErrorKind.FORBIDDEN,
                provider="BING",
            )
        if response.status_code == 429:
            raise SubmissionError(
                f"Bing 할당량 초과: {error_message_from(response)}",
                kind=SubmissionErrorKind.RATE_LIMITED,
                provider="BING",
            )

        # 400 도 본문에 ErrorCode 를 담아 온다
        logical = _logical_error(body)
        if logical:
            code, message = logical
            logger.warning(f"Bing 논리 오류 ErrorCode={code}: {message}")
            raise _error_for_code(code, message)

        if response.status_code >= 400:
            raise SubmissionError(
                f"Bing API 오류 ({response.status_code}): {error_message_from(response)}",
                kind=SubmissionErrorKind.UNKNOWN,
                provider="BING",
            )
        return body if isinstance(body, dict) else {}
