"""Google Indexing API 클라이언트."""
import logging
from typing import Any, Optional

import httpx

from core.config import get_settings
from core.exceptions import AuthError, SubmissionError, SubmissionErrorKind
from integrations.base_client import BaseAPIClient, error_message_from
from integrations.google.auth import GoogleTokenManager, ServiceAccount

logger = logging.getLogger(__name__)

OWNERSHIP_HINTS = ("ownership", "verification", "verify")


def classify_google_error(response: httpx.Response) -> Exception:
    """HTTP 오류 응답을 색인 오류로 변환."""
    status = response.status_code
    message = error_message_from(response)

    if status == 401:
        return AuthError(f"Google 인증 실패: {message}", provider="GOOGLE")
    if status == 403:
        if any(hint in message.lower() for hint in OWNERSHIP_HINTS):
            return SubmissionError(
                f"Search Console 소유권 확인 실패: {message}",
                kind=SubmissionErrorKind.FORBIDDEN_OWNERSHIP,
                provider="GOOGLE",
            )
        return SubmissionError(
            f"Google 접근 거부: {message}", kind=SubmissionErrorKind.FORBIDDEN, provider="GOOGLE"
        )
    if status == 429:
        return SubmissionError(
            f"Google 할당량 초과: {message}", kind=SubmissionErrorKind.RATE_LIMITED, provider="GOOGLE"
        )
    if status == 400:
        return SubmissionError(
            f"잘못된 URL 요청: {message}", kind=SubmissionErrorKind.INVALID_URL, provider="GOOGLE"
        )
    return SubmissionError(
        f"Google Indexing API 오류 ({status}): {message}",
        kind=SubmissionErrorKind.UNKNOWN,
        provider="GOOGLE",
    )


class GoogleIndexingClient(BaseAPIClient):
    """Google Indexing API 클라이언트.

    지원 기능:
    - urlNotifications:publish (URL_UPDATED / URL_DELETED)
    - urlNotifications/metadata 조회
    """

    def __init__(
        self,
        token_manager: Optional[GoogleTokenManager] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(rate_limit=10.0, timeout=30.0, transport=transport)
        self.settings = get_settings()
        self.token_manager = token_manager or GoogleTokenManager(transport=transport)

    def get_headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json"}

    async def _authorized(
        self,
        account: ServiceAccount,
        method: str,
        url: str,
        params: Optional[dict] = None,
        json_data: Optional[dict] = None,
    ) -> httpx.Response:
        """Bearer 토큰을 붙여 요청. 401 이면 토큰을 버리고 한 번만 재시도."""
        token = await self.token_manager.get_access_token(account)
        response = await self._send(
            method, url, params=params, json_data=json_data,
            headers={"Authorization": f"Bearer {token}"},
        )
        if response.status_code != 401:
            return response

        logger.info(f"Google 401 → 토큰 재발급 후 재시도 ({account.client_email})")
        self.token_manager.invalidate(account.client_email)
        token = await self.token_manager.get_access_token(account)
        return await self._send(
            method, url, params=params, json_data=json_data,
            headers={"Authorization": f"Bearer {token}"},
        )

    async def publish(
        self,
        account: ServiceAccount,
        url: str,
        notification_type: str = "URL_UPDATED",
    ) -> dict[str, Any]:
        response = await self._authorized(
            account,
            "POST",
            self.settings.google_indexing_endpoint,
            json_data={"url": url, "type": notification_type},
        )
        if response.status_code >= 400:
            raise classify_google_error(response)
        return response.json()

    async def get_metadata(self, account: ServiceAccount, url: str) -> dict[str, Any]:
        """색인 알림 메타데이터 조회. 404 는 NOT_INDEXED."""
        response = await self._authorized(
            account,
            "GET",
            self.settings.google_metadata_endpoint,
            params={"url": url},
        )
        if response.status_code == 404:
            return {"url": url, "status": "NOT_INDEXED"}
        if response.status_code >= 400:
            raise classify_google_error(response)

        data = response.json()
        latest = data.get("latestUpdate") or {}
        return {
            "url": data.get("url", url),
            "status": "SUBMITTED" if latest else "UNKNOWN",
            "latest_update": latest,
            "latest_remove": data.get("latestRemove"),
        }
