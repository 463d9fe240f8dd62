"""Google 서비스 계정 토큰 관리."""
import asyncio
import json
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Union

import httpx
import jwt

from core.config import get_settings
from core.exceptions import AuthError, ConfigError

logger = logging.getLogger(__name__)

INDEXING_SCOPE = "https://www.googleapis.com/auth/indexing"
JWT_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:jwt-bearer"


@dataclass
class ServiceAccount:
    client_email: str
    private_key: str
    token_uri: str


@dataclass
class _CachedToken:
    access_token: str
    expires_at: datetime

    @property
    def is_valid(self) -> bool:
        """만료 5분 전이면 무효 처리."""
        return datetime.now() < self.expires_at - timedelta(minutes=5)


def parse_service_account(raw: Union[str, dict], default_token_uri: Optional[str] = None) -> ServiceAccount:
    """서비스 계정 JSON 검증.

    client_email, private_key 가 있고 type == "service_account" 여야 한다.
    """
    if isinstance(raw, str):
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ConfigError(f"서비스 계정 JSON 파싱 실패: {e}", provider="GOOGLE")
    else:
        data = dict(raw or {})

    missing = [f for f in ("client_email", "private_key") if not data.get(f)]
    if missing:
        raise ConfigError(
            f"서비스 계정 필수 필드 누락: {', '.join(missing)}",
            provider="GOOGLE",
            details={"missing": missing},
        )
    if data.get("type") != "service_account":
        raise ConfigError("서비스 계정 키가 아닙니다 (type != service_account)", provider="GOOGLE")

    return ServiceAccount(
        client_email=data["client_email"],
        private_key=data["private_key"],
        token_uri=data.get("token_uri") or default_token_uri or get_settings().google_token_uri,
    )


class GoogleTokenManager:
    """서비스 계정별 액세스 토큰 관리자.

    - RS256 서명 JWT 를 토큰 엔드포인트에서 교환
    - client_email 단위 캐시, 만료 5분 전 갱신
    - 401 응답 시 invalidate() 후 한 번 재발급
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = get_settings()
        self._transport = transport
        self._tokens: dict[str, _CachedToken] = {}
        self._lock = asyncio.Lock()

    async def get_access_token(self, account: ServiceAccount) -> str:
        """유효한 접근 토큰 반환. 필요시 새로 발급."""
        async with self._lock:
            cached = self._tokens.get(account.client_email)
            if cached is None or not cached.is_valid:
                cached = await self._issue_token(account)
                self._tokens[account.client_email] = cached
            return cached.access_token

    def invalidate(self, client_email: str) -> None:
        self._tokens.pop(client_email, None)

    def _build_assertion(self, account: ServiceAccount) -> str:
        now = int(time.time())
        payload = {
            "iss": account.client_email,
            "scope": INDEXING_SCOPE,
            "aud": account.token_uri,
            "iat": now,
            "exp": now + 3600,
        }
        try:
            return jwt.encode(payload, account.private_key, algorithm="RS256")
        except (ValueError, TypeError, jwt.PyJWTError) as e:
            raise ConfigError(f"서비스 계정 개인키로 서명할 수 없습니다: {e}", provider="GOOGLE")

    async def _issue_token(self, account: ServiceAccount) -> _CachedToken:
        """새 접근 토큰 발급."""
        assertion = self._build_assertion(account)

        async with httpx.AsyncClient(transport=self._transport, timeout=30.0) as client:
            response = await client.post(
                account.token_uri,
                data={"grant_type": JWT_GRANT_TYPE, "assertion": assertion},
            )

        if response.status_code in (400, 401, 403):
            logger.error(f"Google 토큰 발급 거부: {response.text[:300]}")
            raise AuthError(
                f"Google 토큰 발급 거부 ({response.status_code})",
                provider="GOOGLE",
                details={"body": response.text[:300]},
            )
        response.raise_for_status()
        data = response.json()

        expires_in = int(data.get("expires_in", 3600))
        token = _CachedToken(
            access_token=data["access_token"],
            expires_at=datetime.now() + timedelta(seconds=expires_in),
        )
        logger.info(f"Google access token issued for {account.client_email}, expires at {token.expires_at}")
        return token
