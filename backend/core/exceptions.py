"""색인 요청 처리 중 발생하는 오류 정의."""
from enum import Enum as PyEnum
from typing import Any, Optional


class SubmissionErrorKind(str, PyEnum):
    DUPLICATE = "duplicate"
    RATE_LIMITED = "rate_limited"
    FORBIDDEN = "forbidden"
    FORBIDDEN_OWNERSHIP = "forbidden_ownership"  # Search Console 소유권 미확인
    INVALID_URL = "invalid_url"
    UNKNOWN = "unknown"


class IndexerError(Exception):
    """모든 색인 관련 오류의 기반 클래스."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.details = details or {}

    def __str__(self) -> str:
        if self.provider:
            return f"[{self.provider}] {self.message}"
        return self.message


class ConfigError(IndexerError):
    """사이트/제공자 설정 누락 또는 비활성."""
    pass


class AuthError(IndexerError):
    """자격 증명 거부 (API 키, 서비스 계정, 로그인 실패)."""
    pass


class LoginRequiredError(IndexerError):
    """브라우저 세션이 없고 자동 로그인 경로도 없음. 수동 로그인 필요."""
    pass


class SubmissionError(IndexerError):
    """제공자가 URL 제출을 거부."""

    def __init__(
        self,
        message: str,
        kind: SubmissionErrorKind = SubmissionErrorKind.UNKNOWN,
        provider: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, provider=provider, details=details)
        self.kind = kind


class BrowserError(IndexerError):
    """브라우저 실행/탐색/셀렉터 대기 실패."""
    pass


class CaptchaError(IndexerError):
    """CAPTCHA 풀이 실패 또는 재시도 한도 초과."""
    pass


class JobNotFoundError(Exception):
    def __init__(self, job_id: int):
        super().__init__(f"Job {job_id} not found")
        self.job_id = job_id


class InvalidTransitionError(Exception):
    def __init__(self, current: str, target: str):
        super().__init__(f"Invalid transition: {current} -> {target}")
        self.current = current
        self.target = target


class JobDeleteError(Exception):
    """처리 중인 작업은 삭제할 수 없음."""
    pass
