# Integrations - 외부 서비스 연동 모듈
from integrations.base_client import BaseAPIClient, RateLimiter, error_message_from

__all__ = [
    "BaseAPIClient",
    "RateLimiter",
    "error_message_from",
]
