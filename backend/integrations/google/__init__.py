# Google Indexing API Integration
from integrations.google.auth import GoogleTokenManager, ServiceAccount, parse_service_account
from integrations.google.client import GoogleIndexingClient

__all__ = [
    "GoogleTokenManager",
    "ServiceAccount",
    "parse_service_account",
    "GoogleIndexingClient",
]
