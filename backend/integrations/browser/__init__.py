# 브라우저 콘솔 자동화 (Playwright)
from integrations.browser.cookie_store import CookieStore, FileCookieStore, MemoryCookieStore
from integrations.browser.profiles import DAUM_PROFILE, NAVER_PROFILE, ProviderProfile
from integrations.browser.session import BrowserSession, BrowserSessionManager, LoginCredentials

__all__ = [
    "CookieStore",
    "FileCookieStore",
    "MemoryCookieStore",
    "DAUM_PROFILE",
    "NAVER_PROFILE",
    "ProviderProfile",
    "BrowserSession",
    "BrowserSessionManager",
    "LoginCredentials",
]
