from pydantic_settings import BaseSettings
from functools import lru_cache
from pathlib import Path
from typing import Optional


class Settings(BaseSettings):
    database_url: str = "sqlite:///./indexer.db"
    cors_origins: str = "http://localhost:5173"

    # 스케줄러 설정
    scheduler_enabled: bool = True
    job_poll_interval_seconds: int = 10
    sitemap_poll_interval_minutes: int = 1

    # 사이트맵 설정
    sitemap_max_depth: int = 5
    sitemap_fetch_timeout: float = 30.0

    # Google Indexing API 설정
    google_indexing_endpoint: str = "https://indexing.googleapis.com/v3/urlNotifications:publish"
    google_metadata_endpoint: str = "https://indexing.googleapis.com/v3/urlNotifications/metadata"
    google_token_uri: str = "https://oauth2.googleapis.com/token"
    google_batch_concurrency: int = 3  # 동시 요청 수
    google_batch_delay_seconds: float = 1.0  # 배치 사이 대기

    # Bing Webmaster API 설정
    bing_endpoint: str = "https://ssl.bing.com/webmaster/api.svc/json/SubmitUrlBatch"

    # 브라우저 자동화 설정
    cookie_dir: str = "./cookies"
    browser_executable_path: Optional[str] = None  # 미지정시 Playwright 번들 Chromium
    browser_locale: str = "ko-KR"
    browser_timezone: str = "Asia/Seoul"
    login_captcha_max_attempts: int = 2
    manual_login_timeout_seconds: int = 180
    submission_poll_timeout_seconds: int = 20

    # CAPTCHA 설정
    captcha_provider: str = "two_captcha"  # two_captcha | gemini
    two_captcha_api_key: Optional[str] = None
    two_captcha_poll_interval: float = 5.0
    two_captcha_max_polls: int = 24

    # Gemini 설정 (멀티모달 CAPTCHA 풀이)
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.0-flash"

    class Config:
        env_file = ".env"
        extra = "allow"

    @property
    def cookie_path(self) -> Path:
        return Path(self.cookie_dir)

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@lru_cache()
def get_settings() -> Settings:
    return Settings()
