"""pytest 설정 및 fixtures."""
import os

# 앱 import 전에 설정 (get_settings 는 캐시됨)
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SCHEDULER_ENABLED"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from core.database import Base, get_db
from main import app
from models import NaverAccount, Site


# 테스트용 인메모리 SQLite DB
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

SERVICE_ACCOUNT_JSON = (
    '{"type": "service_account", "client_email": "indexer@test.iam.gserviceaccount.com",'
    ' "private_key": "dummy", "token_uri": "https://oauth2.googleapis.com/token"}'
)


def override_get_db():
    """테스트용 DB 세션."""
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def db():
    """각 테스트마다 새로운 DB 생성."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    yield db
    db.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db):
    """테스트 클라이언트."""
    app.dependency_overrides[get_db] = override_get_db
    Base.metadata.create_all(bind=engine)

    with TestClient(app) as c:
        yield c

    Base.metadata.drop_all(bind=engine)
    app.dependency_overrides.clear()


@pytest.fixture
def naver_account(db):
    account = NaverAccount(name="메인 계정", naver_id="tester", password="secret")
    db.add(account)
    db.commit()
    return account


@pytest.fixture
def site(db, naver_account):
    """네 제공자가 모두 켜진 테스트 사이트."""
    site = Site(
        name="테스트 블로그",
        domain="blog.example.com",
        site_url="https://blog.example.com",
        google_config={"use": True, "service_account_json": SERVICE_ACCOUNT_JSON},
        bing_config={"use": True, "api_key": "bing-key"},
        naver_config={"use": True, "selected_naver_account_id": naver_account.id},
        daum_config={"use": True, "pin": "1234"},
        indexing_config={"mode": "all"},
    )
    db.add(site)
    db.commit()
    return site
