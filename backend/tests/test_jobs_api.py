"""작업 API 테스트."""
import pytest

from core.config import Settings
from integrations.browser.cookie_store import MemoryCookieStore
from integrations.browser.session import BrowserSessionManager
from models import JobStatus
from scheduler.jobs.job_queue import JobQueueProcessor
from services.indexers.bing import BingIndexer
from services.indexers.naver import NaverIndexer
from services.indexers.registry import StrategyRegistry
from services.job_service import JobService

from fakes import FakePlaywright


class TestJobsAPI:
    """작업 생성/조회/조작 엔드포인트."""

    def _create(self, client, site, urls=None, providers=None):
        return client.post(
            "/api/v1/jobs",
            json={
                "site_id": site.id,
                "providers": providers or ["GOOGLE"],
                "urls": urls or ["https://blog.example.com/post/1"],
            },
        )

    def test_create_jobs(self, client, site):
        response = self._create(client, site, providers=["GOOGLE", "BING"])
        assert response.status_code == 201
        data = response.json()
        assert len(data["created"]) == 2
        assert data["duplicates"] == 0
        assert {j["index_job"]["provider"] for j in data["created"]} == {"GOOGLE", "BING"}
        assert all(j["status"] == "PENDING" for j in data["created"])

    def test_create_duplicate(self, client, site):
        self._create(client, site)
        response = self._create(client, site, urls=["https://BLOG.example.com/post/1/"])
        assert response.status_code == 201
        assert response.json() == {"created": [], "duplicates": 1}

    def test_create_unknown_site(self, client, site):
        response = client.post(
            "/api/v1/jobs",
            json={"site_id": 999, "providers": ["GOOGLE"], "urls": ["https://a.com/1"]},
        )
        assert response.status_code == 404

    def test_create_invalid_url(self, client, site):
        response = self._create(client, site, urls=["not-a-url"])
        assert response.status_code == 422

    def test_list_and_filter(self, client, site):
        self._create(client, site, urls=["https://blog.example.com/a", "https://blog.example.com/b"])
        job_id = client.get("/api/v1/jobs").json()["items"][0]["id"]
        client.post(f"/api/v1/jobs/{job_id}/request")

        data = client.get("/api/v1/jobs", params={"status": "REQUEST"}).json()
        assert data["total"] == 1
        assert data["items"][0]["id"] == job_id

        data = client.get("/api/v1/jobs", params={"search": "com/b", "limit": 10}).json()
        assert data["total"] == 1

    def test_get_job_and_logs(self, client, site):
        job_id = self._create(client, site).json()["created"][0]["id"]

        assert client.get(f"/api/v1/jobs/{job_id}").json()["id"] == job_id
        logs = client.get(f"/api/v1/jobs/{job_id}/logs").json()
        assert logs[0]["message"].startswith("인덱싱 작업 생성됨")
        latest = client.get(f"/api/v1/jobs/{job_id}/logs/latest").json()
        assert latest["id"] == logs[-1]["id"]

    def test_get_missing_job(self, client):
        assert client.get("/api/v1/jobs/12345").status_code == 404
        assert client.get("/api/v1/jobs/12345/logs").status_code == 404

    def test_retry_requires_failed(self, client, site):
        job_id = self._create(client, site).json()["created"][0]["id"]
        response = client.post(f"/api/v1/jobs/{job_id}/retry")
        assert response.status_code == 409

    def test_retry_failed_job(self, client, db, site):
        job_id = self._create(client, site).json()["created"][0]["id"]
        service = JobService(db)
        service.mark_failed(service.mark_processing(service.get(job_id)), "boom")

        response = client.post(f"/api/v1/jobs/{job_id}/retry")
        assert response.status_code == 200
        assert response.json()["status"] == "PENDING"
        assert response.json()["error_message"] is None

    def test_bulk_retry(self, client, db, site):
        created = self._create(client, site, urls=["https://blog.example.com/1", "https://blog.example.com/2"])
        ids = [j["id"] for j in created.json()["created"]]
        service = JobService(db)
        service.mark_failed(service.mark_processing(service.get(ids[0])), "boom")

        response = client.post("/api/v1/jobs/retry", json={"ids": ids})
        assert response.json() == {"requested": 2, "affected": 1}

    def test_hold_and_release(self, client, site):
        job_id = self._create(client, site).json()["created"][0]["id"]
        assert client.post(f"/api/v1/jobs/{job_id}/request").json()["status"] == "REQUEST"
        assert client.post(f"/api/v1/jobs/{job_id}/request").status_code == 409
        assert client.post(f"/api/v1/jobs/{job_id}/pending").json()["status"] == "PENDING"

    def test_delete(self, client, site):
        job_id = self._create(client, site).json()["created"][0]["id"]
        assert client.delete(f"/api/v1/jobs/{job_id}").status_code == 204
        assert client.get(f"/api/v1/jobs/{job_id}").status_code == 404

    def test_delete_processing_conflict(self, client, db, site):
        job_id = self._create(client, site).json()["created"][0]["id"]
        JobService(db).mark_processing(JobService(db).get(job_id))

        assert client.delete(f"/api/v1/jobs/{job_id}").status_code == 409

    def test_bulk_delete_skips_processing(self, client, db, site):
        created = self._create(client, site, urls=["https://blog.example.com/1", "https://blog.example.com/2"])
        ids = [j["id"] for j in created.json()["created"]]
        JobService(db).mark_processing(JobService(db).get(ids[0]))

        response = client.request("DELETE", "/api/v1/jobs", json={"ids": ids})
        assert response.json() == {"requested": 2, "affected": 1}
        db.expire_all()
        assert JobService(db).get(ids[0]).status == JobStatus.PROCESSING


class TestSitemapAPI:
    def test_config_crud(self, client, site):
        response = client.post(
            f"/api/v1/sitemaps/sites/{site.id}/configs",
            json={"name": "워드프레스", "sitemap_type": "wordpress"},
        )
        assert response.status_code == 201
        config_id = response.json()["id"]

        updated = client.patch(f"/api/v1/sitemaps/configs/{config_id}", json={"is_enabled": False})
        assert updated.json()["is_enabled"] is False

        listed = client.get(f"/api/v1/sitemaps/sites/{site.id}/configs").json()
        assert [c["id"] for c in listed] == [config_id]

        assert client.delete(f"/api/v1/sitemaps/configs/{config_id}").status_code == 204
        assert client.get(f"/api/v1/sitemaps/sites/{site.id}/configs").json() == []

    def test_unknown_site(self, client):
        assert client.get("/api/v1/sitemaps/sites/999/configs").status_code == 404

    def test_site_index_jobs_page(self, client, site):
        client.post(
            "/api/v1/jobs",
            json={"site_id": site.id, "providers": ["GOOGLE", "NAVER"], "urls": ["https://blog.example.com/1"]},
        )
        data = client.get(f"/api/v1/sitemaps/sites/{site.id}/index-jobs", params={"limit": 1}).json()
        assert data["total"] == 2
        assert len(data["items"]) == 1


class TestHealthAPI:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}

    def test_scheduler_disabled_in_tests(self, client):
        data = client.get("/api/v1/health/scheduler").json()
        assert data["running"] is False
        assert data["queue_processing"] is False

    def test_job_counts(self, client, site):
        client.post(
            "/api/v1/jobs",
            json={"site_id": site.id, "providers": ["GOOGLE"], "urls": ["https://blog.example.com/1"]},
        )
        assert client.get("/api/v1/health/jobs").json()["PENDING"] == 1


class TestSessionsAPI:
    """브라우저 콘솔 로그인 세션 엔드포인트."""

    @pytest.fixture
    def cookie_store(self, monkeypatch):
        store = MemoryCookieStore()
        manager = BrowserSessionManager(store, settings=Settings(), playwright_factory=FakePlaywright().factory)
        processor = JobQueueProcessor(registry=StrategyRegistry([NaverIndexer(manager), BingIndexer()]))
        monkeypatch.setattr("scheduler.jobs.job_queue.get_job_queue_processor", lambda: processor)
        return store

    def test_api_provider_has_no_session(self, client, cookie_store):
        response = client.get("/api/v1/sessions/BING/tester/status")
        assert response.status_code == 400

    def test_status_without_cookies(self, client, cookie_store):
        response = client.get("/api/v1/sessions/NAVER/tester/status")
        assert response.status_code == 200
        assert response.json() == {
            "provider": "NAVER",
            "account_id": "tester",
            "has_cookies": False,
            "logged_in": False,
        }

    def test_status_with_valid_cookies(self, client, cookie_store):
        cookie_store.save("NAVER", "tester", [{"name": "NID_AUT", "value": "x", "domain": ".naver.com", "path": "/"}])
        response = client.get("/api/v1/sessions/NAVER/tester/status")
        assert response.status_code == 200
        assert response.json()["has_cookies"] is True
        assert response.json()["logged_in"] is True
