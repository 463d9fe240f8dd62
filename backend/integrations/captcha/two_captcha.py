"""2Captcha 작업 큐 클라이언트."""
import asyncio
import logging
from typing import Any, Optional

import httpx

from core.config import get_settings
from core.exceptions import CaptchaError
from integrations.base_client import BaseAPIClient

logger = logging.getLogger(__name__)


class TwoCaptchaClient(BaseAPIClient):
    """2Captcha API v2 (createTask / getTaskResult).

    이미지 CAPTCHA 를 ImageToTextTask 로 등록하고 'ready' 가 될 때까지 폴링한다.
    폴링 간격은 1.5배씩 늘리되 15초를 넘지 않는다.
    """

    BASE_URL = "https://api.2captcha.com"
    MAX_POLL_INTERVAL = 15.0

    def __init__(
        self,
        api_key: Optional[str] = None,
        poll_interval: Optional[float] = None,
        max_polls: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        super().__init__(base_url=self.BASE_URL, rate_limit=2.0, timeout=30.0, transport=transport)
        self.api_key = api_key or settings.two_captcha_api_key
        self.poll_interval = settings.two_captcha_poll_interval if poll_interval is None else poll_interval
        self.max_polls = max_polls or settings.two_captcha_max_polls

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def get_headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json"}

    def _check_error(self, data: dict[str, Any], context: str) -> None:
        if data.get("errorId", 0) != 0:
            code = data.get("errorCode", "UNKNOWN")
            description = data.get("errorDescription", "")
            raise CaptchaError(
                f"2Captcha {context} 실패: {code} {description}".strip(),
                details={"errorId": data.get("errorId"), "errorCode": code},
            )

    async def _call(self, path: str, payload: dict[str, Any], context: str) -> dict[str, Any]:
        """작업 큐 호출. 전송/HTTP 오류는 CaptchaError 로 바꾼다."""
        try:
            data = await self.post(path, json_data=payload)
        except httpx.HTTPStatusError as e:
            raise CaptchaError(
                f"2Captcha {context} HTTP 오류 {e.response.status_code}",
                details={"status": e.response.status_code},
            )
        except httpx.RequestError as e:
            raise CaptchaError(f"2Captcha {context} 요청 실패: {e}")
        except ValueError:
            raise CaptchaError(f"2Captcha {context} 응답이 JSON 이 아닙니다")
        self._check_error(data, context)
        return data

    async def create_task(self, image_base64: str, comment: str = "") -> int:
        task: dict[str, Any] = {"type": "ImageToTextTask", "body": image_base64}
        if comment:
            task["comment"] = comment
        data = await self._call("/createTask", {"clientKey": self.api_key, "task": task}, "createTask")
        task_id = data.get("taskId")
        if not task_id:
            raise CaptchaError("2Captcha createTask 응답에 taskId 가 없습니다")
        logger.info(f"2Captcha 작업 등록: {task_id}")
        return task_id

    async def get_task_result(self, task_id: int) -> dict[str, Any]:
        return await self._call("/getTaskResult", {"clientKey": self.api_key, "taskId": task_id}, "getTaskResult")

    async def solve_image(self, image_base64: str, comment: str = "") -> str:
        """이미지 CAPTCHA 풀이. 'ready' 에 도달하지 못하면 CaptchaError."""
        if not self.is_configured:
            raise CaptchaError("2Captcha API 키가 설정되지 않았습니다")

        task_id = await self.create_task(image_base64, comment)
        interval = self.poll_interval

        for attempt in range(1, self.max_polls + 1):
            await asyncio.sleep(interval)
            data = await self.get_task_result(task_id)
            status = data.get("status")

            if status == "ready":
                text = (data.get("solution") or {}).get("text")
                if not text:
                    raise CaptchaError(f"2Captcha 작업 {task_id} 결과에 답이 없습니다")
                logger.info(f"2Captcha 작업 {task_id} 완료 ({attempt}회 폴링)")
                return text
            if status != "processing":
                raise CaptchaError(f"2Captcha 알 수 없는 상태: {status}")

            interval = min(interval * 1.5, self.MAX_POLL_INTERVAL)

        raise CaptchaError(f"2Captcha 작업 {task_id} 가 {self.max_polls}회 폴링 내 완료되지 않았습니다")
