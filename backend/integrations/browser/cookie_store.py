"""브라우저 세션 쿠키 저장소.

키는 (provider, account_id). 파일 저장소는 키마다 JSON 배열 파일 하나를 쓴다.
"""
import json
import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Union

logger = logging.getLogger(__name__)


def cookie_key(provider: str, account_id: str) -> str:
    safe_account = re.sub(r"[^A-Za-z0-9_.-]", "_", account_id)
    return f"{provider.lower()}_{safe_account}"


class CookieStore(ABC):
    @abstractmethod
    def load(self, provider: str, account_id: str) -> list[dict]:
        """저장된 쿠키 목록. 없으면 빈 리스트."""

    @abstractmethod
    def save(self, provider: str, account_id: str, cookies: list[dict]) -> None:
        pass

    @abstractmethod
    def delete(self, provider: str, account_id: str) -> None:
        pass

    def exists(self, provider: str, account_id: str) -> bool:
        return bool(self.load(provider, account_id))


class FileCookieStore(CookieStore):
    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def path_for(self, provider: str, account_id: str) -> Path:
        return self.root / f"{cookie_key(provider, account_id)}.json"

    def load(self, provider: str, account_id: str) -> list[dict]:
        path = self.path_for(provider, account_id)
        if not path.exists():
            return []
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"쿠키 파일 로드 실패 ({path}): {e}")
            return []
        if not isinstance(data, list):
            logger.warning(f"쿠키 파일 형식 오류 ({path}): JSON 배열이 아님")
            return []
        return data

    def save(self, provider: str, account_id: str, cookies: list[dict]) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        path = self.path_for(provider, account_id)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(cookies, f, ensure_ascii=False, indent=2)
        logger.debug(f"쿠키 {len(cookies)}개 저장: {path}")

    def delete(self, provider: str, account_id: str) -> None:
        path = self.path_for(provider, account_id)
        if path.exists():
            path.unlink()


class MemoryCookieStore(CookieStore):
    def __init__(self):
        self._data: dict[str, list[dict]] = {}

    def load(self, provider: str, account_id: str) -> list[dict]:
        return list(self._data.get(cookie_key(provider, account_id), []))

    def save(self, provider: str, account_id: str, cookies: list[dict]) -> None:
        self._data[cookie_key(provider, account_id)] = list(cookies)

    def delete(self, provider: str, account_id: str) -> None:
        self._data.pop(cookie_key(provider, account_id), None)
