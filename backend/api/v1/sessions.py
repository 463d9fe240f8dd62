"""브라우저 콘솔 제공자(네이버/다음) 로그인 세션 관리."""
from fastapi import APIRouter, HTTPException

from core.exceptions import IndexerError
from models import IndexProvider
from services.indexers.console import ConsoleIndexer

router = APIRouter()


def _console_strategy(provider: IndexProvider) -> ConsoleIndexer:
    from scheduler.jobs.job_queue import get_job_queue_processor

    strategy = get_job_queue_processor().registry.get(provider)
    if not isinstance(strategy, ConsoleIndexer):
        raise HTTPException(status_code=400, detail=f"{provider.value} 는 브라우저 세션을 사용하지 않습니다.")
    return strategy


@router.post("/{provider}/{account_id}/manual-login")
async def manual_login(provider: IndexProvider, account_id: str):
    """화면이 보이는 브라우저를 띄워 사용자가 직접 로그인하도록 기다린다."""
    strategy = _console_strategy(provider)
    try:
        success = await strategy.session_manager.manual_login(strategy.profile, account_id)
    except IndexerError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"provider": provider.value, "account_id": account_id, "success": success}


@router.get("/{provider}/{account_id}/status")
async def login_status(provider: IndexProvider, account_id: str):
    strategy = _console_strategy(provider)
    session_manager = strategy.session_manager
    has_cookies = session_manager.cookie_store.exists(provider.value, account_id)
    logged_in = False
    if has_cookies:
        try:
            logged_in = await session_manager.check_login_status(strategy.profile, account_id)
        except IndexerError as e:
            raise HTTPException(status_code=502, detail=str(e))
    return {
        "provider": provider.value,
        "account_id": account_id,
        "has_cookies": has_cookies,
        "logged_in": logged_in,
    }
