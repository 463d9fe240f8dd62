"""작업 상태 전이 규칙 테스트."""
import pytest

from core.exceptions import InvalidTransitionError
from models import JobStatus
from services.state_machine import ALLOWED_TRANSITIONS, can_transition, ensure_transition


class TestTransitions:
    @pytest.mark.parametrize(
        "current,target",
        [
            (JobStatus.PENDING, JobStatus.REQUEST),
            (JobStatus.REQUEST, JobStatus.PENDING),
            (JobStatus.FAILED, JobStatus.PENDING),
        ],
    )
    def test_manual_allowed(self, current, target):
        assert can_transition(current, target, manual=True)

    @pytest.mark.parametrize(
        "current,target",
        [
            (JobStatus.PENDING, JobStatus.PROCESSING),
            (JobStatus.PROCESSING, JobStatus.COMPLETED),
            (JobStatus.PROCESSING, JobStatus.FAILED),
        ],
    )
    def test_scheduler_allowed(self, current, target):
        assert can_transition(current, target, manual=False)

    def test_user_cannot_drive_processing(self):
        """PROCESSING 진입/이탈은 스케줄러만."""
        assert not can_transition(JobStatus.PENDING, JobStatus.PROCESSING, manual=True)
        assert not can_transition(JobStatus.PROCESSING, JobStatus.COMPLETED, manual=True)

    def test_scheduler_cannot_retry(self):
        assert not can_transition(JobStatus.FAILED, JobStatus.PENDING, manual=False)

    def test_completed_is_terminal(self):
        for target in JobStatus:
            assert not can_transition(JobStatus.COMPLETED, target, manual=True)
            assert not can_transition(JobStatus.COMPLETED, target, manual=False)

    def test_union_matches_allowed_table(self):
        for current in JobStatus:
            for target in JobStatus:
                either = can_transition(current, target, manual=True) or can_transition(
                    current, target, manual=False
                )
                assert either == (target in ALLOWED_TRANSITIONS[current])

    def test_ensure_raises(self):
        with pytest.raises(InvalidTransitionError) as exc:
            ensure_transition(JobStatus.REQUEST, JobStatus.PROCESSING, manual=False)
        assert exc.value.current == "REQUEST"
        assert exc.value.target == "PROCESSING"
