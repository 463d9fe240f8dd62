"""작업 상태 전이 규칙."""
from models.job import JobStatus
from core.exceptions import InvalidTransitionError

# 사용자 조작으로만 가능한 전이
MANUAL_TRANSITIONS = {
    JobStatus.PENDING: [JobStatus.REQUEST],
    JobStatus.REQUEST: [JobStatus.PENDING],
    JobStatus.FAILED: [JobStatus.PENDING],
}

# 스케줄러만 수행하는 전이
SCHEDULER_TRANSITIONS = {
    JobStatus.PENDING: [JobStatus.PROCESSING],
    JobStatus.PROCESSING: [JobStatus.COMPLETED, JobStatus.FAILED],
}

ALLOWED_TRANSITIONS = {
    JobStatus.PENDING: [JobStatus.REQUEST, JobStatus.PROCESSING],
    JobStatus.REQUEST: [JobStatus.PENDING],
    JobStatus.PROCESSING: [JobStatus.COMPLETED, JobStatus.FAILED],
    JobStatus.COMPLETED: [],
    JobStatus.FAILED: [JobStatus.PENDING],
}


def can_transition(current: JobStatus, target: JobStatus, *, manual: bool) -> bool:
    table = MANUAL_TRANSITIONS if manual else SCHEDULER_TRANSITIONS
    return target in table.get(current, [])


def ensure_transition(current: JobStatus, target: JobStatus, *, manual: bool) -> None:
    if not can_transition(current, target, manual=manual):
        raise InvalidTransitionError(current.value, target.value)
