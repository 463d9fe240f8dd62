from .scheduler import SchedulerManager, get_scheduler_manager

__all__ = ["SchedulerManager", "get_scheduler_manager"]
