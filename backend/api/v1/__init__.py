from . import jobs, sitemaps, sessions, health

__all__ = [
    "jobs",
    "sitemaps",
    "sessions",
    "health",
]
