from .job_queue import JobQueueProcessor, get_job_queue_processor, process_next_index_job
from .sitemap_parse import parse_enabled_sitemaps

__all__ = [
    "JobQueueProcessor",
    "get_job_queue_processor",
    "process_next_index_job",
    "parse_enabled_sitemaps",
]
