from .cron import *

__all__ = [
    # Scheduled/Cron Tasks
    "daily_expiration_digest_task",
    "weekly_expiration_digest_task",
    "weekly_summary_task",
    "verification_code_purge_task",
]
