from .expiration_digest import daily_expiration_digest_task, weekly_expiration_digest_task
from .verification_code_purge import verification_code_purge_task
from .weekly_summary import weekly_summary_task

__all__ = [
    "daily_expiration_digest_task",
    "weekly_expiration_digest_task",
    "weekly_summary_task",
    "verification_code_purge_task",
]
