from celery.schedules import crontab

from foodexpiry.utils.cron import parse_cron_expression
from .settings import settings

# Basic Celery Configuration
broker_url = f"redis://:{settings.REDIS_PASSWORD}@{settings.REDIS_HOST}:{settings.REDIS_PORT}/{settings.REDIS_DB}"
result_backend = f"redis://:{settings.REDIS_PASSWORD}@{settings.REDIS_HOST}:{settings.REDIS_PORT}/{settings.REDIS_DB}"

# Task Discovery
include = ["foodexpiry.tasks"]

# Timezone Configuration
timezone = settings.TIMEZONE
enable_utc = True

# Task Result Configuration
result_expires = 3600

# Task Serialization
task_serializer = "json"
accept_content = ["json"]
result_serializer = "json"

# Task Execution Configuration
task_track_started = True
task_time_limit = 30 * 60  # 30 minutes
task_soft_time_limit = 25 * 60  # 25 minutes

# Worker Configuration
worker_prefetch_multiplier = 1
worker_max_tasks_per_child = 1000

# Task Retry Configuration
task_acks_late = True
task_reject_on_worker_lost = True
task_default_retry_delay = 60  # 60 seconds
task_max_retries = 3

# The in-process NotificationScheduler reads the same cron expressions,
# run either that or beat, not both.
beat_schedule = {
    "daily-expiration-digest": {
        "task": "foodexpiry.tasks.cron.expiration_digest.daily_expiration_digest_task",
        "schedule": parse_cron_expression(settings.DAILY_DIGEST_CRON),
        "args": ("daily_expiration_digest_cron",),
    },
    "weekly-expiration-digest": {
        "task": "foodexpiry.tasks.cron.expiration_digest.weekly_expiration_digest_task",
        "schedule": parse_cron_expression(settings.WEEKLY_DIGEST_CRON),
        "args": ("weekly_expiration_digest_cron",),
    },
    "weekly-inventory-summary": {
        "task": "foodexpiry.tasks.cron.weekly_summary.weekly_summary_task",
        "schedule": parse_cron_expression(settings.WEEKLY_SUMMARY_CRON),
        "args": ("weekly_summary_cron",),
    },
    # Verification code housekeeping - daily at 00:15
    "verification-code-purge": {
        "task": "foodexpiry.tasks.cron.verification_code_purge.verification_code_purge_task",
        "schedule": crontab(hour=0, minute=15),
        "args": ("verification_code_purge_cron",),
    },
}

# Default Queue
task_default_queue = "foodexpiry"

# Beat Scheduler Configuration
beat_schedule_filename = "tmp/celerybeat-schedule"
