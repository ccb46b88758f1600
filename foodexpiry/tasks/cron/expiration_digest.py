import asyncio

from foodexpiry.celery import celery
from foodexpiry.container import build_container
from foodexpiry.schemas.notification_schemas import NotificationKind, OutcomeStatus
from foodexpiry.utils.context import set_request_id
from foodexpiry.utils.logging import get_logger


@celery.task(bind=True, max_retries=3, default_retry_delay=60)
def daily_expiration_digest_task(self, request_id: str):
    """
    Daily task sending expiration digests to users with daily alerts.

    Runs at 8:00 AM every day (``DAILY_DIGEST_CRON``) to:
    1. Find users with expiration alerts on, daily frequency and a usable address
    2. Collect their expired and expiring-soon items
    3. Email a digest to each user who has any, then advance their watermark

    Args:
        request_id: Request ID for tracking purposes
    """
    return asyncio.run(_async_expiration_digest(NotificationKind.DAILY_DIGEST, request_id))


@celery.task(bind=True, max_retries=3, default_retry_delay=60)
def weekly_expiration_digest_task(self, request_id: str):
    """
    Weekly task sending expiration digests to users with weekly alerts.

    Runs at 8:00 AM every Monday (``WEEKLY_DIGEST_CRON``).

    Args:
        request_id: Request ID for tracking purposes
    """
    return asyncio.run(_async_expiration_digest(NotificationKind.WEEKLY_DIGEST, request_id))


async def _async_expiration_digest(kind: NotificationKind, request_id: str):
    set_request_id(request_id)
    logger = get_logger()
    container = build_container()

    try:
        report = await container.scheduler.run_fanout(kind)

        logger.info(
            "Expiration digest task completed",
            kind=kind.value,
            processed_count=len(report.outcomes),
            notifications_sent=report.count(OutcomeStatus.SENT),
            errors=report.count(OutcomeStatus.ERROR),
        )

        return {
            "success": True,
            "kind": kind.value,
            "run_id": report.run_id,
            "processed_count": len(report.outcomes),
            "notifications_sent": report.count(OutcomeStatus.SENT),
            "nothing_to_send": report.count(OutcomeStatus.NOTHING_TO_SEND),
            "delivery_failed": report.count(OutcomeStatus.DELIVERY_FAILED),
            "errors": report.count(OutcomeStatus.ERROR),
            "request_id": request_id,
        }

    except Exception as e:
        logger.error(
            "Expiration digest task exception",
            kind=kind.value,
            error=str(e),
            exc_info=True,
        )
        return {"success": False, "error": str(e), "request_id": request_id}

    finally:
        await container.engine.dispose()
