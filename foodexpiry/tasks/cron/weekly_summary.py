import asyncio

from foodexpiry.celery import celery
from foodexpiry.container import build_container
from foodexpiry.schemas.notification_schemas import NotificationKind, OutcomeStatus
from foodexpiry.utils.context import set_request_id
from foodexpiry.utils.logging import get_logger


@celery.task(bind=True, max_retries=3, default_retry_delay=60)
def weekly_summary_task(self, request_id: str):
    """
    Weekly task sending inventory summaries.

    Runs at 9:00 AM every Sunday (``WEEKLY_SUMMARY_CRON``) for every user with
    the weekly summary enabled and a usable address. The summary counts fresh,
    expiring-soon and expired items and is sent even for an empty inventory.

    Args:
        request_id: Request ID for tracking purposes
    """
    return asyncio.run(_async_weekly_summary(request_id))


async def _async_weekly_summary(request_id: str):
    set_request_id(request_id)
    logger = get_logger()
    container = build_container()

    try:
        report = await container.scheduler.run_fanout(NotificationKind.WEEKLY_SUMMARY)

        logger.info(
            "Weekly summary task completed",
            processed_count=len(report.outcomes),
            summaries_sent=report.count(OutcomeStatus.SENT),
            errors=report.count(OutcomeStatus.ERROR),
        )

        return {
            "success": True,
            "run_id": report.run_id,
            "processed_count": len(report.outcomes),
            "summaries_sent": report.count(OutcomeStatus.SENT),
            "delivery_failed": report.count(OutcomeStatus.DELIVERY_FAILED),
            "errors": report.count(OutcomeStatus.ERROR),
            "request_id": request_id,
        }

    except Exception as e:
        logger.error(
            "Weekly summary task exception",
            error=str(e),
            exc_info=True,
        )
        return {"success": False, "error": str(e), "request_id": request_id}

    finally:
        await container.engine.dispose()
