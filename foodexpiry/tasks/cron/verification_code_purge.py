import asyncio

from foodexpiry.celery import celery
from foodexpiry.container import build_container
from foodexpiry.utils.context import set_request_id
from foodexpiry.utils.logging import get_logger


@celery.task(bind=True, max_retries=3, default_retry_delay=60)
def verification_code_purge_task(self, request_id: str):
    """
    Daily task deleting verification codes that can no longer be redeemed.

    Consumed and expired codes are never read again; redemption already
    rejects them, so this only keeps the table small.

    Args:
        request_id: Request ID for tracking purposes
    """
    return asyncio.run(_async_verification_code_purge(request_id))


async def _async_verification_code_purge(request_id: str):
    set_request_id(request_id)
    logger = get_logger()
    container = build_container()

    try:
        removed = await container.code_service.purge_stale()

        logger.info("Verification code purge completed", removed_count=removed)

        return {"success": True, "removed_count": removed, "request_id": request_id}

    except Exception as e:
        logger.error(
            "Verification code purge task exception",
            error=str(e),
            exc_info=True,
        )
        return {"success": False, "error": str(e), "request_id": request_id}

    finally:
        await container.engine.dispose()
