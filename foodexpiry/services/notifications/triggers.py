import asyncio
from datetime import datetime
from typing import Awaitable, Callable, Optional, Set
from zoneinfo import ZoneInfo

from foodexpiry.celery import celery
from foodexpiry.config.settings import settings
from foodexpiry.utils.cron import parse_cron_expression
from foodexpiry.utils.logging import get_logger

logger = get_logger()

TriggerCallback = Callable[[], Awaitable[object]]


class CronTrigger:
    """
    Fires a zero-argument coroutine function on a five-field cron schedule.

    Fire times are computed with Celery's ``crontab`` in ``timezone``. Each
    fire runs the callback as its own task and the trigger re-arms at once,
    so ``cancel()`` only drops the pending wait; a callback already running
    is left to finish. Exceptions escaping the callback are logged.
    """

    def __init__(
        self,
        name: str,
        expression: str,
        callback: TriggerCallback,
        timezone: str = settings.TIMEZONE,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.name = name
        self.expression = expression
        self.callback = callback
        self.zone = ZoneInfo(timezone)
        self.clock = clock or (lambda: datetime.now(self.zone))
        # Raises ValueError for a malformed expression
        parse_cron_expression(expression)
        self.fire_count = 0
        self._task: Optional[asyncio.Task] = None
        self._in_flight: Set[asyncio.Task] = set()

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def next_fire_time(self, after: Optional[datetime] = None) -> datetime:
        """First matching minute strictly after ``after`` (default: now)."""
        last_run_at = (after or self.clock()).astimezone(self.zone)
        # crontab only steps within the hour when its own "now" shares the day of last_run_at
        schedule = parse_cron_expression(
            self.expression, app=celery, nowfun=lambda: last_run_at
        )
        start, delta, _ = schedule.remaining_delta(last_run_at)
        return start + delta

    def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name=f"cron-trigger:{self.name}"
        )
        logger.info(
            f"Trigger {self.name} armed ({self.expression}), next run at {self.next_fire_time()}"
        )

    def cancel(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None
            logger.info(f"Trigger {self.name} cancelled")

    async def wait_in_flight(self) -> None:
        """Wait for callbacks that were already running when the trigger was cancelled."""
        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)

    async def _run(self) -> None:
        last_fire: Optional[datetime] = None
        while True:
            now = self.clock()
            # Never compute from before the previous fire, the sleep may wake early
            reference = max(now, last_fire) if last_fire else now
            fire_at = self.next_fire_time(reference)
            await asyncio.sleep(max((fire_at - now).total_seconds(), 0))
            last_fire = fire_at
            self._fire()

    def _fire(self) -> None:
        self.fire_count += 1
        task = asyncio.get_running_loop().create_task(
            self._invoke(), name=f"cron-callback:{self.name}"
        )
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _invoke(self) -> None:
        logger.info(f"Trigger {self.name} fired")
        try:
            await self.callback()
        except Exception as e:
            logger.exception(f"Trigger {self.name} callback failed: {e}")
