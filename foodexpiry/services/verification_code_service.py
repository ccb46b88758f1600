import json
import secrets
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from foodexpiry.config.settings import settings
from foodexpiry.db.models import VerificationCode
from foodexpiry.stores.base import CodeStore
from foodexpiry.utils.datetime_utils import to_naive_utc, utc_now
from foodexpiry.utils.errors import InvalidOrExpiredCodeError
from foodexpiry.utils.logging import get_logger

logger = get_logger()

CODE_MIN = 100000
CODE_MAX = 999999
PASSWORD_RESET_TYPE = "password-reset"


def generate_code() -> str:
    """Uniformly random 6-digit code without a leading zero."""
    return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))


def registration_payload(registration_data: Dict[str, Any]) -> str:
    return json.dumps(registration_data)


def password_reset_payload(user_id: int) -> str:
    return json.dumps({"userId": user_id, "type": PASSWORD_RESET_TYPE})


def parse_payload(payload: Optional[str]) -> Optional[Dict[str, Any]]:
    """Decode a JSON payload, returning None for anything that is not a JSON object."""
    if not payload:
        return None
    try:
        decoded = json.loads(payload)
    except ValueError:
        return None
    return decoded if isinstance(decoded, dict) else None


class VerificationCodeService:
    """
    Issues and redeems single-use, time-boxed codes bound to an email address.

    At most one live code exists per email: ``issue`` removes any previous
    record before storing the new one. ``redeem`` is a single conditional
    update in the store, so concurrent attempts on the same code produce at
    most one success. Storage failures propagate unchanged.
    """

    def __init__(
        self,
        code_store: CodeStore,
        ttl_minutes: int = settings.VERIFICATION_CODE_TTL_MINUTES,
        clock: Callable[[], datetime] = utc_now,
        code_generator: Callable[[], str] = generate_code,
    ):
        self.code_store = code_store
        self.ttl_minutes = ttl_minutes
        self.clock = clock
        self.code_generator = code_generator

    async def issue(self, email: str, payload: str, now: Optional[datetime] = None) -> str:
        now = to_naive_utc(now or self.clock())
        code = self.code_generator()

        await self.code_store.delete(email)
        await self.code_store.put(
            VerificationCode(
                email=email,
                code=code,
                expires_at=now + timedelta(minutes=self.ttl_minutes),
                consumed=False,
                payload=payload,
            )
        )

        logger.info(f"Issued verification code for {email}")
        return code

    async def redeem(self, email: str, code: str, now: Optional[datetime] = None) -> str:
        """
        Consume ``code`` for ``email`` and return the payload it was issued with.

        Raises:
            InvalidOrExpiredCodeError: no record, wrong code, already consumed or expired
        """
        now = to_naive_utc(now or self.clock())
        payload = await self.code_store.consume(email, code, now)
        if payload is None:
            logger.info(f"Rejected verification code for {email}")
            raise InvalidOrExpiredCodeError()

        logger.info(f"Redeemed verification code for {email}")
        return payload

    async def purge_stale(self, now: Optional[datetime] = None) -> int:
        removed = await self.code_store.purge_stale(to_naive_utc(now or self.clock()))
        if removed:
            logger.info(f"Purged {removed} stale verification codes")
        return removed
