from datetime import datetime
from typing import Any, Dict, Optional

from foodexpiry.db.models import User
from foodexpiry.schemas.account_schemas import RegistrationData, VerificationRequestResult
from foodexpiry.services.email.delivery_gateway import NotificationDeliveryGateway
from foodexpiry.services.verification_code_service import (
    PASSWORD_RESET_TYPE,
    VerificationCodeService,
    parse_payload,
    password_reset_payload,
    registration_payload,
)
from foodexpiry.stores.base import AccountStore
from foodexpiry.utils.errors import (
    FoodExpiryError,
    InvalidOrExpiredCodeError,
    UserNotFoundError,
)
from foodexpiry.utils.logging import get_logger

logger = get_logger()

RESET_REQUESTED_MESSAGE = "If an account with that email exists, a reset code has been sent."


class AccountVerificationService:
    """Registration and password-reset flows on top of verification codes."""

    def __init__(
        self,
        code_service: VerificationCodeService,
        gateway: NotificationDeliveryGateway,
        account_store: AccountStore,
    ):
        self.code_service = code_service
        self.gateway = gateway
        self.account_store = account_store

    async def start_registration(
        self, registration: RegistrationData, now: Optional[datetime] = None
    ) -> VerificationRequestResult:
        """
        Issue and email a code carrying the sign-up fields.

        Raises:
            FoodExpiryError: username or email already taken
        """
        if await self.account_store.get_user_by_username(registration.username):
            raise FoodExpiryError("Username already exists", "USERNAME_TAKEN")
        if await self.account_store.get_user_by_email(registration.email):
            raise FoodExpiryError("Email already in use", "EMAIL_IN_USE")

        code = await self.code_service.issue(
            registration.email, registration_payload(registration.to_payload()), now=now
        )
        sent = await self.gateway.send_verification_code(
            registration.email, code, self.code_service.ttl_minutes
        )
        if not sent:
            logger.error(f"Failed to send verification email to {registration.email}")
            return VerificationRequestResult(
                success=False,
                message="Failed to send verification email",
                email=registration.email,
            )

        return VerificationRequestResult(
            success=True,
            message="Verification code sent to your email",
            email=registration.email,
        )

    async def complete_registration(
        self, email: str, code: str, now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """Redeem the code and return the sign-up fields it was issued with."""
        payload = parse_payload(await self.code_service.redeem(email, code, now=now))
        if payload is None:
            raise InvalidOrExpiredCodeError()
        return payload

    async def request_password_reset(
        self, email: str, now: Optional[datetime] = None
    ) -> VerificationRequestResult:
        user = await self.account_store.get_user_by_email(email)
        if user is None:
            # Same answer as a real request so account existence is not revealed
            logger.info("Password reset requested for unknown email")
            return VerificationRequestResult(
                success=True, message=RESET_REQUESTED_MESSAGE, email=email
            )

        code = await self.code_service.issue(email, password_reset_payload(user.id), now=now)
        sent = await self.gateway.send_password_reset_code(
            email, code, self.code_service.ttl_minutes
        )
        if not sent:
            logger.error(f"Failed to send password reset email to user {user.id}")
            return VerificationRequestResult(
                success=False, message="Failed to send password reset email", email=email
            )

        return VerificationRequestResult(
            success=True, message="Password reset code sent to your email", email=email
        )

    async def verify_password_reset(
        self, email: str, code: str, now: Optional[datetime] = None
    ) -> User:
        """
        Redeem a password-reset code and return the account it belongs to.

        Raises:
            InvalidOrExpiredCodeError: bad code, or a code issued for another purpose
            UserNotFoundError: the account was deleted after the code was issued
        """
        payload = parse_payload(await self.code_service.redeem(email, code, now=now)) or {}
        user_id = payload.get("userId")
        if payload.get("type") != PASSWORD_RESET_TYPE or not isinstance(user_id, int):
            raise InvalidOrExpiredCodeError(
                "Invalid reset code. Please request a new one."
            )

        user = await self.account_store.get_user(user_id)
        if user is None:
            raise UserNotFoundError()
        return user
