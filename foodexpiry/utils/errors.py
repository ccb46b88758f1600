class FoodExpiryError(Exception):
    """Base exception for the notification and verification services."""

    def __init__(self, message: str, error_code: str = "FOODEXPIRY_ERROR"):
        super().__init__(message)
        self.message = message
        self.error_code = error_code


class InvalidOrExpiredCodeError(FoodExpiryError):
    """Verification code is unknown, wrong, consumed or past its expiry."""

    def __init__(
        self,
        message: str = "Invalid or expired verification code. Please try again.",
        error_code: str = "INVALID_OR_EXPIRED_CODE",
    ):
        super().__init__(message, error_code)


class StorageError(FoodExpiryError):
    """Custom exception for database-related errors."""

    def __init__(self, message: str, error_code: str = "STORAGE_ERROR"):
        super().__init__(message, error_code)


class TransportError(FoodExpiryError):
    """Email transport rejected the message, was unreachable or timed out."""

    def __init__(self, message: str, error_code: str = "TRANSPORT_ERROR"):
        super().__init__(message, error_code)


class UserNotFoundError(FoodExpiryError):
    def __init__(self, message: str = "User not found", error_code: str = "USER_NOT_FOUND"):
        super().__init__(message, error_code)


class PreferenceNotConfiguredError(FoodExpiryError):
    def __init__(
        self,
        message: str = "Notification preferences are not configured",
        error_code: str = "PREFERENCE_NOT_CONFIGURED",
    ):
        super().__init__(message, error_code)


class InvalidRecipientError(ValueError):
    """Raised for a malformed recipient address. This is a caller bug, not a delivery failure."""

    def __init__(self, address: object):
        super().__init__(f"Invalid recipient address: {address!r}")
        self.address = address
        self.error_code = "INVALID_RECIPIENT"
