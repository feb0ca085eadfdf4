from __future__ import annotations

TRANSIENT_STATUS_CODES = frozenset({429, 503})


class DocumentServiceError(Exception):
    """Base class for failures raised by the document aggregation layer."""


class NotConnectedError(DocumentServiceError):
    def __init__(self, provider: str = "google"):
        super().__init__(f"{provider.capitalize()} account not connected")
        self.provider = provider


class TokenRefreshError(DocumentServiceError):
    """The OAuth provider refused or mangled a refresh_token grant."""


class ReconnectRequiredError(DocumentServiceError):
    """The stored credential can no longer be used; the user has to connect again."""

    def __init__(self, provider: str = "google", reason: str | None = None):
        message = f"{provider.capitalize()} access expired, please reconnect your account"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.provider = provider


class DriveAPIError(DocumentServiceError):
    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message

    @property
    def is_transient(self) -> bool:
        return self.status_code in TRANSIENT_STATUS_CODES

    def __str__(self) -> str:
        return f"{self.status_code} {self.message}"


class ListingError(DocumentServiceError):
    """The Drive listing call failed; nothing can be aggregated."""


class RetryExhaustedError(DocumentServiceError):
    def __init__(self, file_id: str, attempts: int, last_error: BaseException | None = None):
        super().__init__(f"gave up on {file_id} after {attempts} attempts: {last_error}")
        self.file_id = file_id
        self.attempts = attempts
        self.last_error = last_error
