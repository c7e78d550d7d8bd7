from typing import Optional


class OutputError(Exception):
    pass

class CredentialFormatError(OutputError):
    """Key file is unreadable or lacks client_email/private_key. Fatal at startup."""
    pass

class TransientError(OutputError):
    """Recovered inside the publish loop; never surfaced to the host."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status

class TransientAuthError(TransientError):
    """Access token expired or rejected with 401."""
    pass

class TransientTimeoutError(TransientError):
    """Transport timed out before the server answered."""
    pass

class PayloadError(OutputError):
    """Event could not be turned into a message payload."""
    pass

class PublishError(OutputError):
    """Publish failed for good: non-retryable response, transport failure, or retries exhausted."""

    def __init__(self, message: str, status: Optional[int] = None, error_message: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.error_message = error_message
