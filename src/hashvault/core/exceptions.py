"""Custom exceptions for hashvault."""


class GatewayError(Exception):
    """Base exception for hashvault."""
    pass


class ClientError(GatewayError):
    """Exception raised for a malformed request."""
    pass


class ObjectNotFoundError(GatewayError):
    """Exception raised when a key does not exist in the store."""

    def __init__(self, key: str):
        super().__init__(f"Object not found: {key}")
        self.key = key


class UploadError(GatewayError):
    """Exception raised for any server-side failure."""
    pass


class StoreError(UploadError):
    """Exception raised when an object store operation fails.

    Carries the backend detail so it can be logged where it is received.
    None of it is ever sent to the client.
    """

    def __init__(
        self,
        operation: str,
        key: str,
        message: str,
        status_code: int | None = None,
        detail: str | None = None,
    ):
        super().__init__(f"{operation} failed for {key}: {message}")
        self.operation = operation
        self.key = key
        self.status_code = status_code
        self.detail = detail


class StreamError(UploadError):
    """Exception raised when the inbound byte stream fails or ends early."""
    pass


class StoreConfigurationError(UploadError):
    """Exception raised when the configured store cannot be built."""
    pass
