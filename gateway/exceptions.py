"""Exception classes for the SDS gateway."""

from typing import Optional


class GatewayError(Exception):
    """
    Base exception class for all gateway errors.
    """
    pass


class ConfigError(GatewayError):
    """
    Raised when the gateway configuration is missing, unreadable or invalid.
    The process cannot start without a valid configuration.
    """
    pass


class TransportError(GatewayError):
    """
    Raised when the SDS cannot be reached (connection, TLS or timeout failure).
    """
    pass


class RemoteProtocolError(GatewayError):
    """
    Raised when the SDS answers with a status code the gateway does not accept.
    """

    def __init__(self, status_code: int, message: Optional[str] = None):
        self.status_code = status_code
        super().__init__(message or f"Unexpected SDS response status: {status_code}")


class RemoteApplicationError(GatewayError):
    """
    Raised when the SDS rejects a request with a structured 4xx/5xx error body.
    """

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"SDS error {status_code}: {message}")


class MalformedPointer(GatewayError):
    """
    Raised when a local pointer file is not exactly one pointer long or cannot be read.
    """
    pass


class DecodeError(GatewayError):
    """
    Raised when an SDS response body does not match the expected shape.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class LocalIOError(GatewayError):
    """
    Raised on filesystem failures while sharding, spooling or recovering.
    """
    pass


class ObjectNotFoundError(GatewayError):
    """
    Raised when the SDS has no usable metadata for an object id.
    """
    pass
