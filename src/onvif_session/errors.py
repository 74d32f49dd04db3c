"""
Error taxonomy for ONVIF session and transport operations
"""

from typing import Optional


class OnvifError(Exception):
    """Base class for all ONVIF client errors"""


class TransportError(OnvifError):
    """Socket, DNS or connection level failure"""


class RequestTimeoutError(TransportError):
    """Request exceeded the configured timeout"""


class DiscoveryError(TransportError):
    """WS-Discovery could not run (socket bind failure, engine busy)"""


class HttpStatusError(OnvifError):
    """Non-2xx HTTP response without a usable SOAP fault"""

    def __init__(self, status: int, reason: str = "", fault: Optional[str] = None):
        self.status = status
        self.reason = reason
        self.fault = fault
        message = f"{status} {reason}".strip()
        if fault:
            message += f" ({fault})"
        super().__init__(message)


class RemoteFault(OnvifError):
    """SOAP Fault returned by the device"""

    def __init__(self, reason: str, status: Optional[int] = None):
        self.reason = reason
        self.status = status
        super().__init__(reason)


class UnsupportedOperation(OnvifError):
    """Device response lacks the expected <Operation>Response element"""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"The device seems to not support the {operation}() method.")


class ParseError(OnvifError):
    """Malformed XML in a response or datagram"""


class ValidationError(OnvifError, ValueError):
    """Caller-supplied parameters rejected before any network call"""


class InitializationError(OnvifError):
    """A required bootstrap step failed"""

    def __init__(self, step: str, message: str):
        self.step = step
        super().__init__(f"Failed to initialize the device ({step}): {message}")


class SessionStateError(OnvifError):
    """Operation not possible in the current session state"""
