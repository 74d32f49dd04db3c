"""
ONVIF session library: WS-Discovery, Digest-authenticated SOAP transport
and device session bootstrap
"""

from .device import DeviceInformation, DeviceSession, MediaProfile, Snapshot
from .discovery import DiscoveredDevice, DiscoveryEngine, DiscoveryResult, DiscoveryState
from .errors import (
    DiscoveryError,
    HttpStatusError,
    InitializationError,
    OnvifError,
    ParseError,
    RemoteFault,
    RequestTimeoutError,
    SessionStateError,
    TransportError,
    UnsupportedOperation,
    ValidationError,
)
from .soap import (
    ClockOffset,
    Credentials,
    DigestAuthTransport,
    Endpoint,
    SoapCodec,
    SoapResult,
    SoapTransactionClient,
)

__version__ = "1.0.0"

__all__ = [
    'DeviceSession', 'DeviceInformation', 'MediaProfile', 'Snapshot',
    'DiscoveryEngine', 'DiscoveredDevice', 'DiscoveryResult', 'DiscoveryState',
    'SoapCodec', 'DigestAuthTransport', 'SoapTransactionClient', 'SoapResult',
    'ClockOffset', 'Credentials', 'Endpoint',
    'OnvifError', 'TransportError', 'RequestTimeoutError', 'DiscoveryError',
    'HttpStatusError', 'RemoteFault', 'UnsupportedOperation', 'ParseError',
    'ValidationError', 'InitializationError', 'SessionStateError'
]
