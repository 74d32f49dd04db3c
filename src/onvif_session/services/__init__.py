"""
ONVIF sub-service clients
"""

from .base import OnvifService
from .device_service import DeviceService
from .events_service import EventsService
from .media_service import MediaService
from .ptz_service import PtzService
from .requests import (
    ContinuousMoveRequest,
    GetSnapshotUriRequest,
    GetStreamUriRequest,
    ProfileRequest,
    StopRequest,
    StreamProtocol,
    Velocity,
    build_request,
)

__all__ = [
    'OnvifService', 'DeviceService', 'EventsService', 'MediaService', 'PtzService',
    'ContinuousMoveRequest', 'GetSnapshotUriRequest', 'GetStreamUriRequest',
    'ProfileRequest', 'StopRequest', 'StreamProtocol', 'Velocity', 'build_request'
]
