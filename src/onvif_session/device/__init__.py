"""
Device session module: bootstrap sequence and media profile model
"""

from .models import (
    AudioEncoderConfig,
    AudioSourceConfig,
    DeviceInformation,
    MediaProfile,
    PtzRange,
    Range,
    Snapshot,
    StreamUris,
    VideoEncoderConfig,
    VideoSourceConfig,
)
from .profile_parser import parse_profile, parse_profiles
from .session import DeviceSession

__all__ = [
    'DeviceSession', 'DeviceInformation', 'MediaProfile', 'StreamUris', 'PtzRange', 'Range',
    'VideoSourceConfig', 'VideoEncoderConfig', 'AudioSourceConfig', 'AudioEncoderConfig',
    'Snapshot', 'parse_profile', 'parse_profiles'
]
