"""
Media profile parsing from GetProfiles responses
Every configuration block and field is optional; bad values fall back to defaults
"""

import logging
from typing import Any, List, Optional

from ..soap.codec import as_list, deep_get, text_of
from .models import (
    AudioEncoderConfig,
    AudioSourceConfig,
    Bounds,
    MediaProfile,
    PtzRange,
    Range,
    Resolution,
    VideoEncoderConfig,
    VideoSourceConfig,
)

logger = logging.getLogger(__name__)


def _int(node: Any, path: str, default: int = 0) -> int:
    value = text_of(deep_get(node, path)).strip()
    if not value:
        return default
    try:
        return int(float(value))
    except (ValueError, OverflowError):
        logger.debug(f"Ignoring non-numeric profile field {path}={value!r}")
        return default


def _float(node: Any, path: str, default: float = 0.0) -> float:
    value = text_of(deep_get(node, path)).strip()
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        logger.debug(f"Ignoring non-numeric profile field {path}={value!r}")
        return default


def _str(node: Any, path: str) -> str:
    return text_of(deep_get(node, path))


def _range(node: Any, path: str) -> Range:
    return Range(min=_float(node, f"{path}.Min"), max=_float(node, f"{path}.Max"))


def parse_video_source(block: Any) -> Optional[VideoSourceConfig]:
    if not isinstance(block, dict):
        return None
    return VideoSourceConfig(
        token=_str(block, '@token'),
        name=_str(block, 'Name'),
        bounds=Bounds(
            width=_int(block, 'Bounds.@width'),
            height=_int(block, 'Bounds.@height'),
            x=_int(block, 'Bounds.@x'),
            y=_int(block, 'Bounds.@y')
        )
    )


def parse_video_encoder(block: Any) -> Optional[VideoEncoderConfig]:
    if not isinstance(block, dict):
        return None
    return VideoEncoderConfig(
        token=_str(block, '@token'),
        name=_str(block, 'Name'),
        resolution=Resolution(
            width=_int(block, 'Resolution.Width'),
            height=_int(block, 'Resolution.Height')
        ),
        quality=_int(block, 'Quality'),
        framerate=_int(block, 'RateControl.FrameRateLimit'),
        bitrate=_int(block, 'RateControl.BitrateLimit'),
        encoding=_str(block, 'Encoding')
    )


def parse_audio_source(block: Any) -> Optional[AudioSourceConfig]:
    if not isinstance(block, dict):
        return None
    return AudioSourceConfig(token=_str(block, '@token'), name=_str(block, 'Name'))


def parse_audio_encoder(block: Any) -> Optional[AudioEncoderConfig]:
    if not isinstance(block, dict):
        return None
    return AudioEncoderConfig(
        token=_str(block, '@token'),
        name=_str(block, 'Name'),
        bitrate=_int(block, 'Bitrate'),
        samplerate=_int(block, 'SampleRate'),
        encoding=_str(block, 'Encoding')
    )


def parse_ptz_range(block: Any) -> PtzRange:
    if not isinstance(block, dict):
        return PtzRange()
    return PtzRange(
        x=_range(block, 'PanTiltLimits.Range.XRange'),
        y=_range(block, 'PanTiltLimits.Range.YRange'),
        # NOTE: zoom limits are read from ZoomLimits.Range.XRange, the field path devices
        # have been observed to use; a ZRange-style path may be the schema-correct one.
        z=_range(block, 'ZoomLimits.Range.XRange')
    )


def parse_profile(data: Any) -> Optional[MediaProfile]:
    """One profile, or None when it has no token"""
    if not isinstance(data, dict):
        return None
    token = _str(data, '@token')
    if not token:
        logger.warning("Skipping media profile without a token")
        return None

    return MediaProfile(
        token=token,
        name=_str(data, 'Name'),
        video_source=parse_video_source(data.get('VideoSourceConfiguration')),
        video_encoder=parse_video_encoder(data.get('VideoEncoderConfiguration')),
        audio_source=parse_audio_source(data.get('AudioSourceConfiguration')),
        audio_encoder=parse_audio_encoder(data.get('AudioEncoderConfiguration')),
        ptz_range=parse_ptz_range(data.get('PTZConfiguration'))
    )


def parse_profiles(response: Any) -> List[MediaProfile]:
    """All profiles from a GetProfilesResponse, unique by token in device order"""
    profiles = []
    seen = set()
    for item in as_list(deep_get(response, 'Profiles')):
        profile = parse_profile(item)
        if profile is None:
            continue
        if profile.token in seen:
            logger.warning(f"Ignoring duplicate media profile token {profile.token!r}")
            continue
        seen.add(profile.token)
        profiles.append(profile)
    return profiles
