"""
Device session data structures
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..soap.codec import text_of


@dataclass
class DeviceInformation:
    """Result of GetDeviceInformation"""
    manufacturer: str = ""
    model: str = ""
    firmware_version: str = ""
    serial_number: str = ""
    hardware_id: str = ""

    @classmethod
    def from_response(cls, data: Any) -> "DeviceInformation":
        if not isinstance(data, dict):
            return cls()
        return cls(
            manufacturer=text_of(data.get('Manufacturer')),
            model=text_of(data.get('Model')),
            firmware_version=text_of(data.get('FirmwareVersion')),
            serial_number=text_of(data.get('SerialNumber')),
            hardware_id=text_of(data.get('HardwareId'))
        )


@dataclass
class Bounds:
    width: int = 0
    height: int = 0
    x: int = 0
    y: int = 0


@dataclass
class Resolution:
    width: int = 0
    height: int = 0


@dataclass
class VideoSourceConfig:
    token: str = ""
    name: str = ""
    bounds: Bounds = field(default_factory=Bounds)


@dataclass
class VideoEncoderConfig:
    token: str = ""
    name: str = ""
    resolution: Resolution = field(default_factory=Resolution)
    quality: int = 0
    framerate: int = 0
    bitrate: int = 0
    encoding: str = ""


@dataclass
class AudioSourceConfig:
    token: str = ""
    name: str = ""


@dataclass
class AudioEncoderConfig:
    token: str = ""
    name: str = ""
    bitrate: int = 0
    samplerate: int = 0
    encoding: str = ""


@dataclass
class Range:
    min: float = 0.0
    max: float = 0.0


@dataclass
class PtzRange:
    x: Range = field(default_factory=Range)   # pan
    y: Range = field(default_factory=Range)   # tilt
    z: Range = field(default_factory=Range)   # zoom


@dataclass
class StreamUris:
    udp: Optional[str] = None
    http: Optional[str] = None
    rtsp: Optional[str] = None

    def get(self, protocol: str) -> Optional[str]:
        return getattr(self, protocol.lower(), None)

    def set(self, protocol: str, uri: Optional[str]) -> None:
        setattr(self, protocol.lower(), uri)


@dataclass
class MediaProfile:
    """Media profile; stream and snapshot URIs are filled in during bootstrap"""
    token: str
    name: str = ""
    snapshot: Optional[str] = None
    stream: StreamUris = field(default_factory=StreamUris)
    video_source: Optional[VideoSourceConfig] = None
    video_encoder: Optional[VideoEncoderConfig] = None
    audio_source: Optional[AudioSourceConfig] = None
    audio_encoder: Optional[AudioEncoderConfig] = None
    ptz_range: PtzRange = field(default_factory=PtzRange)


@dataclass
class Snapshot:
    """JPEG (or other image) fetched from a profile snapshot URI"""
    content_type: str
    body: bytes
    headers: Dict[str, str] = field(default_factory=dict)
