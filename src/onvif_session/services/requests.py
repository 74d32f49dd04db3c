"""
Request parameter models for ONVIF operations, validated at construction
"""

import re
from enum import Enum
from typing import Optional, Type, TypeVar

import pydantic
from pydantic import BaseModel, Field, field_validator

from ..errors import ValidationError

_PRINTABLE_ASCII = re.compile(r"^[\x20-\x7e]+$")

T = TypeVar("T", bound=BaseModel)


def build_request(model: Type[T], **params) -> T:
    """Construct a request model, raising ValidationError before any network call"""
    try:
        return model(**params)
    except pydantic.ValidationError as e:
        raise ValidationError(f"Invalid {model.__name__} parameters: {e}") from e


class StreamProtocol(str, Enum):
    UDP = "UDP"
    HTTP = "HTTP"
    RTSP = "RTSP"


class ProfileRequest(BaseModel):
    profile_token: str

    @field_validator("profile_token")
    @classmethod
    def _check_token(cls, value: str) -> str:
        if not _PRINTABLE_ASCII.match(value):
            raise ValueError("must be a non-empty string of printable ASCII characters")
        if "<" in value or ">" in value:
            raise ValueError('must not contain "<" or ">"')
        return value


class GetStreamUriRequest(ProfileRequest):
    protocol: StreamProtocol
    stream: str = "RTP-Unicast"


class GetSnapshotUriRequest(ProfileRequest):
    pass


class Velocity(BaseModel):
    x: float = Field(0.0, ge=-1.0, le=1.0)   # pan
    y: float = Field(0.0, ge=-1.0, le=1.0)   # tilt
    z: float = Field(0.0, ge=-1.0, le=1.0)   # zoom


class ContinuousMoveRequest(ProfileRequest):
    velocity: Velocity
    timeout: Optional[int] = Field(None, gt=0)   # seconds


class StopRequest(ProfileRequest):
    pan_tilt: Optional[bool] = None
    zoom: Optional[bool] = None
