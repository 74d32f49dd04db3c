"""
Tests for request parameter validation and sub-service request bodies
"""
import pytest

from onvif_session.errors import ValidationError
from onvif_session.services import (
    ContinuousMoveRequest,
    GetStreamUriRequest,
    MediaService,
    ProfileRequest,
    PtzService,
    StopRequest,
    StreamProtocol,
    build_request,
)
from onvif_session.soap import Endpoint


class TestRequestValidation:

    @pytest.mark.parametrize("token", ["", "a<b", "a>b", "café", "tab\there"])
    def test_bad_profile_token(self, token):
        with pytest.raises(ValidationError):
            build_request(ProfileRequest, profile_token=token)

    def test_validation_error_is_value_error(self):
        with pytest.raises(ValueError):
            build_request(ProfileRequest, profile_token="")

    def test_stream_protocol(self):
        request = build_request(GetStreamUriRequest, profile_token="p", protocol="RTSP")
        assert request.protocol is StreamProtocol.RTSP
        assert request.stream == "RTP-Unicast"

        with pytest.raises(ValidationError):
            build_request(GetStreamUriRequest, profile_token="p", protocol="SRT")

    @pytest.mark.parametrize("velocity", [{"x": 1.5}, {"y": -1.01}, {"z": 2}])
    def test_velocity_range(self, velocity):
        with pytest.raises(ValidationError):
            build_request(ContinuousMoveRequest, profile_token="p", velocity=velocity)

    @pytest.mark.parametrize("timeout", [0, -3])
    def test_timeout_positive(self, timeout):
        with pytest.raises(ValidationError):
            build_request(ContinuousMoveRequest, profile_token="p", velocity={}, timeout=timeout)

    def test_defaults(self):
        request = build_request(ContinuousMoveRequest, profile_token="p", velocity={"x": 0.5})
        assert (request.velocity.x, request.velocity.y, request.velocity.z) == (0.5, 0.0, 0.0)
        assert request.timeout is None


class TestServiceBodies:
    """Request bodies reach the device as expected"""

    @pytest.mark.asyncio
    async def test_stream_uri_request(self, onvif_device):
        media = MediaService(Endpoint.from_url(f"{onvif_device.base_url}/onvif/media"))
        request = build_request(GetStreamUriRequest, profile_token="profile_1", protocol="UDP")

        uri = await media.get_stream_uri(request)

        assert uri == "udp://camera.local/profile_1"
        body = onvif_device.requests[0]["body"]["GetStreamUri"]
        assert body["StreamSetup"]["Stream"] == "RTP-Unicast"
        assert body["StreamSetup"]["Transport"]["Protocol"] == "UDP"

    @pytest.mark.asyncio
    async def test_continuous_move_body(self, onvif_device):
        ptz = PtzService(Endpoint.from_url(f"{onvif_device.base_url}/onvif/ptz"))
        request = build_request(
            ContinuousMoveRequest, profile_token="profile_1", velocity={"x": 0.5, "y": -0.25}, timeout=2
        )

        await ptz.continuous_move(request)

        body = onvif_device.requests[0]["body"]["ContinuousMove"]
        assert body["ProfileToken"] == "profile_1"
        assert body["Velocity"]["PanTilt"]["@x"] == "0.5"
        assert body["Velocity"]["PanTilt"]["@y"] == "-0.25"
        assert "Zoom" not in body["Velocity"]
        assert body["Timeout"] == "PT2S"

    @pytest.mark.asyncio
    async def test_stop_body(self, onvif_device):
        ptz = PtzService(Endpoint.from_url(f"{onvif_device.base_url}/onvif/ptz"))

        await ptz.stop(build_request(StopRequest, profile_token="profile_1", pan_tilt=True, zoom=False))

        body = onvif_device.requests[0]["body"]["Stop"]
        assert body["PanTilt"] == "true"
        assert body["Zoom"] == "false"
