"""
Shared fixtures: an in-process ONVIF device served by aiohttp
"""
import hashlib
import re
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Tuple, Union

import pytest
import pytest_asyncio
import xmltodict
from aiohttp import web
from aiohttp.test_utils import TestServer

RESPONSE_ENVELOPE = (
    '<?xml version="1.0" encoding="UTF-8"?>'
    '<SOAP-ENV:Envelope'
    ' xmlns:SOAP-ENV="http://www.w3.org/2003/05/soap-envelope"'
    ' xmlns:tds="http://www.onvif.org/ver10/device/wsdl"'
    ' xmlns:trt="http://www.onvif.org/ver10/media/wsdl"'
    ' xmlns:tptz="http://www.onvif.org/ver20/ptz/wsdl"'
    ' xmlns:tev="http://www.onvif.org/ver10/events/wsdl"'
    ' xmlns:tt="http://www.onvif.org/ver10/schema"'
    ' xmlns:ter="http://www.onvif.org/ver10/error">'
    '<SOAP-ENV:Body>{body}</SOAP-ENV:Body>'
    '</SOAP-ENV:Envelope>'
)

FAULT_BODY = (
    '<SOAP-ENV:Fault>'
    '<SOAP-ENV:Code>'
    '<SOAP-ENV:Value>SOAP-ENV:Sender</SOAP-ENV:Value>'
    '<SOAP-ENV:Subcode><SOAP-ENV:Value>ter:ActionNotSupported</SOAP-ENV:Value></SOAP-ENV:Subcode>'
    '</SOAP-ENV:Code>'
    '<SOAP-ENV:Reason><SOAP-ENV:Text xml:lang="en">{reason}</SOAP-ENV:Text></SOAP-ENV:Reason>'
    '</SOAP-ENV:Fault>'
)

PROFILES_BODY = """
<trt:GetProfilesResponse>
  <trt:Profiles token="profile_1" fixed="true">
    <tt:Name>mainStream</tt:Name>
    <tt:VideoSourceConfiguration token="vsc_1">
      <tt:Name>VideoSource_1</tt:Name>
      <tt:Bounds x="0" y="0" width="1920" height="1080"></tt:Bounds>
    </tt:VideoSourceConfiguration>
    <tt:AudioSourceConfiguration token="asc_1">
      <tt:Name>AudioSource_1</tt:Name>
    </tt:AudioSourceConfiguration>
    <tt:VideoEncoderConfiguration token="vec_1">
      <tt:Name>VideoEncoder_1</tt:Name>
      <tt:Encoding>H264</tt:Encoding>
      <tt:Resolution><tt:Width>1920</tt:Width><tt:Height>1080</tt:Height></tt:Resolution>
      <tt:Quality>4.0</tt:Quality>
      <tt:RateControl>
        <tt:FrameRateLimit>25</tt:FrameRateLimit>
        <tt:BitrateLimit>4096</tt:BitrateLimit>
      </tt:RateControl>
    </tt:VideoEncoderConfiguration>
    <tt:AudioEncoderConfiguration token="aec_1">
      <tt:Name>AudioEncoder_1</tt:Name>
      <tt:Encoding>G711</tt:Encoding>
      <tt:Bitrate>64</tt:Bitrate>
      <tt:SampleRate>8</tt:SampleRate>
    </tt:AudioEncoderConfiguration>
    <tt:PTZConfiguration token="ptz_1">
      <tt:Name>PTZ_1</tt:Name>
      <tt:PanTiltLimits>
        <tt:Range>
          <tt:URI>http://www.onvif.org/ver10/tptz/PanTiltSpaces/PositionGenericSpace</tt:URI>
          <tt:XRange><tt:Min>-1.0</tt:Min><tt:Max>1.0</tt:Max></tt:XRange>
          <tt:YRange><tt:Min>-0.5</tt:Min><tt:Max>0.5</tt:Max></tt:YRange>
        </tt:Range>
      </tt:PanTiltLimits>
      <tt:ZoomLimits>
        <tt:Range>
          <tt:URI>http://www.onvif.org/ver10/tptz/ZoomSpaces/PositionGenericSpace</tt:URI>
          <tt:XRange><tt:Min>0.0</tt:Min><tt:Max>1.0</tt:Max></tt:XRange>
        </tt:Range>
      </tt:ZoomLimits>
    </tt:PTZConfiguration>
  </trt:Profiles>
  <trt:Profiles token="profile_2" fixed="true">
    <tt:Name>subStream</tt:Name>
    <tt:VideoSourceConfiguration token="vsc_1">
      <tt:Name>VideoSource_1</tt:Name>
      <tt:Bounds x="0" y="0" width="1920" height="1080"></tt:Bounds>
    </tt:VideoSourceConfiguration>
    <tt:VideoEncoderConfiguration token="vec_2">
      <tt:Name>VideoEncoder_2</tt:Name>
      <tt:Encoding>H264</tt:Encoding>
      <tt:Resolution><tt:Width>640</tt:Width><tt:Height>360</tt:Height></tt:Resolution>
      <tt:Quality>3</tt:Quality>
      <tt:RateControl>
        <tt:FrameRateLimit>15</tt:FrameRateLimit>
        <tt:BitrateLimit>512</tt:BitrateLimit>
      </tt:RateControl>
    </tt:VideoEncoderConfiguration>
  </trt:Profiles>
</trt:GetProfilesResponse>
"""

Handler = Union[str, Callable[[dict, str], str]]


def _strip_prefix(path, key, value):
    if not key.startswith("@") and ":" in key:
        key = key.rsplit(":", 1)[1]
    return key, value


def _text(node) -> str:
    if isinstance(node, dict):
        return node.get("#text", "")
    return node or ""


def _system_date_and_time(skew: timedelta) -> str:
    now = datetime.now(timezone.utc) + skew
    return (
        '<tds:GetSystemDateAndTimeResponse><tds:SystemDateAndTime>'
        '<tt:DateTimeType>NTP</tt:DateTimeType>'
        '<tt:DaylightSavings>false</tt:DaylightSavings>'
        '<tt:TimeZone><tt:TZ>UTC0</tt:TZ></tt:TimeZone>'
        '<tt:UTCDateTime>'
        f'<tt:Time><tt:Hour>{now.hour}</tt:Hour><tt:Minute>{now.minute}</tt:Minute>'
        f'<tt:Second>{now.second}</tt:Second></tt:Time>'
        f'<tt:Date><tt:Year>{now.year}</tt:Year><tt:Month>{now.month}</tt:Month>'
        f'<tt:Day>{now.day}</tt:Day></tt:Date>'
        '</tt:UTCDateTime>'
        '</tds:SystemDateAndTime></tds:GetSystemDateAndTimeResponse>'
    )


def _capabilities(base: str, services=("Events", "Media", "PTZ")) -> str:
    blocks = "".join(
        f'<tt:{name}><tt:XAddr>{base}/onvif/{name.lower()}</tt:XAddr></tt:{name}>'
        for name in services
    )
    return (
        '<tds:GetCapabilitiesResponse><tds:Capabilities>'
        f'{blocks}'
        '</tds:Capabilities></tds:GetCapabilitiesResponse>'
    )


def capabilities_handler(*services: str) -> Callable[[dict, str], str]:
    """GetCapabilities response advertising only the given services"""
    return lambda body, base: _capabilities(base, services)


def _stream_uri(body: dict, base: str) -> str:
    request = body["GetStreamUri"]
    protocol = _text(request["StreamSetup"]["Transport"]["Protocol"]).lower()
    token = _text(request["ProfileToken"])
    return (
        '<trt:GetStreamUriResponse><trt:MediaUri>'
        f'<tt:Uri>{protocol}://camera.local/{token}</tt:Uri>'
        '<tt:InvalidAfterConnect>false</tt:InvalidAfterConnect>'
        '</trt:MediaUri></trt:GetStreamUriResponse>'
    )


def _snapshot_uri(body: dict, base: str) -> str:
    token = _text(body["GetSnapshotUri"]["ProfileToken"])
    return (
        '<trt:GetSnapshotUriResponse><trt:MediaUri>'
        f'<tt:Uri>{base}/snapshot/{token}.jpg</tt:Uri>'
        '</trt:MediaUri></trt:GetSnapshotUriResponse>'
    )


class MockOnvifDevice:
    """
    Minimal ONVIF device.
    Operations are routed by the first element of the request Body; every request is recorded.
    """

    def __init__(self):
        self.base_url = ""
        self.clock_skew = timedelta(0)
        self.responses: Dict[str, Handler] = {
            "GetSystemDateAndTime": lambda body, base: _system_date_and_time(self.clock_skew),
            "GetCapabilities": lambda body, base: _capabilities(base),
            "GetDeviceInformation": (
                '<tds:GetDeviceInformationResponse>'
                '<tds:Manufacturer>Acme</tds:Manufacturer>'
                '<tds:Model>IPC-100</tds:Model>'
                '<tds:FirmwareVersion>2.4.1</tds:FirmwareVersion>'
                '<tds:SerialNumber>SN0001</tds:SerialNumber>'
                '<tds:HardwareId>HW-7</tds:HardwareId>'
                '</tds:GetDeviceInformationResponse>'
            ),
            "GetProfiles": PROFILES_BODY,
            "GetStreamUri": _stream_uri,
            "GetSnapshotUri": _snapshot_uri,
            "ContinuousMove": '<tptz:ContinuousMoveResponse/>',
            "Stop": '<tptz:StopResponse/>',
        }
        self.faults: Dict[str, str] = {}
        self.raw: Dict[str, Tuple[int, Union[str, bytes]]] = {}
        self.snapshot_content_type = "image/jpeg"
        self.snapshot_body = b"\xff\xd8\xff\xe0fakejpeg"

        # Digest protection, off unless a realm is set
        self.digest_realm: Optional[str] = None
        self.digest_nonce = "dcd98b7102dd2f0e8b11d0f600bfb0c093"
        self.username = "admin"
        self.password = "secret"

        self.calls: List[str] = []
        self.requests: List[dict] = []
        self.authorizations: List[Dict[str, str]] = []

        self.app = web.Application()
        self.app.router.add_post("/onvif/{service}", self.handle_soap)
        self.app.router.add_get("/snapshot/{name}", self.handle_snapshot)

    def operations(self, path: Optional[str] = None) -> List[str]:
        return [r["operation"] for r in self.requests if path is None or r["path"] == path]

    # ================== DIGEST ==================

    def _challenge(self) -> web.Response:
        header = f'Digest realm="{self.digest_realm}", qop="auth", nonce="{self.digest_nonce}", algorithm=MD5'
        return web.Response(status=401, headers={"WWW-Authenticate": header}, text="Unauthorized")

    def _authorized(self, request: web.Request) -> bool:
        if self.digest_realm is None:
            return True
        header = request.headers.get("Authorization", "")
        if not header.startswith("Digest "):
            return False
        params = dict(
            (m.group(1), m.group(2) if m.group(2) is not None else m.group(3))
            for m in re.finditer(r'(\w+)=(?:"([^"]*)"|([^\s,]+))', header[7:])
        )
        self.authorizations.append(params)

        def md5(value: str) -> str:
            return hashlib.md5(value.encode()).hexdigest()

        ha1 = md5(f"{self.username}:{self.digest_realm}:{self.password}")
        ha2 = md5(f"{request.method}:{params.get('uri')}")
        expected = md5(f"{ha1}:{self.digest_nonce}:{params.get('nc')}:{params.get('cnonce')}:auth:{ha2}")
        return params.get("username") == self.username and params.get("response") == expected

    # ================== HANDLERS ==================

    async def handle_soap(self, request: web.Request) -> web.Response:
        if not self._authorized(request):
            return self._challenge()

        payload = await request.read()
        tree = xmltodict.parse(payload, postprocessor=_strip_prefix)["Envelope"]
        body = tree.get("Body") or {}
        operation = next((k for k in body if not k.startswith("@")), "")
        token = ((tree.get("Header") or {}).get("Security") or {}).get("UsernameToken") or {}

        self.calls.append(operation)
        self.requests.append({
            "path": request.path,
            "operation": operation,
            "body": body,
            "username": _text(token.get("Username")) or None,
            "created": _text(token.get("Created")) or None,
            "content_type": request.headers.get("Content-Type"),
            "content_length": request.headers.get("Content-Length"),
            "payload": payload,
        })

        if operation in self.raw:
            status, payload = self.raw[operation]
            if isinstance(payload, bytes):
                return web.Response(status=status, body=payload, content_type="application/soap+xml")
            return web.Response(status=status, text=payload, content_type="application/soap+xml")
        if operation in self.faults:
            fault = FAULT_BODY.format(reason=self.faults[operation])
            return web.Response(
                status=400, text=RESPONSE_ENVELOPE.format(body=fault), content_type="application/soap+xml"
            )

        handler = self.responses.get(operation, "")
        base = f"http://{request.host}"
        response_body = handler(body, base) if callable(handler) else handler
        return web.Response(
            text=RESPONSE_ENVELOPE.format(body=response_body), content_type="application/soap+xml"
        )

    async def handle_snapshot(self, request: web.Request) -> web.Response:
        if not self._authorized(request):
            return self._challenge()
        self.calls.append(f"GET {request.path}")
        return web.Response(body=self.snapshot_body, headers={"Content-Type": self.snapshot_content_type})


@pytest_asyncio.fixture
async def onvif_device():
    device = MockOnvifDevice()
    server = TestServer(device.app)
    await server.start_server()
    device.base_url = f"http://{server.host}:{server.port}"
    yield device
    await server.close()


@pytest.fixture
def device_xaddr(onvif_device) -> str:
    return f"{onvif_device.base_url}/onvif/device_service"
