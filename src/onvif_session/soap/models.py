"""
Transport-level data structures: credentials, endpoints, clock offset, responses
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from ..errors import ValidationError

DEFAULT_DEVICE_PATH = "/onvif/device_service"
DEFAULT_PORTS = {"http": 80, "https": 443}


@dataclass
class Credentials:
    """Username/password pair shared by a session and all of its service endpoints"""
    username: str = ""
    password: str = ""

    def update(self, username: Optional[str], password: Optional[str]) -> None:
        self.username = username or ""
        self.password = password or ""

    def __bool__(self) -> bool:
        return bool(self.username)


@dataclass(frozen=True)
class Endpoint:
    """Address of one ONVIF service; only the credentials object changes after construction"""
    scheme: str
    host: str
    port: int
    path: str
    credentials: Credentials = field(default_factory=Credentials, compare=False)

    @classmethod
    def from_url(cls, url: str, credentials: Optional[Credentials] = None) -> "Endpoint":
        if not isinstance(url, str) or not url:
            raise ValidationError("Endpoint URL must be a non-empty string")

        parsed = urlparse(url)
        scheme = (parsed.scheme or "").lower()
        if scheme not in DEFAULT_PORTS:
            raise ValidationError(f"Unsupported URL scheme in {url!r}")
        if not parsed.hostname:
            raise ValidationError(f"No host found in {url!r}")

        try:
            port = parsed.port or DEFAULT_PORTS[scheme]
        except ValueError as e:
            raise ValidationError(f"Invalid port in {url!r}: {e}") from e

        path = parsed.path or "/"
        if parsed.query:
            path = f"{path}?{parsed.query}"

        return cls(
            scheme=scheme,
            host=parsed.hostname,
            port=port,
            path=path,
            credentials=credentials if credentials is not None else Credentials()
        )

    @classmethod
    def from_address(cls, address: str, credentials: Optional[Credentials] = None) -> "Endpoint":
        if not isinstance(address, str) or not address.strip():
            raise ValidationError("Device address must be a non-empty string")
        return cls.from_url(f"http://{address.strip()}:80{DEFAULT_DEVICE_PATH}", credentials)

    @property
    def url(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{self.scheme}://{host}:{self.port}{self.path}"

    def with_url(self, url: str) -> "Endpoint":
        """Endpoint for another service address, sharing these credentials"""
        return Endpoint.from_url(url, self.credentials)


@dataclass
class ClockOffset:
    """Signed device-minus-local time delta in milliseconds"""
    milliseconds: int = 0
    synced: bool = False

    def set(self, milliseconds: int) -> None:
        self.milliseconds = int(milliseconds)
        self.synced = True

    def reset(self) -> None:
        self.milliseconds = 0
        self.synced = False


@dataclass
class HttpResponse:
    """Fully read HTTP response"""
    status: int
    reason: str
    headers: Dict[str, str]
    body: bytes
    www_authenticate: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "")

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


@dataclass
class SoapResult:
    """Successful SOAP transaction"""
    operation: str
    data: Any                 # <Operation>Response subtree
    body: Dict[str, Any]      # decoded Body element
    tree: Dict[str, Any]      # decoded Envelope
    raw: str                  # response text as received
    status: int = 200
