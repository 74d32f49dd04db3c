"""
ONVIF device session - bootstrap sequence and per-device state
Time sync -> capabilities -> device information -> media profiles -> stream URIs -> snapshot URIs
"""

import copy
import logging
import time
from datetime import datetime, timezone
from typing import Dict, List, Optional, Union

import aiohttp

from ..errors import (
    HttpStatusError,
    InitializationError,
    OnvifError,
    ParseError,
    RemoteFault,
    SessionStateError,
    ValidationError,
)
from ..http_helper import create_device_session
from ..services import (
    ContinuousMoveRequest,
    DeviceService,
    EventsService,
    GetSnapshotUriRequest,
    GetStreamUriRequest,
    MediaService,
    PtzService,
    StopRequest,
    StreamProtocol,
    build_request,
)
from ..services.base import OnvifService
from ..soap.client import SoapTransactionClient
from ..soap.codec import deep_get, text_of
from ..soap.digest_auth import DigestAuthTransport
from ..soap.models import ClockOffset, Credentials, Endpoint
from .models import DeviceInformation, MediaProfile, Snapshot
from .profile_parser import parse_profiles

logger = logging.getLogger(__name__)

DEFAULT_STREAM_PROTOCOLS = ['UDP', 'HTTP', 'RTSP']


class DeviceSession:
    """Bootstraps one ONVIF device and exposes its profiles and service clients"""

    def __init__(
        self,
        address: Optional[str] = None,
        xaddr: Optional[str] = None,
        username: str = '',
        password: str = '',
        config: Optional[dict] = None
    ):
        config = config or {}
        self.credentials = Credentials(username or '', password or '')

        if xaddr:
            self.endpoint = Endpoint.from_url(xaddr, self.credentials)
        elif address:
            self.endpoint = Endpoint.from_address(address, self.credentials)
        else:
            raise ValidationError("Either 'xaddr' or 'address' is required")
        self.address = self.endpoint.host

        self.request_timeout = config.get('request_timeout', 3)
        try:
            self.stream_protocols = [
                StreamProtocol(str(p).upper())
                for p in config.get('stream_protocols', DEFAULT_STREAM_PROTOCOLS)
            ]
        except ValueError as e:
            raise ValidationError(f"Invalid stream protocol in configuration: {e}") from e

        self.transport = DigestAuthTransport(timeout=self.request_timeout)
        self.client = SoapTransactionClient(self.transport)
        self.clock_offset = ClockOffset()

        self.information: Optional[DeviceInformation] = None
        self.device = DeviceService(self.endpoint, self.client, self.clock_offset)
        self.media: Optional[MediaService] = None
        self.ptz: Optional[PtzService] = None
        self.events: Optional[EventsService] = None

        self.profiles: List[MediaProfile] = []
        self.current_profile: Optional[MediaProfile] = None
        self.ptz_moving = False

        self._http_session: Optional[aiohttp.ClientSession] = None

    # ================== RESOURCE LIFECYCLE ==================

    async def __aenter__(self) -> "DeviceSession":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def open(self) -> None:
        """Share one HTTP session across all calls until close()"""
        if self._http_session is None:
            self._http_session = create_device_session(self.request_timeout)
            self.transport.session = self._http_session

    async def close(self) -> None:
        session, self._http_session = self._http_session, None
        self.transport.session = None
        if session is not None:
            await session.close()

    @property
    def services(self) -> Dict[str, Optional[OnvifService]]:
        return {
            'device': self.device,
            'events': self.events,
            'media': self.media,
            'ptz': self.ptz
        }

    # ================== BOOTSTRAP ==================

    async def init(self) -> DeviceInformation:
        """
        Run the bootstrap sequence.
        Time sync, stream URIs and snapshot URIs are best-effort; capabilities, device
        information and media profiles are required and raise InitializationError.
        """
        logger.info(f"Initializing ONVIF device at {self.endpoint.url}...")
        start_time = time.time()

        await self._sync_time()
        await self._get_capabilities()
        await self._get_device_information()

        if self.media is not None:
            await self._get_media_profiles()
            await self._resolve_stream_uris()
            await self._resolve_snapshot_uris()
        else:
            logger.info(f"{self.address}: no media service advertised, skipping profiles")

        info = self.get_information() or DeviceInformation()
        logger.info(
            f"[OK] {self.address} initialized in {time.time() - start_time:.1f}s: "
            f"{info.manufacturer} {info.model} (fw {info.firmware_version}), "
            f"{len(self.profiles)} profiles, clock offset {self.clock_offset.milliseconds}ms"
        )
        return info

    async def _sync_time(self) -> None:
        """Optional: some devices do not implement GetSystemDateAndTime"""
        try:
            parsed = await self.device.get_system_date_and_time()
        except OnvifError as e:
            logger.warning(f"{self.address}: time sync unavailable, using local clock ({e})")
            return

        device_time = parsed.get('date')
        if device_time is None:
            logger.warning(f"{self.address}: GetSystemDateAndTime returned no UTC time")
            return

        offset_ms = (device_time - datetime.now(timezone.utc)).total_seconds() * 1000
        self.clock_offset.set(round(offset_ms))
        logger.debug(f"{self.address}: clock offset {self.clock_offset.milliseconds}ms")

    async def _get_capabilities(self) -> None:
        try:
            result = await self.device.get_capabilities()
        except OnvifError as e:
            raise InitializationError('capabilities', str(e)) from e

        capabilities = deep_get(result.data, 'Capabilities')
        if not isinstance(capabilities, dict) or not capabilities:
            raise InitializationError('capabilities', 'No capabilities were found.')

        self.events = self._create_service(EventsService, capabilities, 'Events')
        self.media = self._create_service(MediaService, capabilities, 'Media')
        self.ptz = self._create_service(PtzService, capabilities, 'PTZ')

        available = [name for name in ('events', 'media', 'ptz') if self.services[name]]
        logger.info(f"{self.address}: services available: {', '.join(available) or 'none'}")

    def _create_service(self, service_cls, capabilities: dict, key: str):
        """Service client for an advertised address, None when not advertised"""
        xaddr = text_of(deep_get(capabilities, f'{key}.XAddr')).strip()
        if not xaddr:
            return None
        try:
            endpoint = self.endpoint.with_url(xaddr)
        except ValidationError as e:
            logger.warning(f"{self.address}: ignoring {key} service with bad address: {e}")
            return None
        return service_cls(endpoint, self.client, self.clock_offset)

    async def _get_device_information(self) -> None:
        try:
            result = await self.device.get_device_information()
        except OnvifError as e:
            if self.media is None:
                logger.warning(f"{self.address}: device information unavailable ({e})")
                self.information = DeviceInformation()
                return
            raise InitializationError('device_information', str(e)) from e

        self.information = DeviceInformation.from_response(result.data)

    async def _get_media_profiles(self) -> None:
        try:
            result = await self.media.get_profiles()
        except OnvifError as e:
            raise InitializationError('profiles', str(e)) from e

        profiles = parse_profiles(result.data)
        if not profiles:
            raise InitializationError('profiles', 'The device does not have any media profiles.')

        previous = self.current_profile.token if self.current_profile else None
        self.profiles = profiles
        self.current_profile = next((p for p in profiles if p.token == previous), profiles[0])

    async def _resolve_stream_uris(self) -> None:
        """Best-effort: each profile x protocol failure leaves that slot unset"""
        for profile in self.profiles:
            for protocol in self.stream_protocols:
                try:
                    request = build_request(
                        GetStreamUriRequest, profile_token=profile.token, protocol=protocol
                    )
                    uri = await self.media.get_stream_uri(request)
                except OnvifError as e:
                    logger.debug(f"{self.address}: no {protocol.value} stream for {profile.token}: {e}")
                    continue
                profile.stream.set(protocol.value, uri)

    async def _resolve_snapshot_uris(self) -> None:
        for profile in self.profiles:
            try:
                request = build_request(GetSnapshotUriRequest, profile_token=profile.token)
                profile.snapshot = await self.media.get_snapshot_uri(request)
            except OnvifError as e:
                logger.debug(f"{self.address}: no snapshot URI for {profile.token}: {e}")

    # ================== SESSION STATE ==================

    def get_information(self) -> Optional[DeviceInformation]:
        return copy.deepcopy(self.information)

    def get_current_profile(self) -> Optional[MediaProfile]:
        return copy.deepcopy(self.current_profile)

    def get_profile_list(self) -> List[MediaProfile]:
        return copy.deepcopy(self.profiles)

    def change_profile(self, selector: Union[int, str]) -> Optional[MediaProfile]:
        """Select the current profile by list index or token; None if not found"""
        profile = None
        if isinstance(selector, int) and not isinstance(selector, bool):
            if 0 <= selector < len(self.profiles):
                profile = self.profiles[selector]
        elif isinstance(selector, str) and selector:
            profile = next((p for p in self.profiles if p.token == selector), None)

        if profile is None:
            return None
        self.current_profile = profile
        return self.get_current_profile()

    def get_stream_url(self, protocol: str = 'UDP') -> str:
        if not self.current_profile:
            return ''
        return self.current_profile.stream.get(protocol) or ''

    def get_udp_stream_url(self) -> str:
        return self.get_stream_url('UDP')

    def set_auth(self, username: Optional[str], password: Optional[str]) -> None:
        """Update credentials for the session and every constructed service"""
        self.credentials.update(username, password)
        for service in self.services.values():
            if service is not None:
                service.set_auth(username, password)

    # ================== MEDIA / PTZ ==================

    async def fetch_snapshot(self) -> Snapshot:
        if not self.current_profile:
            raise SessionStateError('No media profile is selected.')
        url = self.current_profile.snapshot
        if not url:
            raise SessionStateError(
                'The device does not support snapshot or you have not authorized by the device.'
            )

        response = await self.transport.send(
            'GET', url, username=self.credentials.username, password=self.credentials.password
        )
        if response.status != 200:
            raise HttpStatusError(response.status, response.reason)

        # Some devices send no Content-Type at all
        content_type = response.content_type or 'image/jpeg'
        if content_type.startswith('image/'):
            return Snapshot(content_type=content_type, body=response.body, headers=response.headers)
        if content_type.startswith('text/'):
            raise RemoteFault(response.text.strip(), response.status)
        raise ParseError(f'Unexpected snapshot data: {content_type}')

    async def ptz_move(self, x: float = 0.0, y: float = 0.0, z: float = 0.0, timeout: int = 1) -> None:
        """Continuous move of the current profile at the given speeds (-1.0 to 1.0)"""
        profile = self._require_ptz()
        request = build_request(
            ContinuousMoveRequest,
            profile_token=profile.token,
            velocity={'x': x, 'y': y, 'z': z},
            timeout=timeout
        )
        await self.ptz.continuous_move(request)
        self.ptz_moving = True

    async def ptz_stop(self) -> None:
        profile = self._require_ptz()
        request = build_request(StopRequest, profile_token=profile.token, pan_tilt=True, zoom=True)
        self.ptz_moving = False
        await self.ptz.stop(request)

    def _require_ptz(self) -> MediaProfile:
        if not self.current_profile:
            raise SessionStateError('No media profile is selected.')
        if self.ptz is None:
            raise SessionStateError('The device does not support PTZ.')
        return self.current_profile
