"""
WS-Discovery probe engine
Sends repeated multicast probes and collects ProbeMatch replies for a fixed window
"""

import asyncio
import logging
import socket
import time
from typing import Dict, List, Optional, Tuple

from ..errors import DiscoveryError, ParseError
from ..soap.codec import SoapCodec
from .models import DiscoveredDevice, DiscoveryResult, DiscoveryState
from .network_discovery import (
    DEVICE_TYPES,
    MULTICAST_ADDRESS,
    MULTICAST_PORT,
    ProbeProtocol,
    build_probe_message,
    parse_probe_matches,
)

logger = logging.getLogger(__name__)


class DiscoveryEngine:
    """Discovers ONVIF devices on the local network via UDP multicast"""

    def __init__(self, config: Optional[dict] = None):
        config = config or {}
        self.multicast_address = config.get('multicast_address', MULTICAST_ADDRESS)
        self.port = config.get('port', MULTICAST_PORT)
        self.bind_address = config.get('bind_address', '0.0.0.0')
        self.bind_port = config.get('bind_port', 0)
        self.probe_interval = config.get('probe_interval_ms', 150) / 1000
        self.probe_retries = config.get('probe_retries', 3)
        self.wait = config.get('wait_ms', 3000) / 1000
        self.device_types = list(config.get('device_types', DEVICE_TYPES))

        self.codec = SoapCodec()
        self.state = DiscoveryState.IDLE
        self.datagrams_received = 0

        self._devices: Dict[str, DiscoveredDevice] = {}
        self._transport: Optional[asyncio.DatagramTransport] = None
        self._send_task: Optional[asyncio.Task] = None
        self._stopped: Optional[asyncio.Event] = None

    # ================== PUBLIC API ==================

    async def start_probe(self) -> List[DiscoveredDevice]:
        """
        Run one discovery window and return the devices found.
        Raises DiscoveryError if the socket cannot be bound or a probe is already running.
        """
        if self.state is not DiscoveryState.IDLE:
            raise DiscoveryError("A discovery probe is already running")

        self.state = DiscoveryState.PROBING
        self._devices = {}
        self.datagrams_received = 0
        self._stopped = asyncio.Event()
        loop = asyncio.get_running_loop()

        try:
            try:
                transport, _ = await loop.create_datagram_endpoint(
                    lambda: ProbeProtocol(self._handle_datagram),
                    local_addr=(self.bind_address, self.bind_port),
                    family=socket.AF_INET
                )
            except OSError as e:
                logger.error(f"WS-Discovery socket bind failed: {e}")
                raise DiscoveryError(f"Failed to bind the discovery socket: {e}") from e

            self._transport = transport
            logger.info(f"Sending WS-Discovery probes to {self.multicast_address}:{self.port}...")

            self._send_task = asyncio.create_task(self._send_probes())
            try:
                # Window is measured from bind; probes still in flight are abandoned
                await asyncio.wait_for(self._stopped.wait(), timeout=self.wait)
                logger.debug("Discovery stopped before the collection window closed")
            except asyncio.TimeoutError:
                pass
        finally:
            await self.stop_probe()
            self.state = DiscoveryState.IDLE

        devices = list(self._devices.values())
        self._devices = {}
        logger.info(f"WS-Discovery complete: {len(devices)} devices from {self.datagrams_received} datagrams")
        return devices

    async def stop_probe(self) -> None:
        """Cancel pending sends and close the socket; safe to call in any state"""
        if self._stopped is not None:
            self._stopped.set()

        task, self._send_task = self._send_task, None
        if task is not None and not task.done():
            task.cancel()
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

        transport, self._transport = self._transport, None
        if transport is not None:
            transport.close()

    async def discover(self) -> DiscoveryResult:
        """Probe run with timing and counters for logging"""
        start_time = time.time()
        devices = await self.start_probe()
        return DiscoveryResult(
            devices=devices,
            method="ws_discovery",
            duration_seconds=time.time() - start_time,
            datagrams_received=self.datagrams_received,
            success_count=len(devices)
        )

    # ================== INTERNALS ==================

    async def _send_probes(self) -> None:
        """Send the whole type-filter set probe_retries times, one datagram per interval"""
        target = (self.multicast_address, self.port)
        for _ in range(self.probe_retries):
            for device_type in self.device_types:
                if self._transport is None:
                    return
                try:
                    self._transport.sendto(build_probe_message(device_type), target)
                except OSError as e:
                    logger.warning(f"Failed to send WS-Discovery probe ({device_type}): {e}")
                await asyncio.sleep(self.probe_interval)

        if self.state is DiscoveryState.PROBING:
            self.state = DiscoveryState.COLLECTING

    def _handle_datagram(self, data: bytes, addr: Tuple[str, int]) -> None:
        self.datagrams_received += 1
        try:
            devices = parse_probe_matches(data, self.codec)
        except ParseError:
            # Unrelated multicast traffic
            logger.debug(f"Ignoring malformed datagram from {addr[0]}")
            return

        for device in devices:
            if device.urn in self._devices:
                continue
            self._devices[device.urn] = device
            logger.info(f"Found device via WS-Discovery: {device.name or device.urn} ({device.xaddr})")
