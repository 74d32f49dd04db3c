"""
Discovery data structures and models
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple


class DiscoveryState(Enum):
    """Probe engine lifecycle"""
    IDLE = "idle"
    PROBING = "probing"
    COLLECTING = "collecting"


@dataclass(frozen=True)
class DiscoveredDevice:
    """Represents a device that answered a WS-Discovery probe"""
    urn: str                    # EndpointReference address, unique per device
    name: str
    hardware: str
    location: str
    types: Tuple[str, ...]
    xaddrs: Tuple[str, ...]     # device service URLs
    scopes: Tuple[str, ...]

    @property
    def xaddr(self) -> str:
        """Preferred device service URL"""
        return self.xaddrs[0] if self.xaddrs else ""


@dataclass
class DiscoveryResult:
    """Results from one probe run"""
    devices: List[DiscoveredDevice]
    method: str
    duration_seconds: float
    datagrams_received: int
    success_count: int
