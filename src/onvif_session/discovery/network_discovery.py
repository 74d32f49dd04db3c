"""
WS-Discovery wire handling: Probe messages, ProbeMatch parsing and the UDP protocol
"""

import asyncio
import logging
import re
import uuid
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from ..soap.codec import SoapCodec, as_list, deep_get, text_of
from .models import DiscoveredDevice

logger = logging.getLogger(__name__)

MULTICAST_ADDRESS = "239.255.255.250"
MULTICAST_PORT = 3702
DEVICE_TYPES = ["NetworkVideoTransmitter", "Device", "NetworkVideoDisplay"]

SCOPE_NAME = "onvif://www.onvif.org/name/"
SCOPE_HARDWARE = "onvif://www.onvif.org/hardware/"
SCOPE_LOCATION = "onvif://www.onvif.org/location/"

PROBE_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<s:Envelope xmlns:s="http://www.w3.org/2003/05/soap-envelope" xmlns:a="http://schemas.xmlsoap.org/ws/2004/08/addressing">
  <s:Header>
    <a:Action s:mustUnderstand="1">http://schemas.xmlsoap.org/ws/2005/04/discovery/Probe</a:Action>
    <a:MessageID>uuid:{message_id}</a:MessageID>
    <a:ReplyTo>
      <a:Address>http://schemas.xmlsoap.org/ws/2004/08/addressing/role/anonymous</a:Address>
    </a:ReplyTo>
    <a:To s:mustUnderstand="1">urn:schemas-xmlsoap-org:ws:2005:04:discovery</a:To>
  </s:Header>
  <s:Body>
    <Probe xmlns="http://schemas.xmlsoap.org/ws/2005/04/discovery">
      <d:Types xmlns:d="http://schemas.xmlsoap.org/ws/2005/04/discovery" xmlns:dp0="http://www.onvif.org/ver10/network/wsdl">dp0:{device_type}</d:Types>
    </Probe>
  </s:Body>
</s:Envelope>"""


def build_probe_message(device_type: str, message_id: Optional[str] = None) -> bytes:
    """Probe datagram for one device type filter, fresh UUIDv4 message ID by default"""
    soap = PROBE_TEMPLATE.format(
        message_id=message_id or str(uuid.uuid4()),
        device_type=device_type
    )
    soap = re.sub(r">\s+<", "><", soap)
    return soap.encode("utf-8")


def tokenize_scopes(scopes: Iterable[str]) -> Dict[str, str]:
    """Name, hardware and location tags from ONVIF scope URIs"""
    tags = {"name": "", "hardware": "", "location": ""}
    for scope in scopes:
        if scope.startswith(SCOPE_HARDWARE):
            tags["hardware"] = scope.split("/")[-1]
        elif scope.startswith(SCOPE_LOCATION):
            tags["location"] = scope.split("/")[-1]
        elif scope.startswith(SCOPE_NAME):
            tags["name"] = scope.split("/")[-1].replace("_", " ")
    return tags


def parse_probe_matches(data: bytes, codec: Optional[SoapCodec] = None) -> List[DiscoveredDevice]:
    """
    Devices announced in a ProbeMatches datagram.
    Raises ParseError for malformed XML; returns [] for any other message.
    """
    tree = (codec or SoapCodec()).decode(data)
    matches = deep_get(tree, "Body.ProbeMatches")
    if not isinstance(matches, dict):
        return []

    devices = []
    for match in as_list(matches.get("ProbeMatch")):
        device = _parse_probe_match(match)
        if device:
            devices.append(device)
    return devices


def _parse_probe_match(match) -> Optional[DiscoveredDevice]:
    if not isinstance(match, dict):
        return None

    urn = text_of(deep_get(match, "EndpointReference.Address")).strip()
    xaddrs = tuple(text_of(match.get("XAddrs")).split())
    scopes = tuple(text_of(match.get("Scopes")).split())
    types = tuple(text_of(match.get("Types")).split())

    if not urn or not xaddrs or not scopes:
        return None

    tags = tokenize_scopes(scopes)
    return DiscoveredDevice(
        urn=urn,
        name=tags["name"],
        hardware=tags["hardware"],
        location=tags["location"],
        types=types,
        xaddrs=xaddrs,
        scopes=scopes
    )


class ProbeProtocol(asyncio.DatagramProtocol):
    """Forwards every received datagram to the discovery engine"""

    def __init__(self, on_datagram: Callable[[bytes, Tuple[str, int]], None]):
        self.on_datagram = on_datagram

    def datagram_received(self, data: bytes, addr: Tuple[str, int]) -> None:
        self.on_datagram(data, addr)

    def error_received(self, exc: Exception) -> None:
        logger.debug(f"UDP error during discovery: {exc}")
