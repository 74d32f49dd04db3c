"""
Shared behaviour of ONVIF sub-service clients
"""

import logging
from typing import Dict, Optional

from ..soap.client import SoapTransactionClient
from ..soap.models import ClockOffset, Endpoint, SoapResult

logger = logging.getLogger(__name__)

SCHEMA_NS = "http://www.onvif.org/ver10/schema"


class OnvifService:
    """
    One ONVIF service (device, media, ptz, events) at one address.
    Credentials and clock offset are shared objects owned by the session.
    """

    NAMESPACES: Dict[str, str] = {}

    def __init__(
        self,
        endpoint: Endpoint,
        client: Optional[SoapTransactionClient] = None,
        clock_offset: Optional[ClockOffset] = None
    ):
        self.endpoint = endpoint
        self.client = client or SoapTransactionClient()
        self.clock_offset = clock_offset if clock_offset is not None else ClockOffset()

    @property
    def xaddr(self) -> str:
        return self.endpoint.url

    def set_auth(self, username: Optional[str], password: Optional[str]) -> None:
        self.endpoint.credentials.update(username, password)

    async def _request(self, operation: str, body: str) -> SoapResult:
        envelope = self.client.envelope(self.endpoint, body, self.NAMESPACES, self.clock_offset)
        return await self.client.call(self.endpoint, operation, envelope)
