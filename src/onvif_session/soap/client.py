"""
SOAP transaction client: send an envelope, decode the reply, map it to a result or typed error
"""

import logging
from typing import Dict, Optional

from ..errors import HttpStatusError, ParseError, RemoteFault, UnsupportedOperation
from ..http_helper import soap_headers
from .codec import SoapCodec
from .digest_auth import DigestAuthTransport
from .models import ClockOffset, Endpoint, HttpResponse, SoapResult

logger = logging.getLogger(__name__)

# Authentication failures stay transport-level even when the device adds a fault body
AUTH_STATUSES = (401, 403)


class SoapTransactionClient:
    """Performs named ONVIF operations against an endpoint"""

    def __init__(self, transport: Optional[DigestAuthTransport] = None, codec: Optional[SoapCodec] = None):
        self.transport = transport or DigestAuthTransport()
        self.codec = codec or SoapCodec()

    def envelope(
        self,
        endpoint: Endpoint,
        body: str,
        namespaces: Optional[Dict[str, str]] = None,
        clock_offset: Optional[ClockOffset] = None
    ) -> str:
        """Envelope for a body fragment, signed with the endpoint credentials"""
        creds = endpoint.credentials
        return self.codec.encode(
            body,
            namespaces,
            clock_offset.milliseconds if clock_offset else 0,
            creds.username,
            creds.password
        )

    async def call(self, endpoint: Endpoint, operation: str, envelope: str) -> SoapResult:
        """
        Run one remote operation.
        Raises TransportError/HttpStatusError from the transport, ParseError for malformed
        replies, RemoteFault for SOAP faults and UnsupportedOperation when the
        <operation>Response element is missing.
        """
        logger.debug(f"{operation} -> {endpoint.url}")
        data = envelope.encode("utf-8")
        response = await self.transport.send(
            "POST",
            endpoint.url,
            data,
            endpoint.credentials.username,
            endpoint.credentials.password,
            headers=soap_headers(data)
        )

        if not response.ok:
            self._raise_for_status(operation, response)

        # Bytes, so the XML declaration decides the encoding
        tree = self.codec.decode(response.body)
        raw = response.text

        fault = self.codec.extract_fault(tree)
        if fault:
            logger.debug(f"{operation} fault from {endpoint.url}: {fault}")
            raise RemoteFault(fault, response.status)

        body = tree.get("Body")
        key = f"{operation}Response"
        if not isinstance(body, dict) or key not in body:
            raise UnsupportedOperation(operation)

        return SoapResult(
            operation=operation,
            data=body[key],
            body=body,
            tree=tree,
            raw=raw,
            status=response.status
        )

    def _raise_for_status(self, operation: str, response: HttpResponse) -> None:
        fault = None
        if response.body:
            try:
                fault = self.codec.extract_fault(self.codec.decode(response.body))
            except ParseError:
                fault = None

        if fault and response.status not in AUTH_STATUSES:
            raise RemoteFault(fault, response.status)

        logger.debug(f"{operation} failed with HTTP {response.status} {response.reason}")
        raise HttpStatusError(response.status, response.reason, fault)
