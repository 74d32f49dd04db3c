"""
ONVIF Media service client
"""

import logging
from typing import Optional
from xml.sax.saxutils import escape

from ..soap.codec import deep_get, text_of
from ..soap.models import SoapResult
from .base import SCHEMA_NS, OnvifService
from .requests import GetSnapshotUriRequest, GetStreamUriRequest

logger = logging.getLogger(__name__)


class MediaService(OnvifService):
    """Profile listing and stream/snapshot URI lookup"""

    NAMESPACES = {
        'trt': 'http://www.onvif.org/ver10/media/wsdl',
        'tt': SCHEMA_NS
    }

    async def get_profiles(self) -> SoapResult:
        """GetProfiles (READ_MEDIA)"""
        return await self._request('GetProfiles', '<trt:GetProfiles/>')

    async def get_stream_uri(self, request: GetStreamUriRequest) -> Optional[str]:
        """GetStreamUri (READ_MEDIA); None when the response carries no URI"""
        body = (
            '<trt:GetStreamUri>'
            '<trt:StreamSetup>'
            f'<tt:Stream>{escape(request.stream)}</tt:Stream>'
            '<tt:Transport>'
            f'<tt:Protocol>{request.protocol.value}</tt:Protocol>'
            '</tt:Transport>'
            '</trt:StreamSetup>'
            f'<trt:ProfileToken>{escape(request.profile_token)}</trt:ProfileToken>'
            '</trt:GetStreamUri>'
        )
        result = await self._request('GetStreamUri', body)
        return text_of(deep_get(result.data, 'MediaUri.Uri')) or None

    async def get_snapshot_uri(self, request: GetSnapshotUriRequest) -> Optional[str]:
        """GetSnapshotUri (READ_MEDIA); None when the response carries no URI"""
        body = (
            '<trt:GetSnapshotUri>'
            f'<trt:ProfileToken>{escape(request.profile_token)}</trt:ProfileToken>'
            '</trt:GetSnapshotUri>'
        )
        result = await self._request('GetSnapshotUri', body)
        return text_of(deep_get(result.data, 'MediaUri.Uri')) or None
