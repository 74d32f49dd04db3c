"""
ONVIF PTZ service client
"""

import logging
from typing import Any
from xml.sax.saxutils import escape

from ..soap.models import SoapResult
from .base import SCHEMA_NS, OnvifService
from .requests import ContinuousMoveRequest, ProfileRequest, StopRequest

logger = logging.getLogger(__name__)


def _xml_bool(value: bool) -> str:
    return 'true' if value else 'false'


class PtzService(OnvifService):
    """Pan/tilt/zoom movement"""

    NAMESPACES = {
        'tptz': 'http://www.onvif.org/ver20/ptz/wsdl',
        'tt': SCHEMA_NS
    }

    async def continuous_move(self, request: ContinuousMoveRequest) -> SoapResult:
        v = request.velocity
        body = '<tptz:ContinuousMove>'
        body += f'<tptz:ProfileToken>{escape(request.profile_token)}</tptz:ProfileToken>'
        body += '<tptz:Velocity>'
        body += f'<tt:PanTilt x="{v.x}" y="{v.y}"></tt:PanTilt>'
        if v.z:
            body += f'<tt:Zoom x="{v.z}"></tt:Zoom>'
        body += '</tptz:Velocity>'
        if request.timeout:
            body += f'<tptz:Timeout>PT{request.timeout}S</tptz:Timeout>'
        body += '</tptz:ContinuousMove>'
        return await self._request('ContinuousMove', body)

    async def stop(self, request: StopRequest) -> SoapResult:
        body = '<tptz:Stop>'
        body += f'<tptz:ProfileToken>{escape(request.profile_token)}</tptz:ProfileToken>'
        if request.pan_tilt is not None:
            body += f'<tptz:PanTilt>{_xml_bool(request.pan_tilt)}</tptz:PanTilt>'
        if request.zoom is not None:
            body += f'<tptz:Zoom>{_xml_bool(request.zoom)}</tptz:Zoom>'
        body += '</tptz:Stop>'
        return await self._request('Stop', body)

    async def get_status(self, request: ProfileRequest) -> Any:
        body = (
            '<tptz:GetStatus>'
            f'<tptz:ProfileToken>{escape(request.profile_token)}</tptz:ProfileToken>'
            '</tptz:GetStatus>'
        )
        result = await self._request('GetStatus', body)
        return result.data

    async def get_nodes(self) -> Any:
        result = await self._request('GetNodes', '<tptz:GetNodes/>')
        return result.data
