"""
ONVIF Events service client
"""

import logging
from typing import Any

from .base import OnvifService

logger = logging.getLogger(__name__)


class EventsService(OnvifService):

    NAMESPACES = {
        'wsa': 'http://www.w3.org/2005/08/addressing',
        'tev': 'http://www.onvif.org/ver10/events/wsdl'
    }

    async def get_event_properties(self) -> Any:
        result = await self._request('GetEventProperties', '<tev:GetEventProperties/>')
        return result.data
