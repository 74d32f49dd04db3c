"""
ONVIF Device Management service client
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..soap.codec import as_list, deep_get, text_of
from ..soap.models import SoapResult
from .base import SCHEMA_NS, OnvifService

logger = logging.getLogger(__name__)


class DeviceService(OnvifService):
    """Device management operations used during session bootstrap"""

    NAMESPACES = {
        'tds': 'http://www.onvif.org/ver10/device/wsdl',
        'tt': SCHEMA_NS
    }

    async def get_system_date_and_time(self) -> Dict[str, Any]:
        """
        GetSystemDateAndTime (PRE_AUTH)
        Returns {'type', 'dst', 'tz', 'date'} where date is a UTC datetime or None
        """
        result = await self._request('GetSystemDateAndTime', '<tds:GetSystemDateAndTime/>')
        return self.parse_system_date_and_time(result.data)

    @staticmethod
    def parse_system_date_and_time(response: Any) -> Dict[str, Any]:
        info = deep_get(response, 'SystemDateAndTime', {})
        if not isinstance(info, dict):
            info = {}

        dst = None
        if 'DaylightSavings' in info:
            dst = text_of(info['DaylightSavings']).lower() == 'true'

        date = None
        utc = deep_get(info, 'UTCDateTime')
        if isinstance(utc, dict):
            try:
                date = datetime(
                    int(text_of(deep_get(utc, 'Date.Year'))),
                    int(text_of(deep_get(utc, 'Date.Month'))),
                    int(text_of(deep_get(utc, 'Date.Day'))),
                    int(text_of(deep_get(utc, 'Time.Hour'))),
                    int(text_of(deep_get(utc, 'Time.Minute'))),
                    int(text_of(deep_get(utc, 'Time.Second'))),
                    tzinfo=timezone.utc
                )
            except ValueError as e:
                logger.debug(f"Unusable UTCDateTime in GetSystemDateAndTime response: {e}")

        return {
            'type': text_of(info.get('DateTimeType')),
            'dst': dst,
            'tz': text_of(deep_get(info, 'TimeZone.TZ')),
            'date': date
        }

    async def get_capabilities(self, category: str = 'All') -> SoapResult:
        """GetCapabilities (PRE_AUTH)"""
        body = f'<tds:GetCapabilities><tds:Category>{category}</tds:Category></tds:GetCapabilities>'
        return await self._request('GetCapabilities', body)

    async def get_device_information(self) -> SoapResult:
        """GetDeviceInformation (READ_SYSTEM)"""
        return await self._request('GetDeviceInformation', '<tds:GetDeviceInformation/>')

    async def get_scopes(self) -> List[str]:
        result = await self._request('GetScopes', '<tds:GetScopes/>')
        return [text_of(deep_get(s, 'ScopeItem')) for s in as_list(deep_get(result.data, 'Scopes'))]

    async def get_hostname(self) -> Optional[str]:
        result = await self._request('GetHostname', '<tds:GetHostname/>')
        return text_of(deep_get(result.data, 'HostnameInformation.Name')) or None

    async def system_reboot(self) -> str:
        result = await self._request('SystemReboot', '<tds:SystemReboot/>')
        return text_of(deep_get(result.data, 'Message'))
