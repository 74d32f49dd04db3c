"""
Discovery module for ONVIF devices (WS-Discovery)
"""

from .manager import DiscoveryEngine
from .models import DiscoveredDevice, DiscoveryResult, DiscoveryState
from .network_discovery import build_probe_message, parse_probe_matches, tokenize_scopes

__all__ = [
    'DiscoveryEngine', 'DiscoveredDevice', 'DiscoveryResult', 'DiscoveryState',
    'build_probe_message', 'parse_probe_matches', 'tokenize_scopes'
]
