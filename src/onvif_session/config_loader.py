"""
Configuration loader for the ONVIF session runner
Loads and validates configuration from YAML files
"""

import yaml
import logging
from typing import Dict, Any
from pathlib import Path
from datetime import datetime
import pytz

logger = logging.getLogger(__name__)

def load_config(config_path: str = "config/config.yaml") -> Dict[str, Any]:
    """
    Load configuration from YAML file with validation
    """
    try:
        config_file = Path(config_path)
        if not config_file.exists():
            logger.error(f"Configuration file not found: {config_path}")
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_file, 'r') as f:
            config = yaml.safe_load(f) or {}

        _validate_config(config)
        config = _apply_defaults(config)

        logger.info(f"Configuration loaded from {config_path}")
        return config

    except Exception as e:
        logger.error(f"Failed to load configuration: {e}")
        raise

def _validate_config(config: Dict) -> None:
    """Validate that required configuration sections exist"""
    if not isinstance(config, dict):
        raise ValueError("Configuration root must be a mapping")

    required_sections = ['discovery', 'device']
    for section in required_sections:
        if section not in config:
            raise ValueError(f"Missing required configuration section: {section}")
        if config[section] is None:
            config[section] = {}
        if not isinstance(config[section], dict):
            raise ValueError(f"Configuration section '{section}' must be a mapping")

    discovery = config['discovery']
    for key in ('probe_interval_ms', 'probe_retries', 'wait_ms'):
        if key in discovery and (not isinstance(discovery[key], int) or discovery[key] < 0):
            raise ValueError(f"discovery.{key} must be a non-negative integer")

    device = config['device']
    timeout = device.get('request_timeout')
    if timeout is not None and (not isinstance(timeout, (int, float)) or timeout <= 0):
        raise ValueError("device.request_timeout must be a positive number")

    protocols = device.get('stream_protocols')
    if protocols is not None:
        invalid = [p for p in protocols if str(p).upper() not in ('UDP', 'HTTP', 'RTSP')]
        if invalid:
            raise ValueError(f"device.stream_protocols has unknown entries: {invalid}")

    if device.get('password') and not device.get('username'):
        logger.warning("device.password is set without device.username - requests will not be signed")

# Per-section defaults; keys already present in the file win
SECTION_DEFAULTS = {
    'discovery': {
        'enabled': True,
        'multicast_address': '239.255.255.250',
        'port': 3702,
        'bind_address': '0.0.0.0',
        'bind_port': 0,
        'probe_interval_ms': 150,
        'probe_retries': 3,
        'wait_ms': 3000,
        'device_types': ['NetworkVideoTransmitter', 'Device', 'NetworkVideoDisplay']
    },
    'device': {
        'request_timeout': 3,
        'username': '',
        'password': '',
        'stream_protocols': ['UDP', 'HTTP', 'RTSP'],
        'addresses': [],
        'xaddrs': []
    },
    'logging': {
        'level': 'INFO',
        'file': 'logs/onvif_session.log',
        'console_output': True,
        'timezone': 'UTC'
    }
}

def _apply_defaults(config: Dict) -> Dict:
    """Fill in missing keys of every known section"""
    for section, defaults in SECTION_DEFAULTS.items():
        values = config.get(section) or {}
        config[section] = values
        for key, default_value in defaults.items():
            values.setdefault(key, list(default_value) if isinstance(default_value, list) else default_value)
    return config


class TimezoneFormatter(logging.Formatter):
    """Formatter that renders timestamps in a configured timezone"""

    def __init__(self, fmt=None, timezone: str = 'UTC'):
        super().__init__(fmt)
        try:
            self.tz = pytz.timezone(timezone)
        except pytz.UnknownTimeZoneError:
            self.tz = pytz.utc

    def formatTime(self, record, datefmt=None):
        local_time = datetime.fromtimestamp(record.created, tz=self.tz)
        return local_time.strftime(datefmt or '%Y-%m-%d %H:%M:%S %Z')

def setup_logging(config: Dict) -> None:
    """Install console and file handlers with timezone-aware timestamps"""
    log_config = config.get('logging', {})
    level_name = str(log_config.get('level', 'INFO')).upper()
    timezone = log_config.get('timezone', 'UTC')
    formatter = TimezoneFormatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s", timezone)

    handlers = []
    if log_config.get('console_output', True):
        handlers.append(logging.StreamHandler())

    log_file = log_config.get('file')
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    root = logging.getLogger()
    root.setLevel(getattr(logging, level_name, logging.INFO))
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    logger.info(f"Logging configured: level={level_name}, timezone={timezone}, handlers={len(handlers)}, file={log_file}")

def get_sample_config() -> Dict:
    """Return a sample configuration for reference"""
    return {
        "discovery": {
            "enabled": True,
            "multicast_address": "239.255.255.250",
            "port": 3702,
            "bind_address": "0.0.0.0",
            "bind_port": 0,               # 0 = ephemeral port
            "probe_interval_ms": 150,
            "probe_retries": 3,
            "wait_ms": 3000,
            "device_types": ["NetworkVideoTransmitter", "Device", "NetworkVideoDisplay"]
        },
        "device": {
            "request_timeout": 3,
            "username": "admin",
            "password": "admin",
            "stream_protocols": ["UDP", "HTTP", "RTSP"],
            "addresses": ["192.168.1.64"],  # Bootstrapped in addition to discovered devices
            "xaddrs": []
        },
        "logging": {
            "level": "INFO",
            "file": "logs/onvif_session.log",
            "console_output": True,
            "timezone": "UTC"
        }
    }
