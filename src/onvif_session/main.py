"""
ONVIF session runner - Main Entry Point
Discovers devices, bootstraps each one and logs a summary
"""

import asyncio
import signal
import sys
import logging
import os
from typing import Dict, List, Optional

from .config_loader import load_config, setup_logging
from .device import DeviceSession
from .discovery import DiscoveryEngine
from .errors import OnvifError

logger = logging.getLogger(__name__)

class SessionRunner:
    """Orchestrates discovery and device bootstrap for one run"""

    def __init__(self, config_path: str = "config/config.yaml"):
        self.config = load_config(config_path)
        setup_logging(self.config)

        self.discovery = DiscoveryEngine(self.config['discovery'])
        self.sessions: List[DeviceSession] = []
        self.failures: Dict[str, str] = {}
        self.running = False

    async def start(self) -> int:
        """Run discovery and bootstrap; returns the number of initialized devices"""
        logger.info("Starting ONVIF session runner...")
        self.running = True

        targets = await self._collect_targets()
        if not targets:
            logger.warning("No ONVIF devices found or configured")
            return 0

        # Sequential bootstrap keeps the log readable per device
        for xaddr in targets:
            if not self.running:
                break
            await self._bootstrap(xaddr)

        self._log_summary()
        return len(self.sessions)

    async def stop(self):
        """Stop discovery gracefully"""
        if not self.running:
            return
        logger.info("Stopping runner...")
        self.running = False
        await self.discovery.stop_probe()

    async def _collect_targets(self) -> List[str]:
        device_config = self.config['device']
        targets: List[str] = list(device_config.get('xaddrs') or [])
        for address in device_config.get('addresses') or []:
            targets.append(f"http://{address}:80/onvif/device_service")

        if self.config['discovery'].get('enabled', True):
            try:
                result = await self.discovery.discover()
                logger.info(f"Discovery found {result.success_count} devices in {result.duration_seconds:.1f}s "
                            f"({result.datagrams_received} datagrams)")
                for device in result.devices:
                    if device.xaddr:
                        targets.append(device.xaddr)
            except OnvifError as e:
                logger.error(f"Discovery failed: {e}")

        # Preserve order, drop duplicates
        return list(dict.fromkeys(targets))

    async def _bootstrap(self, xaddr: str) -> Optional[DeviceSession]:
        device_config = self.config['device']
        try:
            session = DeviceSession(
                xaddr=xaddr,
                username=device_config.get('username', ''),
                password=device_config.get('password', ''),
                config=device_config
            )
            async with session:
                await session.init()
        except OnvifError as e:
            logger.error(f"[ERROR] {xaddr}: {e}")
            self.failures[xaddr] = str(e)
            return None

        self.sessions.append(session)
        return session

    def _log_summary(self):
        logger.info(f"Bootstrap complete: {len(self.sessions)} initialized, {len(self.failures)} failed")
        for session in self.sessions:
            info = session.get_information()
            profile = session.get_current_profile()
            logger.info(
                f"  {session.address}: {info.manufacturer} {info.model} "
                f"profile={profile.token if profile else '-'} "
                f"rtsp={session.get_stream_url('RTSP') or '-'} "
                f"snapshot={profile.snapshot if profile and profile.snapshot else '-'}"
            )
        for xaddr, error in self.failures.items():
            logger.info(f"  {xaddr}: FAILED ({error})")

async def main():
    """Main entry point"""

    runner = None

    def signal_handler(signum, frame):
        logger.info(f"Received signal {signum}, shutting down...")
        if runner:
            asyncio.create_task(runner.stop())

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        # Get config file path from environment variable or use default
        config_path = os.environ.get('CONFIG_FILE', 'config/config.yaml')
        logger.info(f"Using configuration file: {config_path}")
        runner = SessionRunner(config_path=config_path)

        await runner.start()

    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
    except Exception as e:
        logger.error(f"Runner failed: {e}")
        return 1
    finally:
        if runner:
            await runner.stop()

    return 0

def run():
    try:
        exit_code = asyncio.run(main())
        sys.exit(exit_code)
    except KeyboardInterrupt:
        print("\nRunner stopped by user")
        sys.exit(0)

if __name__ == "__main__":
    run()
