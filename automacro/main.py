"""
AutoMacro - Main entry point and background daemon.
"""

import argparse
import logging
import signal
import sys
import threading
from pathlib import Path
from typing import Optional

from .config import Config, load_config, get_config_path
from .engine import DispatchEngine
from .errors import ConfigurationError
from .hid_device import MacroPadDevice
from .keyboard import KeyInjector, validate_keycodes
from .supervisor import Supervisor
from .window import ForegroundWindowResolver

log = logging.getLogger(__name__)


def configure_logging(debug: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format='%(asctime)s.%(msecs)03d [%(levelname)s] %(name)s: %(message)s',
        datefmt='%H:%M:%S'
    )


class AutoMacro:
    """Main application controller."""

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = config_path or get_config_path()
        self.config: Optional[Config] = None
        self.supervisor: Optional[Supervisor] = None
        self.window: Optional[ForegroundWindowResolver] = None
        self.injector: Optional[KeyInjector] = None
        self._stop_event = threading.Event()

    def load_config(self):
        """Load or create configuration. Raises ConfigurationError."""
        log.info(f"Loading configuration from {self.config_path}")
        self.config = load_config(self.config_path)
        validate_keycodes(self.config)

        log.info(f"Default layout: {len(self.config.default_layout)} buttons")
        for application, layout in self.config.application_layouts.items():
            log.info(f"Layout for {application}: {len(layout)} buttons")

    def _connect(self) -> MacroPadDevice:
        return MacroPadDevice.open(self.config.device)

    def _make_engine(self, device: MacroPadDevice) -> DispatchEngine:
        return DispatchEngine(
            device,
            self.config,
            self.window,
            self.injector,
            self._stop_event,
        )

    def start(self):
        """Run until stop() is called."""
        log.info("="*60)
        log.info("AutoMacro starting...")
        log.info("="*60)

        self.load_config()

        self.window = ForegroundWindowResolver()
        self.injector = KeyInjector()
        self.supervisor = Supervisor(self._connect, self._make_engine, self._stop_event)
        self.supervisor.run()

        log.info("AutoMacro stopped")

    def stop(self):
        """Request shutdown; the supervisor returns at its next suspension point."""
        log.info("Stopping AutoMacro...")
        self._stop_event.set()


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog='automacro',
        description='Run macro pad button macros per focused application'
    )
    parser.add_argument('config', nargs='?', type=Path, default=None,
                        help=f'configuration file (default: {get_config_path()})')
    parser.add_argument('--debug', action='store_true', help='enable debug logging')
    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)
    configure_logging(args.debug)

    app = AutoMacro(args.config)

    def signal_handler(signum, frame):
        log.info(f"Received signal {signum}, shutting down...")
        app.stop()

    # Register signal handlers
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        app.start()
    except ConfigurationError as e:
        log.error(f"Invalid configuration: {e}")
        sys.exit(1)
    except Exception as e:
        log.exception(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
