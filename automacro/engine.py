"""
Dispatch engine: the fixed-period loop of one connection epoch.

Every tick the engine
1. asks which application has focus,
2. switches layout if needed and pushes the new LED colors to the pad,
3. reads newly pressed buttons,
4. replays the macro of each pressed button, one macro at a time,
then sleeps until the next tick. Setting the stop event ends the loop
immediately. Device errors are not handled here; they end run() and are
left to the supervisor.

Collaborators are duck-typed so tests can use fakes:
- device: read_report() -> Optional[bytes], write_raw(bytes), input_report_length
- window: current_application() -> Optional[str]
- injector: inject(Sequence[KeyAction])
"""

import logging
import threading
import time
from typing import Callable, List

from .buttons import ButtonEdgeDetector
from .config import Config
from .layouts import EngineState, resolve_layout
from .packets import encode_sync

log = logging.getLogger(__name__)

TICK_PERIOD = 0.05  # seconds


class DispatchEngine:
    """Runs macros for pressed buttons and keeps the pad's LEDs in sync with the active layout."""

    def __init__(self, device, config: Config, window, injector,
                 stop_event: threading.Event,
                 tick_period: float = TICK_PERIOD,
                 clock: Callable[[], float] = time.monotonic):
        self._device = device
        self._config = config
        self._window = window
        self._injector = injector
        self._stop_event = stop_event
        self._tick_period = tick_period
        self._clock = clock

        # Per-epoch state, never carried across reconnects
        self.detector = ButtonEdgeDetector(device.input_report_length)
        self.state = EngineState.initial(config)

    def _sync_layout(self):
        for frame in encode_sync(self.state.layout):
            self._device.write_raw(frame)
        log.info(f"Synced {len(self.state.layout)} button colors to device")

    def tick(self) -> List[int]:
        """Run one iteration. Returns the buttons that were pressed."""
        application = self._window.current_application()

        self.state, changed = resolve_layout(application, self.state, self._config)
        if changed:
            self._sync_layout()

        pressed = self.detector.poll(self._device.read_report())

        for button in pressed:
            macro = self.state.layout.get(button)
            if macro is None:
                log.debug(f"Button {button} is not mapped in the active layout")
                continue
            log.debug(f"Button {button}: running {len(macro.key_actions)} key actions")
            self._injector.inject(macro.key_actions)

        return pressed

    def run(self):
        """
        Tick until the stop event is set.

        Returns normally on cancellation. Any exception raised by a
        collaborator propagates to the caller.
        """
        log.info("Dispatch engine started")
        next_tick = self._clock()

        while not self._stop_event.is_set():
            self.tick()

            next_tick += self._tick_period
            delay = next_tick - self._clock()
            if delay < 0:
                # Overran the period; start counting again from now
                next_tick = self._clock()
                delay = 0
            if self._stop_event.wait(delay):
                break

        log.info("Dispatch engine stopped")
