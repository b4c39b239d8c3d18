"""
Connection supervisor state machine.

States:
- disconnected: no device handle
- connecting: trying to open the pad, retrying every connect_delay
- running: a dispatch engine owns the open device
- terminated: the stop event was set; the supervisor has returned

A failed run goes back to disconnected, waits restart_delay and connects
again. Retries are unbounded; only the stop event ends the loop.
"""

import logging
import threading
import time
from enum import Enum, auto
from typing import Callable, List, Optional
from dataclasses import dataclass

log = logging.getLogger(__name__)


class SupervisorState(Enum):
    DISCONNECTED = auto()
    CONNECTING = auto()
    RUNNING = auto()
    TERMINATED = auto()


@dataclass
class StateChange:
    """Represents a state transition."""
    old_state: SupervisorState
    new_state: SupervisorState
    reason: str
    timestamp: float


@dataclass(frozen=True)
class RetryPolicy:
    """Fixed delays in seconds; no backoff growth and no retry limit."""
    connect_delay: float = 1.0
    restart_delay: float = 5.0


class Supervisor:
    """
    Keeps a dispatch engine running across device disconnects.

    connect() opens the device or raises; make_engine(device) builds a fresh
    engine (fresh edge and layout state) for each connection epoch.
    """

    def __init__(self, connect: Callable[[], object],
                 make_engine: Callable[[object], object],
                 stop_event: threading.Event,
                 policy: RetryPolicy = RetryPolicy(),
                 wait: Optional[Callable[[float], bool]] = None):
        self._connect = connect
        self._make_engine = make_engine
        self._stop_event = stop_event
        self._policy = policy
        self._wait = wait or stop_event.wait
        self._state = SupervisorState.DISCONNECTED
        self._listeners: List[Callable[[StateChange], None]] = []

    @property
    def state(self) -> SupervisorState:
        return self._state

    def add_listener(self, callback: Callable[[StateChange], None]):
        """Add a state change listener."""
        self._listeners.append(callback)

    def _transition_to(self, new_state: SupervisorState, reason: str):
        if new_state == self._state:
            return

        change = StateChange(
            old_state=self._state,
            new_state=new_state,
            reason=reason,
            timestamp=time.time()
        )
        self._state = new_state
        log.info(f"Supervisor: {change.old_state.name} -> {new_state.name} ({reason})")

        for listener in self._listeners:
            try:
                listener(change)
            except Exception:
                log.exception("State change listener failed")

    def _try_connect(self):
        """One connection attempt. Returns the device, or None after logging the failure."""
        try:
            return self._connect()
        except Exception as e:
            log.error(f"Unable to connect to device: {e}")
            return None

    def _run_epoch(self, device) -> bool:
        """Run one engine on an open device. Returns True if it ended by failure."""
        try:
            engine = self._make_engine(device)
            engine.run()
        except Exception as e:
            log.error(f"Dispatch engine failed: {e}")
            return True
        finally:
            device.close()

        if not self._stop_event.is_set():
            log.warning("Dispatch engine finished without a stop request")
            return True
        return False

    def run(self):
        """Connect, run, and reconnect until the stop event is set."""
        device = None

        while True:
            if self._stop_event.is_set():
                self._transition_to(SupervisorState.TERMINATED, "stop requested")
                return

            if self._state == SupervisorState.DISCONNECTED:
                self._transition_to(SupervisorState.CONNECTING, "connect")

            elif self._state == SupervisorState.CONNECTING:
                device = self._try_connect()
                if device is not None:
                    self._transition_to(SupervisorState.RUNNING, "device opened")
                else:
                    self._wait(self._policy.connect_delay)

            elif self._state == SupervisorState.RUNNING:
                failed = self._run_epoch(device)
                device = None
                if failed:
                    self._transition_to(SupervisorState.DISCONNECTED, "engine failed")
                    self._wait(self._policy.restart_delay)
