"""
Foreground window lookup.

Identifies the focused application by the executable name of the process
that owns the foreground window, e.g. 'code.exe' on Windows or 'firefox'
on Linux. Any failure means "no application", which selects the default
layout.
"""

import logging
import subprocess
import sys
from typing import Optional

import psutil

log = logging.getLogger(__name__)

# UWP apps are hosted inside this process; the real app owns a child window
UWP_HOST = 'applicationframehost.exe'

# Window lookup runs every tick, so it must not outlast one
XDOTOOL_TIMEOUT = 0.05  # seconds


def process_name(pid: int) -> Optional[str]:
    """Executable name of a process, or None if it is gone or inaccessible."""
    if pid <= 0:
        return None
    try:
        return psutil.Process(pid).name()
    except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
        return None


class _Win32Foreground:
    """Foreground window owner via user32."""

    def __init__(self):
        import ctypes
        from ctypes import wintypes

        self._ctypes = ctypes
        self._wintypes = wintypes
        self._user32 = ctypes.windll.user32
        self._enum_proc_type = ctypes.WINFUNCTYPE(wintypes.BOOL, wintypes.HWND, wintypes.LPARAM)

    def _window_pid(self, hwnd) -> int:
        pid = self._wintypes.DWORD()
        self._user32.GetWindowThreadProcessId(hwnd, self._ctypes.byref(pid))
        return pid.value

    def _hosted_app_pid(self, hwnd, host_pid: int) -> int:
        """PID of the first child window owned by a process other than the UWP host."""
        found = [host_pid]

        def callback(child_hwnd, _lparam):
            child_pid = self._window_pid(child_hwnd)
            if child_pid != host_pid:
                found[0] = child_pid
            return True

        self._user32.EnumChildWindows(hwnd, self._enum_proc_type(callback), 0)
        return found[0]

    def current_application(self) -> Optional[str]:
        hwnd = self._user32.GetForegroundWindow()
        if not hwnd:
            return None

        pid = self._window_pid(hwnd)
        name = process_name(pid)
        if name and name.lower() == UWP_HOST:
            name = process_name(self._hosted_app_pid(hwnd, pid))
        return name


class _X11Foreground:
    """Foreground window owner via xdotool."""

    def current_application(self) -> Optional[str]:
        try:
            result = subprocess.run(
                ['xdotool', 'getactivewindow', 'getwindowpid'],
                capture_output=True, text=True, timeout=XDOTOOL_TIMEOUT,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            log.debug(f"xdotool failed: {e}")
            return None

        if result.returncode != 0:
            return None
        try:
            pid = int(result.stdout.strip())
        except ValueError:
            return None
        return process_name(pid)


class _NoForeground:
    def current_application(self) -> Optional[str]:
        return None


class ForegroundWindowResolver:
    """Returns the executable name of the focused application, or None."""

    def __init__(self):
        if sys.platform == 'win32':
            self._backend = _Win32Foreground()
        elif sys.platform.startswith('linux'):
            self._backend = _X11Foreground()
        else:
            log.warning(f"Foreground window lookup not supported on {sys.platform}; "
                        f"only the default layout will be used")
            self._backend = _NoForeground()

    def current_application(self) -> Optional[str]:
        return self._backend.current_application()
