"""Fakes and builders shared by the tests."""

from typing import List, Optional

from automacro.config import Color, KeyAction, KeyEvent, Macro
from automacro.errors import DeviceIOError


def make_macro(*keys, color=Color()) -> Macro:
    """Press then release each key."""
    actions = [KeyAction(k, KeyEvent.DOWN) for k in keys]
    actions += [KeyAction(k, KeyEvent.UP) for k in keys]
    return Macro(color=color, key_actions=tuple(actions))


def report(*buttons, length=5, report_id=3) -> bytes:
    """Input report with the given buttons held."""
    bits = 0
    for button in buttons:
        bits |= 1 << (button - 1)
    return bytes([report_id]) + bits.to_bytes(length - 1, 'little')


class FakeDevice:
    """Device that replays queued reports and records writes."""

    def __init__(self, reports: Optional[List[Optional[bytes]]] = None,
                 input_report_length: int = 5, fail_after_reads: Optional[int] = None):
        self.reports = list(reports or [])
        self.input_report_length = input_report_length
        self.frames: List[bytes] = []
        self.reads = 0
        self.fail_after_reads = fail_after_reads
        self.closed = False
        self.on_read = None

    def read_report(self) -> Optional[bytes]:
        self.reads += 1
        if self.on_read:
            self.on_read(self)
        if self.fail_after_reads is not None and self.reads > self.fail_after_reads:
            raise DeviceIOError("device disconnected")
        if self.reports:
            return self.reports.pop(0)
        return None

    def write_raw(self, frame: bytes):
        self.frames.append(bytes(frame))

    def close(self):
        self.closed = True


class FakeWindow:
    """Returns a scripted sequence of applications, then repeats the last one."""

    def __init__(self, *applications):
        self.applications = list(applications) or [None]

    def current_application(self):
        if len(self.applications) > 1:
            return self.applications.pop(0)
        return self.applications[0]


class FakeInjector:
    def __init__(self):
        self.calls = []

    def inject(self, actions):
        self.calls.append(tuple(actions))


# QMK programmable buttons: Consumer Control > Programmable Buttons > 32 buttons
PROGRAMMABLE_BUTTONS = bytes([
    0x05, 0x0C,  # Usage Page (Consumer)
    0x09, 0x01,  # Usage (Consumer Control)
    0xA1, 0x01,  # Collection (Application)
    0x85, 0x04,  #   Report ID (4)
    0x09, 0x03,  #   Usage (Programmable Buttons)
    0xA1, 0x04,  #   Collection (Named Array)
    0x05, 0x09,  #     Usage Page (Button)
    0x19, 0x01,  #     Usage Minimum (1)
    0x29, 0x20,  #     Usage Maximum (32)
    0x15, 0x00,  #     Logical Minimum (0)
    0x25, 0x01,  #     Logical Maximum (1)
    0x95, 0x20,  #     Report Count (32)
    0x75, 0x01,  #     Report Size (1)
    0x81, 0x02,  #     Input (Data, Var, Abs)
    0xC0,        #   End Collection
    0xC0,        # End Collection
])

# QMK raw HID: vendor page 0xFF60, usage 0x61, 32-byte input and output
RAW_HID = bytes([
    0x06, 0x60, 0xFF,              # Usage Page (0xFF60)
    0x09, 0x61,                    # Usage (0x61)
    0xA1, 0x01,                    # Collection (Application)
    0x09, 0x62,                    #   Usage (0x62)
    0x15, 0x00, 0x26, 0xFF, 0x00,  #   Logical Minimum/Maximum
    0x95, 0x20,                    #   Report Count (32)
    0x75, 0x08,                    #   Report Size (8)
    0x81, 0x02,                    #   Input
    0x09, 0x63,                    #   Usage (0x63)
    0x15, 0x00, 0x26, 0xFF, 0x00,  #   Logical Minimum/Maximum
    0x95, 0x20,                    #   Report Count (32)
    0x75, 0x08,                    #   Report Size (8)
    0x91, 0x02,                    #   Output
    0xC0,                          # End Collection
])

# Same buttons without a Report ID item
UNNUMBERED_BUTTONS = PROGRAMMABLE_BUTTONS.replace(bytes([0x85, 0x04]), b'')

BUTTON_CHAIN = [0x000C0001, 0x000C0003]
RAW_CHAIN = [0xFF600061]
