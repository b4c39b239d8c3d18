"""
Rising-edge detection for the programmable buttons report.

The device reports button levels: bit i of the report body (after the
report id byte) is set while button i+1 is held. A macro should fire once
per physical press however long the button is held, so only 0 -> 1
transitions between consecutive reports are reported.
"""

import logging
from typing import List, Optional

log = logging.getLogger(__name__)


def report_to_bits(report: bytes) -> int:
    """Interpret a report body as a little-endian bit vector."""
    return int.from_bytes(report, 'little')


def bits_to_buttons(bits: int) -> List[int]:
    """Button ids (1-based) of the set bits, in ascending order."""
    buttons = []
    index = 0
    while bits:
        if bits & 1:
            buttons.append(index + 1)
        bits >>= 1
        index += 1
    return buttons


class ButtonEdgeDetector:
    """
    Turns successive input reports into newly pressed buttons.

    The previous report's button state is owned by this instance and only
    changed by poll(). A fresh detector starts with every button released.
    """

    def __init__(self, report_length: int):
        """
        Args:
            report_length: Input report size in bytes, including the report id byte
        """
        if report_length < 2:
            raise ValueError(f"Input report length {report_length} leaves no room for buttons")
        self._width = (report_length - 1) * 8
        self._mask = (1 << self._width) - 1
        self._previous = 0

    @property
    def previous(self) -> int:
        """Button bit vector seen by the last poll."""
        return self._previous

    def poll(self, report: Optional[bytes]) -> List[int]:
        """
        Return the ids of buttons pressed since the previous report.

        Args:
            report: Raw input report, or None when no new input was available.
                    Byte 0 is the report id and is ignored.
        """
        if report is None:
            return []

        pressed_now = report_to_bits(bytes(report[1:])) & self._mask
        rising = pressed_now & ~self._previous
        self._previous = pressed_now

        if rising:
            buttons = bits_to_buttons(rising)
            log.debug(f"Buttons pressed: {buttons}")
            return buttons
        return []
