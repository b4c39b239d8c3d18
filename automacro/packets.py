"""
Wire framing for layout LED synchronization.

A layout sync is two frames: a one-byte reset marker, then a 4-byte record
per mapped button. Frames are written through the raw HID interface in
output reports that each start with a fixed sentinel byte.
"""

from typing import Iterator, List

from .config import Layout

SYNC_RESET = 0xFF
BUTTON_RECORD_FLAG = 0x80
RECORD_SIZE = 4
OUTPUT_SENTINEL = 0x45


def encode_reset() -> bytes:
    return bytes([SYNC_RESET])


def encode_colors(layout: Layout) -> bytes:
    """One [0x80 | button, R, G, B] record per mapped button."""
    packet = bytearray()
    for button, macro in layout.items():
        packet.append(BUTTON_RECORD_FLAG | button)
        packet.append(macro.color.red)
        packet.append(macro.color.green)
        packet.append(macro.color.blue)
    return bytes(packet)


def encode_sync(layout: Layout) -> List[bytes]:
    """Frames that make the device display a layout: reset first, then colors."""
    return [encode_reset(), encode_colors(layout)]


def chunk_output_report(frame: bytes, max_output_length: int) -> Iterator[bytes]:
    """
    Split a frame into output reports.

    Each report is the sentinel byte followed by up to
    max_output_length - 1 bytes of the frame, preserving byte order.
    An empty frame produces no reports.
    """
    payload_size = max_output_length - 1
    if payload_size < 1:
        raise ValueError(f"Output report length {max_output_length} leaves no room for payload")

    for offset in range(0, len(frame), payload_size):
        yield bytes([OUTPUT_SENTINEL]) + frame[offset:offset + payload_size]
