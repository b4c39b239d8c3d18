"""
HID transport for the macro pad.

Uses hidapi for raw HID access. The pad exposes two interfaces: one that
reports programmable button levels, and a raw data interface that accepts
LED updates. Each is found by matching a usage chain against its report
descriptor.
"""

import logging
from typing import Callable, List, Optional, Sequence, Tuple
from dataclasses import dataclass

import hid

from .config import DeviceConfig
from .descriptor import (
    ReportDescriptor,
    descriptor_has_usage_chain,
    parse_report_descriptor,
)
from .errors import DeviceIOError, DeviceNotFound
from .packets import chunk_output_report

log = logging.getLogger(__name__)


@dataclass
class HIDDevice:
    """Represents a HID interface as listed by hidapi."""
    path: bytes
    vid: int
    pid: int
    product: str
    manufacturer: str


def enumerate_devices(vid: int = 0, pid: int = 0) -> List[HIDDevice]:
    """Enumerate HID interfaces, optionally limited to a vendor/product id."""
    devices = []
    for dev_info in hid.enumerate(vid, pid):
        devices.append(HIDDevice(
            path=dev_info.get('path', b''),
            vid=dev_info.get('vendor_id', 0),
            pid=dev_info.get('product_id', 0),
            product=dev_info.get('product_string', '') or '',
            manufacturer=dev_info.get('manufacturer_string', '') or '',
        ))
    return devices


def read_report_descriptor(device: HIDDevice) -> Optional[ReportDescriptor]:
    """
    Read and parse an interface's report descriptor.
    Returns None if the interface cannot be opened or its descriptor is unusable.
    """
    handle = hid.device()
    try:
        handle.open_path(device.path)
    except (OSError, ValueError) as e:
        log.debug(f"Cannot open {device.path!r} to read descriptor: {e}")
        return None

    try:
        return parse_report_descriptor(bytes(handle.get_report_descriptor()))
    except (OSError, ValueError) as e:
        # DescriptorError is a ValueError
        log.debug(f"Cannot read descriptor of {device.path!r}: {e}")
        return None
    finally:
        handle.close()


def find_device_with_usage_chain(
    devices: Sequence[HIDDevice],
    usages: Sequence[int],
    read_descriptor: Callable[[HIDDevice], Optional[ReportDescriptor]] = read_report_descriptor,
) -> Tuple[HIDDevice, ReportDescriptor]:
    """
    First interface whose descriptor has a top-level item matching the usage chain.
    Interfaces whose descriptor cannot be read are skipped.
    """
    for device in devices:
        descriptor = read_descriptor(device)
        if descriptor is None:
            continue
        if descriptor_has_usage_chain(descriptor, usages):
            return device, descriptor

    chain = ', '.join(f"0x{usage:08X}" for usage in usages)
    raise DeviceNotFound(f"No interface with usage chain [{chain}] among {len(devices)} candidates")


def _open_path(path: bytes, nonblocking: bool):
    handle = hid.device()
    try:
        handle.open_path(path)
        if nonblocking:
            handle.set_nonblocking(1)
    except (OSError, ValueError) as e:
        handle.close()
        raise DeviceIOError(f"Cannot open {path!r}: {e}") from e
    return handle


class MacroPadDevice:
    """
    An open connection to the macro pad.

    Owns both interface handles for one connection epoch. Reads are
    non-blocking: read_report() returns None when no report is pending.
    """

    def __init__(self, buttons_handle, raw_handle,
                 input_report_length: int, output_report_length: int,
                 input_has_report_id: bool = True):
        self._buttons = buttons_handle
        self._raw = raw_handle
        self.input_report_length = input_report_length
        self.output_report_length = output_report_length
        self.input_has_report_id = input_has_report_id
        self._closed = False

    @classmethod
    def open(cls, device_config: DeviceConfig,
             read_descriptor: Callable[[HIDDevice], Optional[ReportDescriptor]] = read_report_descriptor
             ) -> 'MacroPadDevice':
        """Discover the pad's two interfaces and open them."""
        devices = enumerate_devices(device_config.vendor_id, device_config.product_id)
        if not devices:
            raise DeviceNotFound(
                f"No HID device with VID:PID "
                f"{device_config.vendor_id:04X}:{device_config.product_id:04X}"
            )

        buttons_device, buttons_descriptor = find_device_with_usage_chain(
            devices, device_config.button_usages, read_descriptor)
        raw_device, raw_descriptor = find_device_with_usage_chain(
            devices, device_config.raw_usages, read_descriptor)

        if buttons_descriptor.max_input_report_length < 2:
            raise DeviceNotFound("Buttons interface declares no input report")
        if raw_descriptor.max_output_report_length < 2:
            raise DeviceNotFound("Raw data interface declares no output report")

        buttons_handle = _open_path(buttons_device.path, nonblocking=True)
        try:
            raw_handle = _open_path(raw_device.path, nonblocking=False)
        except DeviceIOError:
            buttons_handle.close()
            raise

        log.info(
            f"Connected to {buttons_device.manufacturer} {buttons_device.product} "
            f"[{buttons_device.vid:04X}:{buttons_device.pid:04X}] "
            f"(input report {buttons_descriptor.max_input_report_length} bytes, "
            f"output report {raw_descriptor.max_output_report_length} bytes)"
        )
        return cls(
            buttons_handle,
            raw_handle,
            buttons_descriptor.max_input_report_length,
            raw_descriptor.max_output_report_length,
            buttons_descriptor.uses_report_ids,
        )

    def read_report(self) -> Optional[bytes]:
        """Read one pending input report, or None if there is none."""
        try:
            data = self._buttons.read(self.input_report_length)
        except (OSError, ValueError) as e:
            raise DeviceIOError(f"Reading button report failed: {e}") from e

        if not data:
            return None
        if not self.input_has_report_id:
            # Unnumbered reports arrive without the id byte
            return b'\x00' + bytes(data)
        return bytes(data)

    def write_raw(self, frame: bytes):
        """Write a frame to the raw data interface, split into output reports."""
        for report in chunk_output_report(frame, self.output_report_length):
            try:
                written = self._raw.write(report)
            except (OSError, ValueError) as e:
                raise DeviceIOError(f"Writing raw report failed: {e}") from e
            if written is not None and written < 0:
                raise DeviceIOError(f"Writing raw report failed: {self._raw.error()}")

    def close(self):
        """Close both interfaces. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        for handle in (self._buttons, self._raw):
            try:
                handle.close()
            except (OSError, ValueError) as e:
                log.debug(f"Error closing HID handle: {e}")
