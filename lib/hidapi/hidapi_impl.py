## Copyright (C) 2012-2013  Daniel Pavel
##
## This program is free software; you can redistribute it and/or modify
## it under the terms of the GNU General Public License as published by
## the Free Software Foundation; either version 2 of the License, or
## (at your option) any later version.
##
## This program is distributed in the hope that it will be useful,
## but WITHOUT ANY WARRANTY; without even the implied warranty of
## MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
## GNU General Public License for more details.
##
## You should have received a copy of the GNU General Public License along
## with this program; if not, write to the Free Software Foundation, Inc.,
## 51 Franklin Street, Fifth Floor, Boston, MA 02110-1301 USA.
"""Generic Human Interface Device API, over libhidapi.

For platforms without hidraw, mainly macOS. Devices are opened exclusively
where the library can do so. Failures are raised as ``OSError`` with an errno
guessed from the library's error text, so callers handle them the same way as
on Linux.
See https://github.com/libusb/hidapi for how to obtain binaries.

Parts of this code are adapted from https://github.com/apmorton/pyhidapi
which is MIT licensed.
"""

from __future__ import annotations

import atexit
import ctypes
import errno
import logging

from threading import Event
from threading import Thread
from typing import Any
from typing import Callable

from hidapi.common import DeviceInfo

logger = logging.getLogger(__name__)

ACTION_ADD = "add"
ACTION_REMOVE = "remove"

_LIBRARY_NAMES = (
    "libhidapi.dylib",
    "libhidapi-iohidmanager.so",
    "libhidapi-iohidmanager.so.0",
    "libhidapi-hidraw.so",
    "libhidapi-hidraw.so.0",
    "libhidapi-libusb.so",
    "libhidapi-libusb.so.0",
    "hidapi.dll",
    "libhidapi-0.dll",
)


def _load_library():
    for name in _LIBRARY_NAMES:
        try:
            return ctypes.cdll.LoadLibrary(name)
        except OSError:
            logger.debug("no hidapi library %s", name)
    raise ImportError(f"Unable to load hidapi library, tried: {' '.join(_LIBRARY_NAMES)}")


_hidapi = _load_library()


class _cHidApiVersion(ctypes.Structure):
    _fields_ = [("major", ctypes.c_int), ("minor", ctypes.c_int), ("patch", ctypes.c_int)]


class _cDeviceInfo(ctypes.Structure):
    def as_dict(self):
        return {name: getattr(self, name) for name, _t in self._fields_ if name != "next"}


_hidapi.hid_version.argtypes = []
_hidapi.hid_version.restype = ctypes.POINTER(_cHidApiVersion)
_version = _hidapi.hid_version().contents
_version = (_version.major, _version.minor, _version.patch)

# struct hid_device_info; bus_type was appended in 0.13
_cDeviceInfo._fields_ = [
    ("path", ctypes.c_char_p),
    ("vendor_id", ctypes.c_ushort),
    ("product_id", ctypes.c_ushort),
    ("serial_number", ctypes.c_wchar_p),
    ("release_number", ctypes.c_ushort),
    ("manufacturer_string", ctypes.c_wchar_p),
    ("product_string", ctypes.c_wchar_p),
    ("usage_page", ctypes.c_ushort),
    ("usage", ctypes.c_ushort),
    ("interface_number", ctypes.c_int),
    ("next", ctypes.POINTER(_cDeviceInfo)),
] + ([("bus_type", ctypes.c_int)] if _version >= (0, 13, 0) else [])

_DEVICE = ctypes.c_void_p
_BUFFER = ctypes.c_char_p

# name: (argument types, result type)
_PROTOTYPES = {
    "hid_init": ([], ctypes.c_int),
    "hid_exit": ([], ctypes.c_int),
    "hid_enumerate": ([ctypes.c_ushort, ctypes.c_ushort], ctypes.POINTER(_cDeviceInfo)),
    "hid_free_enumeration": ([ctypes.POINTER(_cDeviceInfo)], None),
    "hid_open_path": ([_BUFFER], _DEVICE),
    "hid_close": ([_DEVICE], None),
    "hid_write": ([_DEVICE, _BUFFER, ctypes.c_size_t], ctypes.c_int),
    "hid_send_feature_report": ([_DEVICE, _BUFFER, ctypes.c_size_t], ctypes.c_int),
    "hid_read_timeout": ([_DEVICE, _BUFFER, ctypes.c_size_t, ctypes.c_int], ctypes.c_int),
    "hid_error": ([_DEVICE], ctypes.c_wchar_p),
    # the ones below are missing from older libraries
    "hid_get_report_descriptor": ([_DEVICE, _BUFFER, ctypes.c_size_t], ctypes.c_int),
    "hid_darwin_set_open_exclusive": ([ctypes.c_int], None),
}

for _name, (_argtypes, _restype) in _PROTOTYPES.items():
    if hasattr(_hidapi, _name):
        _function = getattr(_hidapi, _name)
        _function.argtypes = _argtypes
        _function.restype = _restype

# the largest report descriptor a HID device may declare
_MAX_REPORT_DESCRIPTOR_SIZE = 4096

_hidapi.hid_init()
atexit.register(_hidapi.hid_exit)
if hasattr(_hidapi, "hid_darwin_set_open_exclusive"):
    _hidapi.hid_darwin_set_open_exclusive(1)

# library error text => errno, first match wins
_ERROR_TEXTS = (
    ("exclusive access", errno.EBUSY),
    ("not permitted", errno.EACCES),
    ("privilege", errno.EACCES),
    ("access denied", errno.EACCES),
    ("not found", errno.ENODEV),
)


class HIDError(OSError):
    pass


def _error(device_handle, default_errno=errno.EIO) -> HIDError:
    message = _hidapi.hid_error(device_handle) or "unknown hidapi error"
    lowered = message.lower()
    code = next((code for text, code in _ERROR_TEXTS if text in lowered), default_errno)
    return HIDError(code, message)


def _enumerate_devices() -> list[dict[str, Any]]:
    """All HID devices, one entry per path with every top level usage it declares."""
    c_devices = _hidapi.hid_enumerate(0, 0)
    devices = {}
    p = c_devices
    while p:
        info = p.contents.as_dict()
        # hidapi lists a device once for each of its top level collections
        entry = devices.setdefault(info["path"], dict(info, usages=[]))
        entry["usages"].append((info["usage_page"], info["usage"]))
        p = p.contents.next
    _hidapi.hid_free_enumeration(c_devices)
    return list(devices.values())


class _DeviceMonitor(Thread):
    """Reports devices coming and going by comparing enumerations."""

    def __init__(self, device_callback, polling_delay=2.0):
        super().__init__(daemon=True, name="hidapi-monitor")
        self.device_callback = device_callback
        self.polling_delay = polling_delay
        self._stopped = Event()

    def run(self):
        known = {dev["path"] for dev in _enumerate_devices()}
        while not self._stopped.wait(self.polling_delay):
            present = {dev["path"] for dev in _enumerate_devices()}
            for path in known - present:
                self.device_callback(ACTION_REMOVE, path.decode())
            for path in present - known:
                self.device_callback(ACTION_ADD, path.decode())
            known = present

    def stop(self):
        self._stopped.set()


# hid_bus_type => HID bus id
_BUS_IDS = {0x01: 0x03, 0x02: 0x05}


def _match(device: dict[str, Any], filter_func: Callable[[int, int, int, list], bool]) -> DeviceInfo | None:
    """The filter_func decides whether this is a device of interest.
    It is given the bus id, vendor id, product id and the top level usages."""
    vid, pid = device["vendor_id"], device["product_id"]
    if vid == 0 and pid == 0:
        return None
    bus_id = _BUS_IDS.get(device.get("bus_type"))
    if not filter_func(bus_id, vid, pid, device["usages"]):
        return None

    logger.info("Found device BID %s VID %04X PID %04X usages %s", bus_id, vid, pid, device["usages"])
    # the path embeds the IORegistry entry id on macOS, stable while the device stays connected
    path = device["path"].decode()
    usage_page, usage = device["usages"][0]
    return DeviceInfo(
        path=path,
        device_id=path,
        bus_id=bus_id,
        vendor_id=vid,
        product_id=pid,
        manufacturer=device["manufacturer_string"],
        product=device["product_string"],
        serial=device["serial_number"] or None,
        usage_page=usage_page,
        usage=usage,
    )


def monitor(callback: Callable[[str, str], None]):
    """Watch HID devices coming and going by polling the enumeration.

    :param callback: called on the monitor thread with the action and the
    path of every device added or removed.
    :returns: the started monitor; ``stop()`` it when done.
    """
    device_monitor = _DeviceMonitor(callback)
    device_monitor.start()
    return device_monitor


def enumerate(filter_func):
    """Enumerate the HID devices that pass filter_func, as ``DeviceInfo``."""
    for device in _enumerate_devices():
        d_info = _match(device, filter_func)
        if d_info:
            yield d_info


def open_path(device_path: str) -> int:
    """Open a HID device by its path name.

    :raises HIDError: with ``EBUSY`` when another process holds the device,
    ``EACCES`` when access is not permitted.
    """
    if not isinstance(device_path, bytes):
        device_path = device_path.encode()
    device_handle = _hidapi.hid_open_path(device_path)
    if not device_handle:
        raise _error(None, errno.ENODEV)
    return device_handle


def close(device_handle) -> None:
    assert device_handle
    _hidapi.hid_close(device_handle)


def _send(function, device_handle, data: bytes) -> int:
    assert device_handle
    assert isinstance(data, bytes) and data, (repr(data), type(data))
    bytes_written = function(device_handle, data, len(data))
    if bytes_written < 0:
        raise _error(device_handle)
    return bytes_written


def write(device_handle: int, data: bytes) -> int:
    """Write an Output report, report number first."""
    return _send(_hidapi.hid_write, device_handle, data)


def send_feature_report(device_handle: int, data: bytes) -> int:
    """Send a Feature report, report number first."""
    return _send(_hidapi.hid_send_feature_report, device_handle, data)


def read(device_handle, bytes_count, timeout_ms=-1):
    """Read an Input report from a HID device.

    :param timeout_ms: -1 waits for data indefinitely, 0 returns at once,
    anything else is how many milliseconds to wait.
    :returns: the report, report number first, or ``b""`` on timeout.
    """
    assert device_handle
    data = ctypes.create_string_buffer(bytes_count)
    bytes_read = _hidapi.hid_read_timeout(device_handle, data, bytes_count, -1 if timeout_ms is None else timeout_ms)
    if bytes_read < 0:
        raise _error(device_handle)
    return data.raw[:bytes_read]


def get_report_descriptor(device_handle) -> bytes:
    """Get the raw report descriptor of an open HID device."""
    assert device_handle
    if not hasattr(_hidapi, "hid_get_report_descriptor"):
        raise HIDError(errno.ENOSYS, f"hidapi {'.'.join(map(str, _version))} cannot read report descriptors")
    data = ctypes.create_string_buffer(_MAX_REPORT_DESCRIPTOR_SIZE)
    size = _hidapi.hid_get_report_descriptor(device_handle, data, _MAX_REPORT_DESCRIPTOR_SIZE)
    if size < 0:
        raise _error(device_handle)
    return data.raw[:size]
