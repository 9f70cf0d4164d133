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

"""Base low-level functions as API for upper layers."""

from __future__ import annotations

import dataclasses
import errno
import logging
import platform
import struct
import typing

from enum import IntEnum
from typing import Callable

from hidapi.common import ReportInfo
from hidapi.common import parse_report_descriptor

from . import common
from . import exceptions
from .common import LOGITECH_VENDOR_ID
from .common import GenericDesktopUsage
from .common import UsagePage

if typing.TYPE_CHECKING:
    from hidapi.common import DeviceInfo

if platform.system() == "Linux":
    import hidapi.udev_impl as hidapi
else:
    import hidapi.hidapi_impl as hidapi

logger = logging.getLogger(__name__)


class HIDProtocol(typing.Protocol):
    def enumerate(self, filter_func: Callable[[int, int, int, list], bool]) -> typing.Iterator[DeviceInfo]:
        ...

    def monitor(self, callback: Callable[[str, str], None]):
        ...

    def open_path(self, path) -> int:
        ...

    def read(self, device_handle, bytes_count, timeout_ms):
        ...

    def write(self, device_handle: int, data: bytes) -> int:
        ...

    def send_feature_report(self, device_handle: int, data: bytes) -> int:
        ...

    def get_report_descriptor(self, device_handle) -> bytes:
        ...

    def close(self, device_handle) -> None:
        ...


SHORT_MESSAGE_SIZE = 7
LONG_MESSAGE_SIZE = 20
_MAX_READ_SIZE = 64

HIDPP_SHORT_MESSAGE_ID = 0x10
HIDPP_LONG_MESSAGE_ID = 0x11

# how many parameter bytes each message size carries after the 2 byte header
SHORT_PARAMS_SIZE = SHORT_MESSAGE_SIZE - 4
LONG_PARAMS_SIZE = LONG_MESSAGE_SIZE - 4

# devices are addressed as 0x00; some Bluetooth devices only answer to 0xFF
PRIMARY_DEVNUMBER = 0x00
FALLBACK_DEVNUMBER = 0xFF

"""Default timeout waiting for a reply (in seconds)."""
DEFAULT_TIMEOUT = 1.5

_ERROR_MARKER = 0xFF

hidapi = typing.cast(HIDProtocol, hidapi)


class ReportKind(IntEnum):
    OUTPUT = 0x02
    FEATURE = 0x03


@dataclasses.dataclass
class HIDPPReply:
    """A request reply read from a device, error replies included."""

    report_id: int
    devnumber: int
    request_id: int
    data: bytes
    error: int | None = None

    def __str__(self):
        if self.error is not None:
            return f"Error({self.report_id:02X},{self.devnumber:02X},{self.request_id:04X},{self.error:02X})"
        return f"Reply({self.report_id:02X},{self.devnumber:02X},{self.request_id:04X},{common.strhex(self.data)})"


def filter_pointing_devices(bus_id: int, vendor_id: int, product_id: int, usages: list) -> bool:
    """Check that this is a Logitech mouse or pointer."""
    if vendor_id != LOGITECH_VENDOR_ID:
        return False
    return any(
        page == UsagePage.GENERIC_DESKTOP and usage in (GenericDesktopUsage.MOUSE, GenericDesktopUsage.POINTER)
        for page, usage in usages
    )


def devices():
    """Enumerate all the Logitech pointing devices attached to the machine."""
    yield from hidapi.enumerate(filter_pointing_devices)


def monitor(callback: Callable[[str, str], None]):
    """Call back with (action, path) whenever a HID device comes or goes.

    :returns: a monitor object with a ``stop()`` method.
    """
    return hidapi.monitor(callback)


def open_path(path) -> int:
    """Open a device exclusively.

    :param path: the device path from its ``DeviceInfo``.
    :returns: an open handle.
    :raises PermissionDenied: the user may not access the device.
    :raises ExclusiveAccessDenied: another process holds the device.
    :raises TransportError: any other failure.
    """
    try:
        handle = hidapi.open_path(path)
    except OSError as e:
        if e.errno in (errno.EACCES, errno.EPERM):
            raise exceptions.PermissionDenied(path=path, reason=e) from e
        if e.errno == errno.EBUSY:
            raise exceptions.ExclusiveAccessDenied(path=path, reason=e) from e
        raise exceptions.TransportError(path=path, code=e.errno, reason=e) from e
    except Exception as e:
        raise exceptions.TransportError(path=path, code=None, reason=e) from e
    if not handle:
        raise exceptions.TransportError(path=path, code=None, reason="no handle")
    return handle


def close(handle):
    """Closes a HID device handle."""
    if handle:
        try:
            hidapi.close(handle)
            return True
        except Exception:
            logger.warning("closing handle %r failed", handle, exc_info=True)

    return False


def pack_request(devnumber: int, request_id: int, params: bytes, long_message: bool = False) -> bytes:
    """Build the wire form of a request, padded to the short or long size."""
    assert isinstance(params, bytes), (repr(params), type(params))
    data = struct.pack("!H", request_id) + params
    if long_message:
        assert len(params) <= LONG_PARAMS_SIZE
        return struct.pack("!BB18s", HIDPP_LONG_MESSAGE_ID, devnumber, data)
    assert len(params) <= SHORT_PARAMS_SIZE
    return struct.pack("!BB5s", HIDPP_SHORT_MESSAGE_ID, devnumber, data)


def write(handle, data: bytes, kind: ReportKind = ReportKind.OUTPUT):
    """Send one packed HID++ message as an output or feature report.

    :raises TransportError: if the platform refused the write.
    """
    assert data is not None
    assert isinstance(data, bytes), (repr(data), type(data))

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(
            "(%s) <= w[%02X %02X %s %s] %s",
            handle,
            data[0],
            data[1],
            common.strhex(data[2:4]),
            common.strhex(data[4:]),
            kind.name.lower(),
        )

    try:
        if kind == ReportKind.FEATURE:
            hidapi.send_feature_report(handle, data)
        else:
            hidapi.write(handle, data)
    except OSError as reason:
        raise exceptions.TransportError(code=reason.errno, reason=reason) from reason
    except Exception as reason:
        raise exceptions.TransportError(code=None, reason=reason) from reason


def read(handle, timeout) -> bytes | None:
    """Read one input report.

    :param timeout: how long to wait for a report, in seconds.
    :returns: the report, report id first, or ``None`` on timeout.
    :raises TransportError: if the device is no longer available.
    """
    try:
        # convert timeout to milliseconds, the hidapi expects it
        data = hidapi.read(handle, _MAX_READ_SIZE, int(timeout * 1000))
    except Exception as reason:
        logger.warning("read failed, assuming handle %r no longer available", handle)
        raise exceptions.TransportError(code=getattr(reason, "errno", None), reason=reason) from reason

    if data:
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("(%s) => r[%s]", handle, common.strhex(data))
        return bytes(data)
    return None


def get_report_descriptor(handle) -> bytes:
    try:
        return hidapi.get_report_descriptor(handle)
    except Exception as reason:
        raise exceptions.TransportError(code=getattr(reason, "errno", None), reason=reason) from reason


def get_report_info(handle) -> ReportInfo:
    """Read and classify the report descriptor of an open device.

    :raises TransportError: if the descriptor could not be read.
    :raises: whatever the descriptor parser raises for a malformed descriptor.
    """
    return parse_report_descriptor(get_report_descriptor(handle))


def parse_reply(data: bytes) -> HIDPPReply | None:
    """Make sense of an input report, if it is a HID++ reply.

    Only reports with a HID++ report id are considered. Error replies look like
    ``[devnumber, 0xFF, request_id, error]``, other replies like
    ``[devnumber, request_id, data...]``, both after the report id.

    :returns: the reply, or ``None`` for anything too short or not HID++.
    """
    if len(data) < 2:
        return None
    report_id = data[0]
    if report_id not in (HIDPP_SHORT_MESSAGE_ID, HIDPP_LONG_MESSAGE_ID):
        return None
    data = data[1:]

    if len(data) >= 4 and data[1] == _ERROR_MARKER:
        error = data[4] if len(data) > 4 else 0
        return HIDPPReply(report_id, data[0], common.bytes2int(data[2:4]), b"", error)
    if len(data) >= 3:
        return HIDPPReply(report_id, data[0], common.bytes2int(data[1:3]), data[3:])
    return None
