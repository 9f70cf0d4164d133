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

"""Generic Human Interface Device API.

A pure-Python implementation of the parts of the native HID API that HID++
needs, on top of Linux hidraw nodes. Requires ``pyudev``.
The docstrings are mostly copied from the hidapi API header, with changes where
necessary.
"""

from __future__ import annotations

import errno
import fcntl
import logging
import os
import typing

from select import select
from time import sleep
from typing import Callable

import pyudev

from hidapi.common import DeviceInfo
from hidapi.common import application_usages
from hidapi.common import parse_report_descriptor

logger = logging.getLogger(__name__)

fileopen = open

ACTION_ADD = "add"
ACTION_REMOVE = "remove"

# hidraw ioctl numbers, see linux/hidraw.h
_IOC_WRITE = 1
_IOC_READ = 2


def _ioc(direction: int, nr: int, size: int) -> int:
    return (direction << 30) | (size << 16) | (ord("H") << 8) | nr


def _hidiocsfeature(size: int) -> int:
    return _ioc(_IOC_WRITE | _IOC_READ, 0x06, size)


def _read_report_descriptor(hid_device) -> bytes:
    devfile = "/sys" + hid_device.properties.get("DEVPATH") + "/report_descriptor"
    with fileopen(devfile, "rb") as fd:
        return fd.read()


def _match(action: str, device, filter_func: typing.Callable[[int, int, int, list], bool]) -> DeviceInfo | None:
    """The filter_func decides whether this is a device of interest.
    It is given the bus id, vendor id, product id and the usages of the
    application collections declared by the report descriptor."""
    logger.debug(f"udev event {action} {device}")
    hid_device = device.find_parent("hid")
    if hid_device is None:  # only HID devices are of interest
        return None
    hid_id = hid_device.properties.get("HID_ID")
    if not hid_id:
        return None  # there are reports that sometimes the id isn't set up right
    bid, vid, pid = hid_id.split(":")
    if hid_device.find_parent("hid") is not None:
        return None  # these are devices connected through a receiver

    bus_id, vendor_id, product_id = int(bid, 16), int(vid, 16), int(pid, 16)
    try:
        rdesc = _read_report_descriptor(hid_device)
        usages = application_usages(rdesc)
    except Exception as e:
        logger.info("Report Descriptor not processed for DEVICE %s BID %s VID %s PID %s: %s", device.device_node, bid, vid, pid, e)
        return None

    if not filter_func(bus_id, vendor_id, product_id, usages):
        return None

    max_input = max_output = 0
    try:
        report_info = parse_report_descriptor(rdesc)
        max_input, max_output = report_info.max_input_report_size, report_info.max_output_report_size
    except Exception as e:
        logger.info("report sizes unknown for %s: %s", device.device_node, e)

    intf_device = device.find_parent("usb", "usb_interface")
    usb_device = device.find_parent("usb", "usb_device")
    attrs = usb_device.attributes if usb_device is not None else None
    unique = hid_device.properties.get("HID_UNIQ")
    phys = hid_device.properties.get("HID_PHYS")
    product = attrs.get("product") if attrs else None
    manufacturer = attrs.get("manufacturer") if attrs else None
    logger.info(
        "Found device %s BID %s VID %s PID %s usages %s USB %s",
        device.device_node,
        bid,
        vid,
        pid,
        usages,
        intf_device.attributes.asint("bInterfaceNumber") if intf_device is not None else None,
    )
    return DeviceInfo(
        path=device.device_node,
        device_id=f"{bus_id:04X}:{vendor_id:04X}:{product_id:04X}:{unique or phys or device.device_node}",
        bus_id=bus_id,
        vendor_id=vendor_id,
        product_id=product_id,
        manufacturer=manufacturer.decode() if isinstance(manufacturer, bytes) else manufacturer,
        product=(product.decode() if isinstance(product, bytes) else product) or hid_device.properties.get("HID_NAME"),
        serial=unique or None,
        usage_page=usages[0][0] if usages else None,
        usage=usages[0][1] if usages else None,
        max_input_report_size=max_input,
        max_output_report_size=max_output,
    )


def monitor(callback: Callable[[str, str], None]):
    """Watch hidraw nodes coming and going.

    :param callback: called on the monitor thread with the action and the
    device node of every hidraw add or remove event.
    :returns: the started observer; ``stop()`` it when done.
    """
    context = pyudev.Context()
    m = pyudev.Monitor.from_netlink(context)
    m.filter_by(subsystem="hidraw")

    def _process_udev_event(device):
        if device.action in (ACTION_ADD, ACTION_REMOVE):
            callback(device.action, device.device_node)

    observer = pyudev.MonitorObserver(m, callback=_process_udev_event, name="hidraw-monitor")
    observer.daemon = True
    logger.debug("Starting udev monitoring")
    observer.start()
    return observer


def enumerate(filter_func: typing.Callable[[int, int, int, list], bool]):
    """Enumerate the HID Devices.

    List all the hidraw devices attached to the system that pass filter_func.

    :returns: a list of matching ``DeviceInfo`` tuples.
    """
    logger.debug("Starting udev enumeration")
    for dev in pyudev.Context().list_devices(subsystem="hidraw"):
        dev_info = _match(ACTION_ADD, dev, filter_func)
        if dev_info:
            yield dev_info


def open_path(device_path):
    """Open a HID device by its path name, exclusively.

    :param device_path: the path of a ``DeviceInfo`` tuple returned by enumerate().

    :returns: an opaque device handle.
    :raises OSError: ``EACCES`` without permission, ``EBUSY`` if another
    process holds the device.
    """
    assert device_path
    assert device_path.startswith("/dev/hidraw")

    logger.info("OPEN PATH %s", device_path)
    retrycount = 0
    while True:
        retrycount += 1
        try:
            handle = os.open(device_path, os.O_RDWR | os.O_SYNC)
            break
        except OSError as e:
            logger.info("OPEN PATH FAILED %s ERROR %s %s", device_path, e.errno, e)
            if e.errno == errno.EACCES and retrycount < 3:
                sleep(0.1)
            else:
                raise
    try:
        fcntl.flock(handle, fcntl.LOCK_EX | fcntl.LOCK_NB)
    except OSError as e:
        os.close(handle)
        if e.errno in (errno.EWOULDBLOCK, errno.EAGAIN):
            raise OSError(errno.EBUSY, f"{device_path} is in use by another process") from e
        raise
    return handle


def close(device_handle) -> None:
    """Close a HID device.

    :param device_handle: a device handle returned by open_path().
    """
    assert device_handle
    os.close(device_handle)


def write(device_handle, data):
    """Write an Output report to a HID device.

    :param device_handle: a device handle returned by open_path().
    :param data: the data bytes to send including the report number as the
    first byte.
    """
    assert device_handle
    assert data
    assert isinstance(data, bytes), (repr(data), type(data))
    retrycount = 0
    bytes_written = 0
    while retrycount < 3:
        try:
            retrycount += 1
            bytes_written = os.write(device_handle, data)
        except OSError as e:
            if e.errno == errno.EPIPE:
                sleep(0.1)
            else:
                raise
        else:
            break
    if bytes_written != len(data):
        raise OSError(errno.EIO, f"written {int(bytes_written)} bytes out of expected {len(data)}")


def send_feature_report(device_handle, data):
    """Send a Feature report to a HID device.

    :param data: the data bytes to send including the report number as the
    first byte.
    """
    assert device_handle
    assert data
    assert isinstance(data, bytes), (repr(data), type(data))
    buffer = bytearray(data)
    fcntl.ioctl(device_handle, _hidiocsfeature(len(buffer)), buffer)


def read(device_handle, bytes_count, timeout_ms=-1):
    """Read an Input report from a HID device.

    :param device_handle: a device handle returned by open_path().
    :param bytes_count: maximum number of bytes to read.
    :param timeout_ms: can be -1 (default) to wait for data indefinitely, 0 to
    read whatever is in the device's input buffer, or a positive integer to
    wait that many milliseconds.

    The first byte will contain the Report number if the device uses numbered
    reports.

    :returns: the data packet read, or an empty bytes string if a timeout was
    reached.
    """
    assert device_handle
    timeout = None if timeout_ms < 0 else timeout_ms / 1000.0
    rlist, wlist, xlist = select([device_handle], [], [device_handle], timeout)

    if xlist:
        assert xlist == [device_handle]
        raise OSError(errno.EIO, f"exception on file descriptor {int(device_handle)}")

    if rlist:
        assert rlist == [device_handle]
        data = os.read(device_handle, bytes_count)
        assert data is not None
        assert isinstance(data, bytes), (repr(data), type(data))
        return data
    else:
        return b""


def get_report_descriptor(device_handle) -> bytes:
    """Get the raw report descriptor of an open HID device."""
    assert device_handle
    stat = os.fstat(device_handle)
    try:
        dev = pyudev.Devices.from_device_number(pyudev.Context(), "char", stat.st_rdev)
    except (pyudev.DeviceNotFoundError, ValueError) as e:
        raise OSError(errno.ENODEV, f"no udev device for handle {device_handle}") from e
    hid_dev = dev.find_parent("hid")
    if hid_dev is None:
        raise OSError(errno.ENODEV, f"handle {device_handle} is not a HID device")
    return _read_report_descriptor(hid_dev)
