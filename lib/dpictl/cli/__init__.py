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

import argparse
import logging
import sys

from contextlib import contextmanager
from importlib import import_module
from queue import Empty
from queue import Queue

from logitech_dpi import exceptions
from logitech_dpi.registry import DeviceRegistry
from logitech_dpi.worker import DeviceWorker

from dpictl import NAME
from dpictl import configuration

logger = logging.getLogger(__name__)

# how long to wait for the worker to open a device and read its settings
_WORKER_TIMEOUT = 30

_DEVICE_HELP = (
    "device to use; may be a number from the device list, a device id, or a substring of a device's name. "
    "Defaults to the last used device"
)


def _create_parser():
    parser = argparse.ArgumentParser(
        prog=NAME, add_help=False, epilog=f"For details on individual actions, run `{NAME} <action> --help`."
    )
    subparsers = parser.add_subparsers(title="actions", help="action to perform")

    sp = subparsers.add_parser("list", help="list the Logitech pointing devices found")
    sp.set_defaults(action="list", module="devices")

    sp = subparsers.add_parser("show", help="show the DPI settings of a device")
    sp.add_argument("device", nargs="?", help=_DEVICE_HELP)
    sp.set_defaults(action="show", module="show")

    sp = subparsers.add_parser("set", help="set the DPI of a device")
    sp.add_argument("dpi", type=int, help="new pointer resolution, one of the values listed by `show`")
    sp.add_argument("device", nargs="?", help=_DEVICE_HELP)
    sp.add_argument("--force", action="store_true", help="write the value even if the device does not list it")
    sp.set_defaults(action="set", module="set_dpi")

    sp = subparsers.add_parser("watch", help="print the device list every time a device comes or goes")
    sp.set_defaults(action="watch", module="watch")

    return parser, subparsers.choices


_cli_parser, actions = _create_parser()
print_help = _cli_parser.print_help


def _devices(registry, hidraw_path=None):
    devices = registry.snapshot()
    if hidraw_path is not None:
        devices = [d for d in devices if d.path == hidraw_path]
    return devices


def _find_device(devices, name):
    """Pick a device by list number, device id or name substring.

    Without a name, the last selected device if still present, else the first one.
    """
    if not devices:
        return None
    if not name:
        selected = configuration.selected_device()
        for dev in devices:
            if dev.device_id == selected:
                return dev
        return devices[0]

    for dev in devices:
        if dev.device_id == name:
            return dev
    if name.isdigit():
        # a number only ever means a position in the list
        number = int(name)
        return devices[number - 1] if 0 < number <= len(devices) else None
    name = name.casefold()
    for dev in devices:
        if name in dev.display_name.casefold():
            return dev


def error_message(e: exceptions.HIDPPError) -> str:
    """Describe an error for people rather than for logs."""
    if isinstance(e, exceptions.PermissionDenied):
        return "permission required, install the udev rule or run with access to the device"
    if isinstance(e, exceptions.ExclusiveAccessDenied):
        return "device is in use by another application"
    if isinstance(e, exceptions.TransportError):
        if e.path is not None:
            return f"failed to open device ({e.code})"
        return f"device communication failed ({e.code})"
    if isinstance(e, exceptions.Unsupported):
        return "device does not accept HID++ messages"
    if isinstance(e, exceptions.RequestTimeout):
        return "device did not reply"
    if isinstance(e, exceptions.FeatureCallError):
        error = e.error
        return f"device replied with error {getattr(error, 'name', error)}"
    if isinstance(e, exceptions.FeatureNotSupported):
        return f"{e.device or 'device'} has no adjustable {e.feature or 'DPI'}"
    if isinstance(e, exceptions.EmptyDpiList):
        return "device returned no DPI list"
    if isinstance(e, exceptions.RequestCancelled):
        return "device went away"
    return str(e)


def wait_for(function, *args):
    results = Queue(1)
    function(*args, results.put)
    try:
        return results.get(timeout=_WORKER_TIMEOUT)
    except Empty:
        raise exceptions.RequestTimeout(request=None, timeout=_WORKER_TIMEOUT) from None


@contextmanager
def active_device(device_info, low_level=None):
    """Select a device on a fresh worker, yield the worker and the selection."""
    worker = DeviceWorker() if low_level is None else DeviceWorker(low_level)
    worker.start()
    try:
        selection = wait_for(worker.select, device_info)
        if selection.error is not None:
            raise selection.error
        configuration.select_device(device_info.device_id)
        yield worker, selection
    finally:
        worker.stop()
        worker.join()


def run(cli_args=None, hidraw_path=None):
    args = _cli_parser.parse_args(cli_args)
    if "action" not in args:
        _cli_parser.print_usage(sys.stderr)
        sys.stderr.write(f"{NAME}: error: too few arguments\n")
        sys.exit(2)
    assert args.action in actions

    try:
        registry = DeviceRegistry()
        m = import_module("." + args.module, package=__name__)
        return m.run(registry, args, lambda: _devices(registry, hidraw_path), _find_device)
    except exceptions.HIDPPError as e:
        logger.debug("%s failed", args.action, exc_info=True)
        sys.exit(f"{NAME}: error: {error_message(e)}")
    except AssertionError:
        from traceback import extract_tb

        tb_last = extract_tb(sys.exc_info()[2])[-1]
        sys.exit(f"{NAME}: assertion failed: {tb_last[0]} line {tb_last[1]}")
    except Exception:
        from traceback import format_exc

        sys.exit(f"{NAME}: error: {format_exc()}")
