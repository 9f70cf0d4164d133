## Copyright (C) 2014-2024  Solaar Contributors https://pwr-solaar.github.io/Solaar/
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

from __future__ import annotations

import logging
import threading
import typing

from typing import Callable
from typing import Protocol

from . import base

if typing.TYPE_CHECKING:
    from hidapi.common import DeviceInfo

logger = logging.getLogger(__name__)


class DiscoveryInterface(Protocol):
    def devices(self) -> typing.Iterator[DeviceInfo]:
        ...

    def monitor(self, callback: Callable[[str, str], None]):
        ...


class DeviceRegistry:
    """The Logitech pointing devices currently attached, kept up to date.

    Every change delivers the whole new device list to the callbacks, so
    listeners never have to merge individual arrivals and removals.
    """

    def __init__(self, low_level: DiscoveryInterface = base):
        self.low_level = low_level
        self._callbacks = []
        self._monitor = None
        self._lock = threading.Lock()

    def snapshot(self) -> list[DeviceInfo]:
        """The matching devices, sorted by name, each device only once."""
        try:
            found = list(self.low_level.devices())
        except Exception:
            logger.exception("device enumeration failed")
            found = []
        unique = {}
        for device_info in found:
            unique.setdefault(device_info.device_id, device_info)
        # sorted() is stable, equal names stay in enumeration order
        return sorted(unique.values(), key=lambda d: d.display_name.casefold())

    def on_change(self, callback: Callable[[list], None]):
        with self._lock:
            self._callbacks.append(callback)

    def refresh(self) -> list[DeviceInfo]:
        """Take a fresh snapshot and hand it to every callback."""
        devices = self.snapshot()
        if logger.isEnabledFor(logging.INFO):
            logger.info("%d device(s) present: %s", len(devices), [d.display_name for d in devices])
        with self._lock:
            callbacks = list(self._callbacks)
        for callback in callbacks:
            try:
                callback(devices)
            except Exception:
                logger.exception("device list callback %s", callback)
        return devices

    def start(self):
        """Start watching for devices; the callbacks get the current list right away."""
        with self._lock:
            if self._monitor is not None:
                return
            self._monitor = self.low_level.monitor(self._device_event)
        logger.info("started device monitoring")
        self.refresh()

    def stop(self):
        with self._lock:
            device_monitor, self._monitor = self._monitor, None
        if device_monitor is not None:
            device_monitor.stop()
            logger.info("stopped device monitoring")

    def _device_event(self, action, path):
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("device %s: %s", action, path)
        self.refresh()
