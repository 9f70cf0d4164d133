## Copyright (C) 2012-2013  Daniel Pavel
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

"""A single thread that owns the active device session.

Opening, closing and DPI changes all run on it in the order they were asked
for. Asking for a new selection supersedes whatever selection or commit is
still queued or running: superseded work closes what it opened and never
calls back.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
import typing

from queue import Queue
from typing import Callable

from . import base
from . import exceptions
from . import hidpp20
from .session import Session

if typing.TYPE_CHECKING:
    from hidapi.common import DeviceInfo

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class Selection:
    """What selecting a device found. No feature and no error means the device has no DPI control."""

    device: DeviceInfo
    feature: hidpp20.DpiFeature | None = None
    dpi_list: list = dataclasses.field(default_factory=list)
    current: int | None = None
    error: Exception | None = None
    dpi_list_y: list = dataclasses.field(default_factory=list)


@dataclasses.dataclass
class Commit:
    success: bool
    current: int | None = None
    error: Exception | None = None


class DeviceWorker(threading.Thread):
    def __init__(self, low_level=base, name="DeviceWorker"):
        super().__init__(name=name)
        self.daemon = True
        self.queue = Queue(16)
        self.alive = False
        self.low_level = low_level
        self.session = None
        self.feature = None
        self._lock = threading.Lock()
        self._selection = 0
        self._commit = 0

    def __call__(self, function, *args, **kwargs):
        task = (function, args, kwargs)
        self.queue.put(task)

    def _supersede(self, commit_only=False):
        with self._lock:
            if not commit_only:
                self._selection += 1
            self._commit += 1
            return self._selection, self._commit

    def _superseded(self, selection, commit=None):
        with self._lock:
            return selection != self._selection or (commit is not None and commit != self._commit)

    def select(self, device_info: DeviceInfo, callback: Callable[[Selection], None]):
        """Make a device the active one: open it and read its DPI settings."""
        selection, _commit = self._supersede()
        self(self._select, selection, device_info, callback)

    def commit(self, dpi: int, callback: Callable[[Commit], None]):
        """Set the DPI of the active device, then read it back."""
        selection, commit = self._supersede(commit_only=True)
        self(self._commit_dpi, selection, commit, dpi, callback)

    def release(self):
        """Close the active device, abandoning any queued selection or commit."""
        self._supersede()
        self(self._close_active)

    def stop(self):
        self.release()
        self.alive = False
        self.queue.put(None)

    def run(self):
        self.alive = True

        logger.debug("started")

        while self.alive:
            task = self.queue.get()
            if task:
                function, args, kwargs = task
                assert function
                try:
                    function(*args, **kwargs)
                except Exception:
                    logger.exception("calling %s", function)

        self._close_active()
        logger.debug("stopped")

    def _close_active(self):
        session, self.session, self.feature = self.session, None, None
        if session is not None:
            session.close()

    def _select(self, selection, device_info, callback):
        if self._superseded(selection):
            return
        self._close_active()
        if self._superseded(selection):
            return

        session = Session(device_info, self.low_level)
        try:
            session.open()
        except exceptions.HIDPPError as e:
            logger.warning("failed to open %s: %s", device_info.display_name, e)
            if not self._superseded(selection):
                callback(Selection(device_info, error=e))
            return

        keep_open = False
        try:
            feature = hidpp20.detect_dpi_feature(session)
            if feature is None:
                result = Selection(device_info)
            else:
                if self._superseded(selection):
                    return
                dpi_list = hidpp20.fetch_dpi_list(session, feature)
                current = hidpp20.read_dpi(session, feature)
                result = Selection(device_info, feature, dpi_list, current)
                if feature.has_y:
                    result.dpi_list_y = self._fetch_y_list(session, feature)
                keep_open = True
        except exceptions.HIDPPError as e:
            logger.warning("failed to read DPI settings of %s: %s", device_info.display_name, e)
            result = Selection(device_info, error=e)
        finally:
            if not keep_open or self._superseded(selection):
                keep_open = False
                session.close()

        if keep_open:
            self.session, self.feature = session, result.feature
        if not self._superseded(selection):
            callback(result)

    def _fetch_y_list(self, session, feature):
        # only ever shown, so a failure here does not fail the selection
        try:
            return hidpp20.fetch_dpi_list(session, feature, direction=1)
        except exceptions.HIDPPError as e:
            logger.warning("%s: failed to read the Y axis DPI list: %s", session, e)
            return []

    def _commit_dpi(self, selection, commit, dpi, callback):
        if self._superseded(selection, commit):
            return
        if self.session is None:
            callback(Commit(False, error=exceptions.RequestCancelled(reason="no active device")))
            return

        try:
            success = hidpp20.set_dpi(self.session, self.feature, dpi)
        except exceptions.HIDPPError as e:
            logger.warning("failed to set DPI %d: %s", dpi, e)
            result = Commit(False, error=e)
        else:
            result = self._read_back(dpi) if success else Commit(False)

        if not self._superseded(selection, commit):
            callback(result)

    def _read_back(self, dpi):
        # the write stands even when reading it back fails
        try:
            return Commit(True, hidpp20.read_dpi(self.session, self.feature))
        except exceptions.HIDPPError as e:
            logger.warning("DPI set to %d but reading it back failed: %s", dpi, e)
            return Commit(True, error=e)
