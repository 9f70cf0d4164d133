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

import logging
import threading

from . import exceptions

logger = logging.getLogger(__name__)

# How long to wait during a read for the next packet, in seconds.
# The read is blocking, so this is also how long the thread takes to notice
# it has been told to stop.
_EVENT_READ_TIMEOUT = 0.5


class ReportListener(threading.Thread):
    """Listener thread for the input reports of one open device.

    Reports are handed to the reports callback in the order they arrive.
    A failing read ends the thread after calling the failure callback.
    """

    def __init__(self, low_level, handle, path, reports_callback, failure_callback=None):
        try:
            path_name = path.split("/")[2]
        except (AttributeError, IndexError):
            path_name = path
        super().__init__(name=f"{self.__class__.__name__}:{path_name}")
        self.daemon = True
        self._active = False
        self._low_level = low_level
        self._handle = handle
        self._reports_callback = reports_callback
        self._failure_callback = failure_callback

    def run(self):
        if logger.isEnabledFor(logging.INFO):
            logger.info("started with %s", self._handle)

        while self._active:
            try:
                data = self._low_level.read(self._handle, _EVENT_READ_TIMEOUT)
            except exceptions.TransportError as e:
                if self._active:
                    logger.warning("%s: device disconnected", self.name)
                    self._active = False
                    if self._failure_callback:
                        self._failure_callback(e)
                break
            if data:
                try:
                    self._reports_callback(data)
                except Exception:
                    logger.exception("processing %r", data)

        if logger.isEnabledFor(logging.INFO):
            logger.info("stopped")

    def start(self):
        # active from the moment it is started, so a stop() right after start() sticks
        self._active = True
        super().start()

    def stop(self):
        """Tells the listener to stop as soon as possible."""
        self._active = False

    def __bool__(self):
        return bool(self._active)
