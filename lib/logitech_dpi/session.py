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

from __future__ import annotations

import dataclasses
import logging
import struct
import threading
import typing

from enum import Enum
from typing import Protocol

from . import base
from . import exceptions
from .base import FALLBACK_DEVNUMBER
from .base import HIDPP_LONG_MESSAGE_ID
from .base import HIDPP_SHORT_MESSAGE_ID
from .base import PRIMARY_DEVNUMBER
from .base import SHORT_PARAMS_SIZE
from .base import ReportKind
from .correlator import PendingRequest
from .correlator import RequestCorrelator
from .listener import ReportListener

if typing.TYPE_CHECKING:
    from hidapi.common import DeviceInfo
    from hidapi.common import ReportInfo

logger = logging.getLogger(__name__)

# software ids 0 and 1 are left to other applications
_FIRST_SW_ID = 0x2
_LAST_SW_ID = 0xF

MAX_IN_FLIGHT = _LAST_SW_ID - _FIRST_SW_ID + 1


class LowLevelInterface(Protocol):
    def open_path(self, path) -> int:
        ...

    def close(self, handle) -> bool:
        ...

    def write(self, handle, data: bytes, kind: ReportKind):
        ...

    def read(self, handle, timeout) -> bytes | None:
        ...

    def get_report_info(self, handle) -> ReportInfo:
        ...


class SessionState(Enum):
    CLOSED = "closed"
    OPENING = "opening"
    OPEN = "open"


@dataclasses.dataclass(frozen=True)
class Capabilities:
    """Which report ids the device accepts as output reports and as feature reports."""

    output_ids: frozenset = frozenset()
    feature_ids: frozenset = frozenset()

    def supports(self, report_id: int, kind: ReportKind) -> bool:
        if kind == ReportKind.FEATURE:
            return report_id in self.feature_ids
        return report_id in self.output_ids


# used when the report descriptor cannot be read or parsed
_ASSUMED_CAPABILITIES = Capabilities(output_ids=frozenset((HIDPP_SHORT_MESSAGE_ID, HIDPP_LONG_MESSAGE_ID)))


class Session:
    """A conversation with one HID++ 2.0 device, from open to close.

    Requests may be issued from any number of threads; replies are read by a
    single listener thread started on open and matched to their request by
    the full request id, software id included.
    """

    def __init__(self, device_info: DeviceInfo, low_level: LowLevelInterface = base):
        self.device_info = device_info
        self.low_level = low_level
        self.state = SessionState.CLOSED
        self.handle = None
        self.capabilities = None
        self._lock = threading.RLock()
        self._correlator = RequestCorrelator()
        self._listener = None
        self._in_flight = threading.BoundedSemaphore(MAX_IN_FLIGHT)
        self._sw_id_lock = threading.Lock()
        self._sw_id = _LAST_SW_ID

    @property
    def path(self):
        return self.device_info.path

    def open(self):
        """Open the device exclusively and probe what reports it accepts.

        Does nothing for a session that is already open.

        :raises PermissionDenied: the user may not access the device.
        :raises ExclusiveAccessDenied: another process holds the device.
        :raises TransportError: opening failed for another reason.
        """
        with self._lock:
            if self.state == SessionState.OPEN:
                return
            self.state = SessionState.OPENING
            try:
                handle = self.low_level.open_path(self.path)
            except Exception:
                self.state = SessionState.CLOSED
                raise
            self.handle = handle
            with self._sw_id_lock:
                self._sw_id = _LAST_SW_ID
            self._listener = ReportListener(
                self.low_level, handle, self.path, self._correlator.dispatch, self._listener_failed
            )
            self._listener.start()
            self.capabilities = self._probe(handle)
            self.state = SessionState.OPEN
            if logger.isEnabledFor(logging.INFO):
                logger.info("%s: opened %s, %s", self, handle, self.capabilities)

    def _probe(self, handle) -> Capabilities:
        try:
            info = self.low_level.get_report_info(handle)
        except Exception as e:
            logger.warning("%s: cannot read report descriptor (%s), assuming output reports", self, e)
            return _ASSUMED_CAPABILITIES
        return Capabilities(output_ids=frozenset(info.output_ids), feature_ids=frozenset(info.feature_ids))

    def close(self):
        """Stop listening, release the device and cancel all pending requests.

        Safe to call on a closed session, and from the listener thread itself.
        """
        with self._lock:
            if self.state == SessionState.CLOSED:
                return
            listener, self._listener = self._listener, None
            handle, self.handle = self.handle, None
            self.state = SessionState.CLOSED
        if listener:
            listener.stop()
            if listener is not threading.current_thread():
                listener.join()
        self.low_level.close(handle)
        self._correlator.cancel_all()
        if logger.isEnabledFor(logging.INFO):
            logger.info("%s: closed", self)

    def _listener_failed(self, reason):
        logger.warning("%s: lost the device: %s", self, reason)
        self.close()

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, *args):
        self.close()

    def _next_sw_id(self) -> int:
        """Cycle the software id from 0x2 to 0xF."""
        with self._sw_id_lock:
            if self._sw_id < _LAST_SW_ID:
                self._sw_id += 1
            else:
                self._sw_id = _FIRST_SW_ID
            return self._sw_id

    def _register(self, request_id: int) -> PendingRequest:
        # ids still pending for the same request are skipped; the in-flight
        # bound guarantees one of them is free
        for _ in range(MAX_IN_FLIGHT):
            full_id = (request_id & 0xFFF0) | self._next_sw_id()
            slot = PendingRequest(full_id)
            if self._correlator.register(full_id, slot):
                return slot
        raise RuntimeError(f"no free software id for request {request_id:04X}")

    def _attempts(self, request_id: int, params: bytes):
        caps = self.capabilities
        devnumbers = (PRIMARY_DEVNUMBER, FALLBACK_DEVNUMBER)
        attempts = []
        if len(params) <= SHORT_PARAMS_SIZE:
            for kind in (ReportKind.OUTPUT, ReportKind.FEATURE):
                if caps.supports(HIDPP_SHORT_MESSAGE_ID, kind):
                    attempts.extend((kind, devnumber, False) for devnumber in devnumbers)
        if not attempts:
            for kind in (ReportKind.OUTPUT, ReportKind.FEATURE):
                if caps.supports(HIDPP_LONG_MESSAGE_ID, kind):
                    attempts.extend((kind, devnumber, True) for devnumber in devnumbers)
                    break
        if not attempts:
            raise exceptions.Unsupported(request=request_id, capabilities=caps)
        return attempts

    def request(self, request_id: int, *params, timeout: float = base.DEFAULT_TIMEOUT) -> bytes:
        """Makes a feature call to the device and waits for a matching reply.

        The short message is tried first, as an output report and then as a
        feature report, each with the primary and then the fallback device
        number. The long message is used only if the parameters do not fit the
        short one or the device declares no short report at all.

        :param request_id: a 16-bit integer, the software id nibble is filled in.
        :param params: up to 16 parameter bytes, as ints or bytes.
        :returns: the reply data, after the echoed request id.
        :raises Unsupported: the device declares no report able to carry it.
        :raises FeatureCallError: the device replied with an error.
        :raises RequestTimeout: no attempt got a reply in time.
        :raises TransportError: the last attempt could not be sent.
        :raises RequestCancelled: the session was closed while waiting.
        """
        assert isinstance(request_id, int)
        if params:
            params = b"".join(struct.pack("B", p) if isinstance(p, int) else bytes(p) for p in params)
        else:
            params = b""
        assert len(params) <= base.LONG_PARAMS_SIZE, f"too many parameters for {request_id:04X}"

        if self.state != SessionState.OPEN:
            raise exceptions.RequestCancelled(request=request_id, reason="session is not open")

        last_error = None
        for kind, devnumber, long_message in self._attempts(request_id, params):
            try:
                return self._transmit(request_id, params, kind, devnumber, long_message, timeout)
            except (exceptions.RequestTimeout, exceptions.TransportError) as e:
                if logger.isEnabledFor(logging.DEBUG):
                    logger.debug(
                        "%s: request %04X as %s %s/%02X failed: %s",
                        self,
                        request_id,
                        "long" if long_message else "short",
                        kind.name.lower(),
                        devnumber,
                        e,
                    )
                last_error = e
        raise last_error

    def _transmit(self, request_id, params, kind, devnumber, long_message, timeout) -> bytes:
        with self._in_flight:
            slot = self._register(request_id)
            data = base.pack_request(devnumber, slot.request_id, params, long_message)
            try:
                self.low_level.write(self.handle, data, kind)
            except exceptions.TransportError as e:
                self._correlator.resolve_transmit_failure(slot.request_id, e.code, e.reason)
            if not slot.wait(timeout):
                self._correlator.resolve_timeout(slot.request_id)
                # a reply may have won the race, either way the slot is resolved now
                slot.wait(timeout)
            return slot.result(timeout)

    def feature_request(self, feature_index: int, function: int = 0x00, *params, timeout: float = base.DEFAULT_TIMEOUT):
        assert 0 <= feature_index <= 0xFF
        request_id = (feature_index << 8) + (function & 0xF0)
        return self.request(request_id, *params, timeout=timeout)

    def __str__(self):
        return f"<Session({self.device_info.display_name},{self.path})>"

    __repr__ = __str__
