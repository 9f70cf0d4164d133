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

"""Matching of asynchronous replies to the requests waiting for them."""

from __future__ import annotations

import logging
import threading

from enum import Enum

from . import base
from . import exceptions
from .hidpp20_constants import ErrorCode

logger = logging.getLogger(__name__)


class Outcome(Enum):
    SUCCESS = "success"
    DEVICE_ERROR = "device error"
    TRANSMIT_FAILURE = "transmit failure"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"


class PendingRequest:
    """The slot one request waits on until it is resolved, exactly once."""

    __slots__ = ("request_id", "outcome", "data", "code", "_done")

    def __init__(self, request_id: int):
        self.request_id = request_id
        self.outcome = None
        self.data = None
        self.code = None
        self._done = threading.Event()

    def _resolve(self, outcome: Outcome, data: bytes = None, code=None):
        self.outcome = outcome
        self.data = data
        self.code = code
        self._done.set()

    def wait(self, timeout: float) -> bool:
        return self._done.wait(timeout)

    def result(self, timeout: float = None) -> bytes:
        """The reply data of a successful request, or the matching exception."""
        assert self.outcome is not None
        if self.outcome == Outcome.SUCCESS:
            return self.data
        if self.outcome == Outcome.DEVICE_ERROR:
            try:
                error = ErrorCode(self.code)
            except ValueError:
                error = self.code
            raise exceptions.FeatureCallError(request=self.request_id, error=error)
        if self.outcome == Outcome.TRANSMIT_FAILURE:
            raise exceptions.TransportError(request=self.request_id, code=self.code, reason=self.data)
        if self.outcome == Outcome.TIMEOUT:
            raise exceptions.RequestTimeout(request=self.request_id, timeout=timeout)
        raise exceptions.RequestCancelled(request=self.request_id)

    def __repr__(self):
        return f"<PendingRequest({self.request_id:04X}, {self.outcome})>"


class RequestCorrelator:
    """The table of requests waiting for a reply, one session's worth.

    Every resolution removes the entry it resolves; resolving an identifier
    with no entry does nothing, so late and duplicate replies are dropped.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._pending = {}

    def register(self, request_id: int, slot: PendingRequest) -> bool:
        """Add a waiter; refused if one is already waiting on the same identifier."""
        with self._lock:
            if request_id in self._pending:
                return False
            self._pending[request_id] = slot
            return True

    def is_pending(self, request_id: int) -> bool:
        with self._lock:
            return request_id in self._pending

    def _take(self, request_id: int) -> PendingRequest | None:
        with self._lock:
            return self._pending.pop(request_id, None)

    def resolve_success(self, request_id: int, data: bytes) -> bool:
        slot = self._take(request_id)
        if slot is not None:
            slot._resolve(Outcome.SUCCESS, data)
        return slot is not None

    def resolve_device_error(self, request_id: int, code: int) -> bool:
        slot = self._take(request_id)
        if slot is not None:
            slot._resolve(Outcome.DEVICE_ERROR, code=code)
        return slot is not None

    def resolve_transmit_failure(self, request_id: int, code, reason=None) -> bool:
        slot = self._take(request_id)
        if slot is not None:
            slot._resolve(Outcome.TRANSMIT_FAILURE, reason, code)
        return slot is not None

    def resolve_timeout(self, request_id: int) -> bool:
        slot = self._take(request_id)
        if slot is not None:
            slot._resolve(Outcome.TIMEOUT)
        return slot is not None

    def cancel_all(self):
        with self._lock:
            pending, self._pending = self._pending, {}
        for slot in pending.values():
            slot._resolve(Outcome.CANCELLED)
        if pending:
            logger.info("cancelled %d pending requests", len(pending))

    def dispatch(self, data: bytes) -> bool:
        """Resolve whatever request a received report answers.

        :returns: whether the report resolved a pending request.
        """
        reply = base.parse_reply(data)
        if reply is None:
            return False
        if reply.error is not None:
            resolved = self.resolve_device_error(reply.request_id, reply.error)
        else:
            resolved = self.resolve_success(reply.request_id, reply.data)
        if not resolved and logger.isEnabledFor(logging.DEBUG):
            logger.debug("dropping unmatched %s", reply)
        return resolved

    def __len__(self):
        with self._lock:
            return len(self._pending)
