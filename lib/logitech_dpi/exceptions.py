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

from .common import KwException

"""Exceptions that may be raised by this API.

None of them is fatal: every one describes a condition the caller can report
and retry from (re-open, re-probe, re-send).
"""


class HIDPPError(KwException):
    """Base class for all errors raised by this package."""

    pass


class PermissionDenied(HIDPPError):
    """Raised when opening a device the current user may not access."""

    pass


class ExclusiveAccessDenied(HIDPPError):
    """Raised when opening a device that another process holds exclusively."""

    pass


class TransportError(HIDPPError):
    """Raised when the platform HID layer fails to open, write or read.
    ``code`` is the platform error number when there is one."""

    pass


class Unsupported(HIDPPError):
    """Raised when no report kind and size the device declares can carry a request."""

    pass


class RequestTimeout(HIDPPError):
    """Raised when no reply to a request arrived in time."""

    pass


class FeatureCallError(HIDPPError):
    """Raised if the device replied to a feature call with an error."""

    pass


class FeatureNotSupported(HIDPPError):
    """Raised when trying to request a feature not supported by the device."""

    pass


class EmptyDpiList(HIDPPError):
    """Raised when a device's DPI list decodes to no values at all."""

    pass


class RequestCancelled(HIDPPError):
    """Raised for requests still pending when their session is closed."""

    pass
