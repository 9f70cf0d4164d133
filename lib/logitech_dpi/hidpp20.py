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

"""HID++ 2.0 feature lookup and the two DPI features."""

from __future__ import annotations

import dataclasses
import logging
import struct
import typing

from enum import Enum

from . import common
from . import dpi_list
from . import exceptions
from .hidpp20_constants import AdjustableDpiFunction
from .hidpp20_constants import ExtendedDpiFunction
from .hidpp20_constants import SupportedFeature

if typing.TYPE_CHECKING:
    from .session import Session

logger = logging.getLogger(__name__)

_MAX_DPI_PAGES = 0x100


class DpiFeatureKind(Enum):
    ADJUSTABLE = SupportedFeature.ADJUSTABLE_DPI
    EXTENDED = SupportedFeature.EXTENDED_ADJUSTABLE_DPI


@dataclasses.dataclass(frozen=True)
class _Variant:
    list_function: int
    list_prefix_size: int
    get_function: int
    set_function: int
    set_prefix: bytes


_VARIANTS = {
    DpiFeatureKind.ADJUSTABLE: _Variant(
        AdjustableDpiFunction.GET_SENSOR_DPI_LIST,
        1,
        AdjustableDpiFunction.GET_SENSOR_DPI,
        AdjustableDpiFunction.SET_SENSOR_DPI,
        b"\x00",
    ),
    # the extended variant has a direction byte before the value when writing
    DpiFeatureKind.EXTENDED: _Variant(
        ExtendedDpiFunction.GET_SENSOR_DPI_RANGES,
        3,
        ExtendedDpiFunction.GET_SENSOR_DPI,
        ExtendedDpiFunction.SET_SENSOR_DPI,
        b"\x00\x00",
    ),
}


@dataclasses.dataclass(frozen=True)
class DpiFeature:
    """Which DPI feature a device has, at which index.

    ``has_y`` and ``has_lod`` are only ever set for the extended feature.
    """

    kind: DpiFeatureKind
    index: int
    has_y: bool = False
    has_lod: bool = False

    @property
    def feature(self) -> SupportedFeature:
        return self.kind.value

    def __str__(self):
        flags = ""
        if self.kind == DpiFeatureKind.EXTENDED:
            flags = f" y={self.has_y} lod={self.has_lod}"
        return f"{self.feature.name}[{self.index:02X}]{flags}"


def resolve_feature_index(session: Session, feature: int) -> int | None:
    """Ask the root feature for the index of a feature.

    :returns: the index, or ``None`` if the device does not have the feature.
    """
    try:
        reply = session.request(0x0000, struct.pack("!H", feature))
    except exceptions.FeatureCallError as e:
        logger.debug("%s: root lookup of %04X failed: %s", session, feature, e.error)
        return None
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("%s: feature %04X index reply %s", session, feature, common.strhex(reply) if reply else reply)
    if reply and reply[0]:
        return reply[0]
    return None


def detect_dpi_feature(session: Session) -> DpiFeature | None:
    """Find the DPI feature of a device, preferring the extended one.

    :returns: the feature, or ``None`` if the device has no DPI control.
    """
    index = resolve_feature_index(session, SupportedFeature.EXTENDED_ADJUSTABLE_DPI)
    if index:
        flags = 0
        try:
            reply = session.feature_request(index, ExtendedDpiFunction.GET_SENSOR_CAPABILITIES, 0x00)
        except exceptions.HIDPPError as e:
            logger.warning("%s: failed to read extended DPI capabilities: %s", session, e)
            reply = None
        if reply and len(reply) > 2:
            flags = reply[2]
        feature = DpiFeature(DpiFeatureKind.EXTENDED, index, has_y=bool(flags & 0x01), has_lod=bool(flags & 0x02))
    else:
        index = resolve_feature_index(session, SupportedFeature.ADJUSTABLE_DPI)
        feature = DpiFeature(DpiFeatureKind.ADJUSTABLE, index) if index else None
    if logger.isEnabledFor(logging.INFO):
        logger.info("%s: DPI feature %s", session, feature)
    return feature


def collect_dpi_bytes(session: Session, feature: DpiFeature, direction: int = 0) -> bytes:
    """Read the pages of the DPI list until its terminating zero word.

    A failure reading the first page is raised; a failure on a later page
    ends the list at what was read so far.
    """
    variant = _VARIANTS[feature.kind]
    dpi_bytes = b""
    for page in range(_MAX_DPI_PAGES):  # there will be only a very few iterations performed
        try:
            reply = session.feature_request(feature.index, variant.list_function, 0x00, direction, page)
        except exceptions.HIDPPError as e:
            if page == 0:
                raise
            logger.warning("%s: DPI list page %d failed, using %d bytes: %s", session, page, len(dpi_bytes), e)
            break
        dpi_bytes += reply[variant.list_prefix_size :]
        if dpi_bytes[-2:] == b"\x00\x00":
            break
    return dpi_bytes


def fetch_dpi_list(session: Session, feature: DpiFeature, direction: int = 0) -> list[int]:
    """The DPI values the sensor supports, in the order the device lists them.

    :param direction: 0 for the X axis, 1 for the Y axis of extended devices with ``has_y``.
    :raises EmptyDpiList: the device listed no value at all.
    """
    dpi_bytes = collect_dpi_bytes(session, feature, direction)
    values = dpi_list.decode(dpi_bytes)
    if not values:
        raise exceptions.EmptyDpiList(feature=feature, data=dpi_bytes)
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("%s: DPI list %s", session, values)
    return values


def read_dpi(session: Session, feature: DpiFeature) -> int | None:
    """The current DPI, or the default DPI when no current value is set.

    :returns: ``None`` if the reply is too short to hold both values.
    """
    reply = session.feature_request(feature.index, _VARIANTS[feature.kind].get_function)
    if not reply or len(reply) < 5:
        logger.warning("%s: short DPI reply %r", session, reply)
        return None
    current, default = struct.unpack("!HH", reply[1:5])
    return current or default


def set_dpi(session: Session, feature: DpiFeature, dpi: int) -> bool:
    """Write a new DPI value; any reply at all counts as acknowledgement."""
    variant = _VARIANTS[feature.kind]
    reply = session.feature_request(feature.index, variant.set_function, variant.set_prefix + common.int2bytes(dpi, 2))
    if logger.isEnabledFor(logging.INFO):
        logger.info("%s: set DPI %d", session, dpi)
    return reply is not None
