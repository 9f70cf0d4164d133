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
from enum import IntEnum


class SupportedFeature(IntEnum):
    """The HID++ 2.0 features this package knows how to talk to.

    A particular device might not support all these features.
    """

    ROOT = 0x0000
    ADJUSTABLE_DPI = 0x2201
    EXTENDED_ADJUSTABLE_DPI = 0x2202


class ErrorCode(IntEnum):
    NO_ERROR = 0x00
    UNKNOWN = 0x01
    INVALID_ARGUMENT = 0x02
    OUT_OF_RANGE = 0x03
    HARDWARE_ERROR = 0x04
    LOGITECH_ERROR = 0x05
    INVALID_FEATURE_INDEX = 0x06
    INVALID_FUNCTION = 0x07
    BUSY = 0x08
    UNSUPPORTED = 0x09


class AdjustableDpiFunction(IntEnum):
    GET_SENSOR_COUNT = 0x00
    GET_SENSOR_DPI_LIST = 0x10
    GET_SENSOR_DPI = 0x20
    SET_SENSOR_DPI = 0x30


class ExtendedDpiFunction(IntEnum):
    GET_SENSOR_CAPABILITIES = 0x10
    GET_SENSOR_DPI_RANGES = 0x20
    GET_SENSOR_DPI = 0x50
    SET_SENSOR_DPI = 0x60
