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

import binascii

from enum import IntEnum

LOGITECH_VENDOR_ID = 0x046D


class UsagePage(IntEnum):
    GENERIC_DESKTOP = 0x01


class GenericDesktopUsage(IntEnum):
    POINTER = 0x01
    MOUSE = 0x02


def strhex(x):
    """Produce a hex-string representation of a sequence of bytes."""
    assert x is not None
    return binascii.hexlify(x).decode("ascii").upper()


def bytes2int(x):
    return int.from_bytes(x, byteorder="big")


def int2bytes(x, count):
    return x.to_bytes(length=count, byteorder="big")


class KwException(Exception):
    """An exception that remembers all arguments passed to the constructor.
    They can be later accessed by simple member access.
    """

    def __init__(self, **kwargs):
        super().__init__(kwargs)

    def __getattr__(self, k):
        try:
            return super().__getattr__(k)
        except AttributeError:
            return self.args[0].get(k)
