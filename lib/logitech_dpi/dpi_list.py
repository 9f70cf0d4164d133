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

"""Decoder for the compact DPI list returned by the DPI features.

The list is a sequence of big-endian 16-bit words. A zero word ends it.
A word whose top three bits are set is a range marker: its low 13 bits are a
step, and the following word is the last value of the range, which continues
from the value decoded just before the marker. Any other word is a DPI value.
"""

from __future__ import annotations

from .common import bytes2int

_RANGE_MARKER = 0b111
_STEP_MASK = 0x1FFF


def decode(data: bytes) -> list[int]:
    """Decode DPI list bytes into the list of DPI values.

    Never raises: trailing odd bytes and a range marker missing its last value
    simply end the list. A range marker with no value before it adds nothing.
    """
    dpi_list = []
    i = 0
    while i + 1 < len(data):
        val = bytes2int(data[i : i + 2])
        if val == 0:
            break
        if val >> 13 == _RANGE_MARKER:
            if i + 3 >= len(data):
                break
            step = val & _STEP_MASK
            last = bytes2int(data[i + 2 : i + 4])
            if dpi_list and step:
                dpi_list += range(dpi_list[-1] + step, last + 1, step)
            i += 4
        else:
            dpi_list.append(val)
            i += 2
    return dpi_list
