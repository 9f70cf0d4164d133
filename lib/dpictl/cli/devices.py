## Copyright (C) 2012-2013  Daniel Pavel
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

from dpictl import configuration


def _print_device(number, dev, selected):
    marker = "*" if selected else " "
    print(f"{marker}{number}: {dev.display_name}")
    print("     Device id    :", dev.device_id)
    print(f"     USB id       : {dev.vendor_id:04x}:{dev.product_id:04x}")
    print("     Transport    :", dev.transport or "unknown")
    print("     Device path  :", dev.path)


def run(registry, args, devices, find_device):
    found = devices()
    if not found:
        print("No Logitech mouse found")
        return

    selected = find_device(found, None)
    for number, dev in enumerate(found, start=1):
        _print_device(number, dev, dev is selected and configuration.selected_device() == dev.device_id)
