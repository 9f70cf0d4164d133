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

from logitech_dpi.hidpp20 import DpiFeatureKind

from dpictl import configuration
from dpictl import cli


def _yes_no(flag):
    return "yes" if flag else "no"


def _print_selection(selection):
    dev = selection.device
    print(dev.display_name)
    print("  Device id    :", dev.device_id)
    print("  Device path  :", dev.path)
    feature = selection.feature
    if feature is None:
        print("  DPI feature not found")
        return

    print(f"  DPI feature  : {feature.feature.name} at index {feature.index:#04x}")
    if feature.kind == DpiFeatureKind.EXTENDED:
        print(f"  Y axis       : {_yes_no(feature.has_y)}")
        print(f"  Lift-off     : {_yes_no(feature.has_lod)}")
    print("  DPI list     :", ", ".join(str(dpi) for dpi in selection.dpi_list))
    if feature.has_y:
        print("  DPI list (Y) :", ", ".join(str(dpi) for dpi in selection.dpi_list_y) or "unknown")
    if selection.current is None:
        last = configuration.last_dpi(dev.device_id)
        print("  Current DPI  : unknown" + (f" (last known {last})" if last else ""))
    else:
        print("  Current DPI  :", selection.current)
        configuration.remember_dpi(dev.device_id, selection.current)


def run(registry, args, devices, find_device):
    found = devices()
    if not found:
        raise Exception("no Logitech mouse found")
    dev = find_device(found, args.device)
    if not dev:
        raise Exception(f"no device found matching '{args.device}'")

    with cli.active_device(dev) as (worker, selection):
        _print_selection(selection)
