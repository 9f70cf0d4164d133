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

import threading


def _print_devices(devices):
    if not devices:
        print("No Logitech mouse found")
    else:
        print(f"{len(devices)} device(s):")
        for number, dev in enumerate(devices, start=1):
            print(f"  {number}: {dev.display_name} [{dev.transport or '?'}] {dev.device_id}")
    print("", flush=True)


def run(registry, args, devices, find_device, stop_event=None):
    if stop_event is None:
        stop_event = threading.Event()
    registry.on_change(_print_devices)
    registry.start()
    try:
        while not stop_event.wait(1.0):
            pass
    except KeyboardInterrupt:
        pass
    finally:
        registry.stop()
