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

import logging
import sys

from logitech_dpi import exceptions

from dpictl import NAME
from dpictl import cli
from dpictl import configuration

logger = logging.getLogger(__name__)


def run(registry, args, devices, find_device):
    found = devices()
    if not found:
        raise Exception("no Logitech mouse found")
    dev = find_device(found, args.device)
    if not dev:
        raise Exception(f"no device found matching '{args.device}'")

    with cli.active_device(dev) as (worker, selection):
        if selection.feature is None:
            raise exceptions.FeatureNotSupported(device=dev.display_name, feature="DPI")
        if args.dpi not in selection.dpi_list and not args.force:
            choices = ", ".join(str(dpi) for dpi in selection.dpi_list)
            sys.exit(f"{NAME}: error: {args.dpi} is not a supported DPI, choose one of {choices}")

        commit = cli.wait_for(worker.commit, args.dpi)
        if not commit.success:
            if commit.error is not None:
                raise commit.error
            sys.exit(f"{NAME}: error: DPI update failed")
        if commit.error is not None:
            logger.warning("%s: could not confirm the new DPI: %s", dev.display_name, commit.error)

    current = commit.current if commit.current is not None else args.dpi
    configuration.remember_dpi(dev.device_id, current)
    print(f"{dev.display_name}: DPI set to {current}")
