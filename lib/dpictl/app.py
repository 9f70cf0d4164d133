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

import argparse
import importlib
import logging
import os
import os.path
import platform
import sys

from dpictl import NAME
from dpictl import __version__
from dpictl import cli

logger = logging.getLogger(__name__)

_DEBUG_ENV = "DPI_DEBUG"
_UDEV_FILE = "42-logitech-dpi-permissions.rules"


def _require(module, os_package):
    try:
        return importlib.import_module(module)
    except ImportError:
        sys.exit(f"{NAME}: missing required system package {os_package}")


def create_parser():
    arg_parser = argparse.ArgumentParser(prog=NAME, epilog=f"For details on individual actions, run `{NAME} <action> --help`.")
    arg_parser.add_argument(
        "-d",
        "--debug",
        action="count",
        default=0,
        help="print logging messages, for debugging purposes (may be repeated for extra verbosity)",
    )
    arg_parser.add_argument(
        "-D",
        "--hidraw",
        action="store",
        dest="hidraw_path",
        metavar="PATH",
        help="only consider the device at this path. Example: /dev/hidraw2",
    )
    arg_parser.add_argument("-V", "--version", action="version", version="%(prog)s " + __version__)
    arg_parser.add_argument(
        "action",
        nargs=argparse.REMAINDER,
        choices=cli.actions,
        help="action to perform; append ' --help' to show args",
    )
    return arg_parser


def _debug_level(args) -> int:
    if os.environ.get(_DEBUG_ENV) == "1":
        return max(args.debug, 3)
    return args.debug


def _setup_logging(debug: int):
    log_format = "%(asctime)s,%(msecs)03d %(levelname)8s [%(threadName)s] %(name)s: %(message)s"
    log_level = logging.ERROR - 10 * debug
    logging.getLogger("").setLevel(min(log_level, logging.WARNING))
    if debug > 0:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(logging.Formatter(log_format))
        stream_handler.setLevel(log_level)
        logging.getLogger("").addHandler(stream_handler)


def _parse_arguments(argv=None):
    arg_parser = create_parser()
    args = arg_parser.parse_args(argv)
    _setup_logging(_debug_level(args))
    logger.info("version %s", __version__)
    return args


def _check_udev_rule():
    if (
        platform.system() == "Linux"
        and logger.isEnabledFor(logging.WARNING)
        and not os.path.isfile("/etc/udev/rules.d/" + _UDEV_FILE)
        and not os.path.isfile("/usr/lib/udev/rules.d/" + _UDEV_FILE)
        and not os.path.isfile("/usr/local/lib/udev/rules.d/" + _UDEV_FILE)
    ):
        logger.warning("udev rule %s not found, devices may not be accessible", _UDEV_FILE)


def main(argv=None):
    if platform.system() not in ("Darwin", "Windows"):
        _require("pyudev", "python3-pyudev")

    args = _parse_arguments(argv)
    if not args.action:
        cli.print_help()
        return 2
    _check_udev_rule()
    return cli.run(args.action, args.hidraw_path)


if __name__ == "__main__":
    sys.exit(main())
