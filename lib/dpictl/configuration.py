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

"""The little state kept between runs: the last selected device and the last
DPI read or written for each device, in a YAML file."""

import logging
import os

import yaml

from dpictl import __version__

logger = logging.getLogger(__name__)

_XDG_CONFIG_HOME = os.environ.get("XDG_CONFIG_HOME") or os.path.expanduser(os.path.join("~", ".config"))
_yaml_file_path = os.path.join(_XDG_CONFIG_HOME, "dpictl", "config.yaml")

_KEY_VERSION = "_version"
_KEY_SELECTED_DEVICE = "selected_device"
_KEY_LAST_DPI = "last_dpi"

_config = {}


def _load():
    global _config
    loaded_config = {}
    if os.path.isfile(_yaml_file_path):
        try:
            with open(_yaml_file_path) as config_file:
                loaded_config = yaml.safe_load(config_file)
        except Exception as e:
            logger.error("failed to load from %s: %s", _yaml_file_path, e)
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("load => %s", loaded_config)
    _config = _cleanup_load(loaded_config)


def _cleanup_load(c):
    config = {_KEY_VERSION: __version__}
    if not isinstance(c, dict):
        return config
    selected = c.get(_KEY_SELECTED_DEVICE)
    if isinstance(selected, str):
        config[_KEY_SELECTED_DEVICE] = selected
    last_dpi = c.get(_KEY_LAST_DPI)
    if isinstance(last_dpi, dict):
        config[_KEY_LAST_DPI] = {str(k): v for k, v in last_dpi.items() if isinstance(v, int)}
    return config


def save():
    if not _config:
        return
    dirname = os.path.dirname(_yaml_file_path)
    if not os.path.isdir(dirname):
        try:
            os.makedirs(dirname)
        except Exception:
            logger.error("failed to create %s", dirname)
            return False

    try:
        with open(_yaml_file_path, "w") as config_file:
            yaml.safe_dump(_config, config_file, default_flow_style=None, width=150)

        if logger.isEnabledFor(logging.INFO):
            logger.info("saved %s to %s", _config, _yaml_file_path)
        return True
    except Exception as e:
        logger.error("failed to save to %s: %s", _yaml_file_path, e)


def _ensure_loaded():
    if not _config:
        _load()


def selected_device():
    """The device id of the last selected device, if any."""
    _ensure_loaded()
    return _config.get(_KEY_SELECTED_DEVICE)


def select_device(device_id):
    _ensure_loaded()
    if _config.get(_KEY_SELECTED_DEVICE) != device_id:
        if device_id is None:
            _config.pop(_KEY_SELECTED_DEVICE, None)
        else:
            _config[_KEY_SELECTED_DEVICE] = device_id
        save()


def last_dpi(device_id):
    _ensure_loaded()
    return _config.get(_KEY_LAST_DPI, {}).get(device_id)


def remember_dpi(device_id, dpi):
    _ensure_loaded()
    saved = _config.setdefault(_KEY_LAST_DPI, {})
    if dpi is not None and saved.get(device_id) != dpi:
        saved[device_id] = dpi
        save()
