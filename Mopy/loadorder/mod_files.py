# -*- coding: utf-8 -*-
#
# GPL License and Copyright Notice ============================================
#  This file is part of Wrye Bash.
#
#  Wrye Bash is free software: you can redistribute it and/or
#  modify it under the terms of the GNU General Public License
#  as published by the Free Software Foundation, either version 3
#  of the License, or (at your option) any later version.
#
#  Wrye Bash is distributed in the hope that it will be useful,
#  but WITHOUT ANY WARRANTY; without even the implied warranty of
#  MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
#  GNU General Public License for more details.
#
#  You should have received a copy of the GNU General Public License
#  along with Wrye Bash.  If not, see <https://www.gnu.org/licenses/>.
#
#  Wrye Bash copyright (C) 2005-2009 Wrye, 2010-2024 Wrye Bash Team
#  https://github.com/wrye-bash
#
# =============================================================================
"""Classification of plugin files. Only the extension and the header record
of a file are inspected, to decide if it is a valid plugin for the game and
whether it is a master and/or a light plugin."""
from __future__ import annotations

import os

from .bolt import FName
from .exception import InvalidPluginError, ModError
from .mod_io import read_plugin_header
from .plugin_types import PluginFlag

_GHOST = '.ghost'

def split_ghost(disk_name):
    """Return the plugin name for disk_name and whether it is ghosted."""
    if disk_name.lower().endswith(_GHOST):
        return disk_name[:-len(_GHOST)], True
    return disk_name, False

class PluginInfo(object):
    """A valid plugin found in the plugins folder."""
    __slots__ = ('fn_key', 'disk_name', 'abs_path', 'ftime', 'is_master',
                 'is_light')

    def __init__(self, fn_key, disk_name, abs_path, ftime, is_master=False,
                 is_light=False):
        self.fn_key = fn_key # plugin name, without any .ghost extension
        self.disk_name = disk_name
        self.abs_path = abs_path
        self.ftime = ftime
        self.is_master = is_master
        self.is_light = is_light

    @property
    def ghosted(self):
        return self.disk_name != self.fn_key

    @property
    def kind(self):
        if self.is_light:
            return 'light master' if self.is_master else 'light'
        return 'master' if self.is_master else 'regular'

    @property
    def limit_flag(self):
        """The flag whose max_plugins limits how many plugins like this one
        can be active - PluginFlag itself for regular plugins."""
        return PluginFlag.ESL if self.is_light else PluginFlag

    def __repr__(self):
        return f'{type(self).__name__}<{self.disk_name}, {self.kind}>'

def check_extension(game_info, disk_name):
    """Raise InvalidPluginError if disk_name has an extension that is not
    a plugin extension for the game (ghosted extensions are fine)."""
    plugin_name, _ghosted = split_ghost(disk_name)
    ext = os.path.splitext(plugin_name)[1].lower()
    if not ext or ext not in game_info.valid_extensions():
        raise InvalidPluginError(disk_name, f"'{ext}' is not a valid plugin "
            f'extension for {game_info.display_name}')
    return ext

def classify(fs, game_info, mods_dir, disk_name, ftime, to_key=FName):
    """Check that the file disk_name in mods_dir is a valid plugin for
    game_info and return a PluginInfo for it. Raises InvalidPluginError if
    not, OSError if the file can't be read.

    :param ftime: the modification time of the file
    :param to_key: callable converting the plugin name to a dict key"""
    ext = check_extension(game_info, disk_name)
    abs_path = os.path.join(mods_dir, disk_name)
    esp = game_info.Esp
    try:
        header = read_plugin_header(fs, abs_path, disk_name, esp)
    except ModError as e:
        raise InvalidPluginError(disk_name, e.message) from e
    except FileNotFoundError as e:
        raise InvalidPluginError(disk_name, 'File not found') from e
    if esp.master_from_extension:
        is_master = ext == PluginFlag.ESM.forcing_ext
    else:
        is_master = PluginFlag.ESM.has_flagged(header.flags1)
    is_light = esp.supports_light and PluginFlag.ESL.has_flagged(
        header.flags1)
    # .esl files are light whatever their header says for newer games
    is_light = is_light or PluginFlag.ESL in PluginFlag.guess_flags(
        ext, game_info)
    return PluginInfo(to_key(split_ghost(disk_name)[0]), disk_name, abs_path,
                      ftime, is_master, is_light)
