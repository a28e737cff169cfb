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
"""The plugin classification cache of a load order handle. Entries are keyed
by the filename on disk and remember the modification time the file had
when it was classified - a changed time means the file is classified again.
Not thread safe, the handle's lock guards all access."""
from __future__ import annotations

import os

from .bolt import FName, deprint
from .exception import InvalidPluginError
from .mod_files import PluginInfo, classify, split_ghost

class PluginCache(object):
    """Maps filename -> (modification time, PluginInfo or the error raised
    while classifying the file)."""

    def __init__(self, fs, game_info, mods_dir, to_key=FName):
        self._fs = fs
        self._game_info = game_info
        self._mods_dir = mods_dir
        self._to_key = to_key
        self._entries: dict[str, tuple[float, PluginInfo | InvalidPluginError]] = {}

    def __len__(self):
        return len(self._entries)

    def __contains__(self, disk_name):
        return disk_name in self._entries

    def get_or_classify(self, disk_name) -> PluginInfo:
        """Return the (possibly cached) PluginInfo for disk_name, raise
        InvalidPluginError if it's not a valid plugin. OSError from reading
        the modification time is propagated."""
        ftime = self._fs.get_mtime(os.path.join(self._mods_dir, disk_name))
        try:
            cached_time, result = self._entries[disk_name]
        except KeyError:
            pass
        else:
            if cached_time == ftime:
                if isinstance(result, InvalidPluginError):
                    raise InvalidPluginError(result.filename, result.reason)
                return result
        try:
            result = classify(self._fs, self._game_info, self._mods_dir,
                              disk_name, ftime, self._to_key)
        except InvalidPluginError as e:
            self._entries[disk_name] = (ftime, e)
            raise
        self._entries[disk_name] = (ftime, result)
        return result

    def invalidate_all(self):
        self._entries.clear()

    def update_mtime(self, plugin_info: PluginInfo, ftime):
        """We changed the modification time of a plugin ourselves - update
        its entry instead of classifying it again on next access."""
        plugin_info.ftime = ftime
        self._entries[plugin_info.disk_name] = (ftime, plugin_info)

    def scan(self) -> dict[str, PluginInfo]:
        """List the plugins folder and return the valid plugins in it keyed
        by plugin name. Files with non plugin extensions are skipped silently,
        invalid plugins are skipped with a warning. Drops the entries of
        files that are gone."""
        valid_exts = self._game_info.valid_extensions()
        installed: dict[str, PluginInfo] = {}
        disk_names = self._fs.list_dir(self._mods_dir)
        for gone in set(self._entries).difference(disk_names):
            del self._entries[gone]
        for disk_name in disk_names:
            plugin_name, ghosted = split_ghost(disk_name)
            ext = os.path.splitext(plugin_name)[1].lower()
            if not ext or ext not in valid_exts: continue
            try:
                info = self.get_or_classify(disk_name)
            except InvalidPluginError as e:
                deprint(f'Skipping invalid plugin {e}')
                continue
            except FileNotFoundError:
                continue # deleted while we were scanning
            if (prev := installed.get(info.fn_key)) is not None:
                # both X.esp and X.esp.ghost exist - the unghosted one wins
                deprint(f'Found both {prev.disk_name} and {disk_name}, '
                        f'using the unghosted one')
                if ghosted: continue
            installed[info.fn_key] = info
        return installed
