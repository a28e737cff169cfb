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
"""Resolve the directories a load order handle works with. Called when a
handle is initialized."""
import os

from .bolt import deprint
from .env import get_local_app_data_path
from .exception import ArgumentError

def init_dirs(game_info, game_path, local_path=None):
    """Return a dict with the game directory ('app'), the plugins directory
    ('mods') and the directory holding the load order files ('local').

    If local_path is not specified it is determined from the user's local
    AppData folder and the game's appdata_name. Games storing their active
    plugins in an INI in the game directory don't need one."""
    if not game_path or not os.path.isdir(game_path):
        raise ArgumentError(f'Game folder does not exist: {game_path}')
    dirs = {'app': game_path,
            'mods': os.path.join(game_path, game_info.mods_dir)}
    if local_path is None:
        if game_info.appdata_name:
            local_appdata, error_info = get_local_app_data_path()
            if not local_appdata:
                raise ArgumentError(f'Failed to determine LocalAppData '
                                    f'folder. Additional info: {error_info}')
            local_path = os.path.join(local_appdata, game_info.appdata_name)
        else:
            local_path = game_path
    dirs['local'] = local_path
    deprint(f'{game_info.display_name}: plugins folder set to '
            f'{dirs["mods"]}, load order files folder set to {local_path}')
    return dirs
