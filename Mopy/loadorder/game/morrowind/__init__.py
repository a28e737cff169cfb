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
"""GameInfo override for TES III: Morrowind."""
from .. import GameInfo, LoMethod
from ...bolt import FName

class MorrowindGameInfo(GameInfo):
    display_name = 'Morrowind'
    game_id = 'morrowind'
    master_file = FName('Morrowind.esm')
    mods_dir = 'Data Files'
    lo_method = LoMethod.TIMESTAMP
    # Active plugins are kept in Morrowind.ini in the game directory
    ini_key_actives = ('Morrowind.ini', 'Game Files', 'GameFile%(lo_idx)s')

    class Esp(GameInfo.Esp):
        plugin_header_sig = b'TES3'
        rec_header_size = 16
        rec_pack_format_str = '=4sIII'
        rec_flags_index = 3
        sub_header_format = '=4sI'
        ##: The TES3 master flag is not where TES4 has it - go by extension
        master_from_extension = True

GAME_TYPE = MorrowindGameInfo
