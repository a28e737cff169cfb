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
"""GameInfo override for TES V: Skyrim."""
from .. import GameInfo, LoMethod
from ...bolt import FName

class SkyrimGameInfo(GameInfo):
    display_name = 'Skyrim'
    game_id = 'skyrim'
    master_file = FName('Skyrim.esm')
    appdata_name = 'Skyrim'
    lo_method = LoMethod.TEXTFILE
    master_loads_first = True
    must_be_active = (FName('Update.esm'),)

GAME_TYPE = SkyrimGameInfo
