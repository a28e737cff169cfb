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
"""GameInfo override for Fallout 4."""
from .. import GameInfo, LoMethod
from ...bolt import FName

class Fallout4GameInfo(GameInfo):
    display_name = 'Fallout 4'
    game_id = 'fallout4'
    master_file = FName('Fallout4.esm')
    appdata_name = 'Fallout4'
    lo_method = LoMethod.TEXTFILE
    master_loads_first = True
    must_be_active = tuple(map(FName, (
        'DLCRobot.esm', 'DLCworkshop01.esm', 'DLCCoast.esm',
        'DLCworkshop02.esm', 'DLCworkshop03.esm', 'DLCNukaWorld.esm',
        'DLCUltraHighResolution.esm')))

    class Esp(GameInfo.Esp):
        supports_light = True
        extension_forces_flags = True

GAME_TYPE = Fallout4GameInfo
