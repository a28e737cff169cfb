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
"""Houses the PluginFlag enum, which defines the header flags that determine
a plugin's type. Game specific information lives in GameInfo.Esp - keep
this module top level, it is imported by the game package."""
from enum import Enum

class PluginFlag(Enum):
    """Header flags that change how a plugin is treated. Members with a
    non-zero max_plugins are counted separately from regular plugins when
    checking how many plugins may be active."""

    def __init__(self, flag_bit, forcing_ext, max_plugins, kind_name):
        self.flag_bit = flag_bit # bit in the plugin header's record flags
        self.forcing_ext = forcing_ext # extension that implies the flag
        self.max_plugins = max_plugins # 0 means: counts as a regular plugin
        self.kind_name = kind_name

    ESM = (0x1, '.esm', 0, 'master')
    ESL = (0x200, '.esl', 4096, 'light')

    def has_flagged(self, flags1):
        """Check if our bit is set in the given header flags."""
        return bool(flags1 & self.flag_bit)

    @classmethod
    def guess_flags(cls, mod_fn_ext, game_info):
        """Return the flags implied by the file extension - only used for
        games where the extension forces the flags. Master status always
        comes from the header, only the light flag is implied by .esl."""
        esp = game_info.Esp
        if (esp.extension_forces_flags and esp.supports_light and
                mod_fn_ext == cls.ESL.forcing_ext):
            return {cls.ESL}
        return set()

# easiest way to define enum class variables
PluginFlag.max_plugins = 255
PluginFlag.kind_name = 'regular'
