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
"""GameInfo class encapsulating static load order info for a game. Avoid
adding state and methods - game support packages subclass GameInfo and
override class variables, bush looks them up by game id."""
from enum import Enum

from ..bolt import FName

class LoMethod(Enum):
    """How a game stores its load order."""
    # Load order is encoded in the modification times of the plugin files
    TIMESTAMP = 'timestamp'
    # Load order is stored in loadorder.txt, one plugin per line
    TEXTFILE = 'textfile'

class GameInfo(object):
    # Main game info - should be overridden -----------------------------------
    # The name of the game, only used in messages
    display_name = '' ## Example: 'Skyrim'
    # The id used to look the game up in bush, must be unique per game
    game_id = '' ## Example: 'skyrim'
    # The main plugin of the game
    master_file: FName = FName('')
    # The directory in which plugins reside. This is relative to the game
    # directory
    mods_dir = 'Data'
    # Name of the game's AppData folder, relative to %LocalAppData% - holds
    # plugins.txt and loadorder.txt. Empty if the game does not use one
    appdata_name = ''

    # Load order info ---------------------------------------------------------
    lo_method = LoMethod.TIMESTAMP
    # True if the master_file must always load first - if installed
    master_loads_first = False
    # Plugins that are always active if installed, additionally to the game
    # master file for games where master_loads_first is True
    must_be_active: tuple[FName, ...] = ()
    # Files holding the active plugins and the load order, relative to the
    # local appdata folder of the game
    plugins_txt = 'plugins.txt'
    loadorder_txt = 'loadorder.txt'
    # If not None the active plugins are stored in an INI in the game
    # directory instead of plugins.txt. Format is (INI Name, section, entry
    # format string) where the format string receives an %(lo_idx)s argument
    ini_key_actives = None

    class Esp(object):
        """Information about plugin headers and extensions."""
        # Signature of the plugin header record
        plugin_header_sig = b'TES4'
        # Size and struct format of the header record header and the index of
        # the record flags field in the unpacked tuple
        rec_header_size = 24
        rec_pack_format_str = '=4sIIIII'
        rec_flags_index = 2
        # Struct format of a subrecord header (signature, data size)
        sub_header_format = '=4sH'
        # Plugin extensions (without the .ghost extension)
        plugin_exts = ('.esm', '.esp')
        # True if the game supports light plugins (ESL flag and .esl files)
        supports_light = False
        # True if .esl files are light plugins even if their header flags say
        # otherwise - master status still comes from the header
        extension_forces_flags = False
        # True if the master status is taken from the .esm extension, the
        # header flag is not used
        master_from_extension = False
        # Prefix marking light plugins in the active plugins file - empty if
        # the game does not mark them
        light_marker = ''

    @classmethod
    def mandatory_first(cls):
        """Return the plugin that must load first or None."""
        return cls.master_file if cls.master_loads_first else None

    @classmethod
    def mandatory_active(cls):
        """Return the plugins that are always active if installed."""
        first = (cls.master_file,) if cls.master_loads_first else ()
        return (*first, *(p for p in cls.must_be_active if p not in first))

    @classmethod
    def valid_extensions(cls):
        """Return all the extensions a plugin filename may end with, including
        the ghosted ones."""
        exts = [*cls.Esp.plugin_exts]
        if cls.Esp.supports_light: exts.append('.esl')
        return frozenset((*exts, *(f'{e}.ghost' for e in exts)))

    def __repr__(self):
        return f'{type(self).__name__}({self.game_id})'
