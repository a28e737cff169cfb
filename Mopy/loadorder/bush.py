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
"""This module is responsible for finding the game support packages and
looking up the GameInfo type to use for a game id."""
from __future__ import annotations

import importlib
import pkgutil

from . import game as game_init
from .bolt import deprint
from .exception import ArgumentError
from .game import GameInfo

# Module Cache
_allGames: dict[str, type[GameInfo]] = {}

def _supportedGames():
    """Import all game support packages and return them by game id."""
    if _allGames: return _allGames
    for _importer, modname, ispkg in pkgutil.iter_modules(game_init.__path__):
        if not ispkg: continue # game support modules are packages
        try:
            module_container = importlib.import_module(
                f'.{modname}', game_init.__name__)
            gtype = module_container.GAME_TYPE
        except (ImportError, AttributeError):
            deprint(f'Error in game support module {modname}', traceback=True)
            continue
        _allGames[gtype.game_id] = gtype
    return _allGames

def supported_game_ids():
    return sorted(_supportedGames())

def get_game(game_id) -> type[GameInfo]:
    """Return the GameInfo type for the given (case insensitive) game id."""
    try:
        return _supportedGames()[game_id.lower()]
    except (KeyError, AttributeError):
        raise ArgumentError(f'Unsupported game: {game_id!r} (supported '
                            f'games: {", ".join(supported_game_ids())})')
