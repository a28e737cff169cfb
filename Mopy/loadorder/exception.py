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
"""This module contains all custom exceptions for the load order engine."""
# NO LOCAL IMPORTS! This has to be importable from any module/package.

class BoltError(Exception):
    """Generic error with a string message."""
    def __init__(self, message):
        self.message = message
    def __str__(self):
        return self.message

# Code errors -----------------------------------------------------------------
class ArgumentError(BoltError):
    """Coding Error: Argument out of allowed range of values."""
    def __init__(self, message='Argument is out of allowed ranged of values.'):
        super().__init__(message)

class StateError(BoltError):
    """Operation not allowed in the current state of the handle."""
    def __init__(self, message='Load order handle is not loaded.'):
        super().__init__(message)

# File exceptions -------------------------------------------------------------
class FileError(BoltError):
    """An error that occurred while handling a file."""
    def __init__(self, in_name, message):
        super().__init__(message)
        self._in_name = (in_name and f'{in_name}') or 'Unknown File'

    def __str__(self):
        return f'{self._in_name}: {self.message}'

class LoFileError(FileError):
    """Reading or writing a file failed at the OS level - the original
    OSError is kept in cause (and chained as __cause__ by raisers)."""
    def __init__(self, path, cause):
        super().__init__(path, f'{cause}')
        self.path = path
        self.cause = cause

# Mod I/O Errors --------------------------------------------------------------
class ModError(FileError):
    """Mod Error: File is corrupted."""
    pass

def _join_sigs(debug_str):
    if isinstance(debug_str, (tuple, list)):
        from .bolt import sig_to_str # don't mind this we are in exception code
        debug_str = '.'.join(map(sig_to_str, debug_str))
    return debug_str

class ModReadError(ModError):
    """Mod Error: Attempt to read outside of buffer."""
    def __init__(self, in_name, debug_str, try_pos, max_pos):
        debug_str = _join_sigs(debug_str)
        if try_pos < 0:
            message = f'{debug_str}: Attempted to read before ({try_pos}) ' \
                      f'beginning of file/buffer.'
        else:
            message = f'{debug_str}: Attempted to read past ({try_pos}) end ' \
                      f'({max_pos}) of file/buffer.'
        super().__init__(in_name, message)

class ModSizeError(ModError):
    """Mod Error: Record/subrecord declares a size larger than allowed."""
    def __init__(self, in_name, debug_str, max_size, actual_size):
        debug_str = _join_sigs(debug_str)
        message_form = f'{debug_str}: Declared size {actual_size} exceeds ' \
                       f'available size {max_size}'
        super().__init__(in_name, message_form)

class ModSigMismatchError(ModError):
    """Mod Error: The plugin header record has the wrong signature."""
    def __init__(self, in_name, expected_sig, actual_sig):
        from .bolt import sig_to_str
        message_form = f'Expected {sig_to_str(expected_sig)} header, but ' \
                       f'got {sig_to_str(actual_sig)}'
        super().__init__(in_name, message_form)

# Load order API errors -------------------------------------------------------
class InvalidPluginError(FileError):
    """A plugin name passed in or found on disk is not a valid plugin."""
    def __init__(self, filename, reason):
        super().__init__(filename, reason)
        self.filename = filename
        self.reason = reason

class InvalidLoadOrderError(BoltError):
    """A load order breaks one of the load order rules (duplicates, masters
    loading after regular plugins, misplaced game master)."""
    def __init__(self, reason):
        super().__init__(f'Invalid load order: {reason}')
        self.reason = reason

class InvalidActiveSetError(BoltError):
    """An active plugins list breaks one of the active plugins rules."""
    def __init__(self, reason):
        super().__init__(f'Invalid active plugins: {reason}')
        self.reason = reason

class TooManyActivePluginsError(InvalidActiveSetError):
    """More plugins of a kind than the game allows were to be activated."""
    def __init__(self, kind, limit):
        super().__init__(f'more than {limit:d} {kind} plugins active')
        self.kind = kind
        self.limit = limit
