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
"""Helpers for building fake game installations in a temporary directory.
Plugins are written with a minimal header record followed by some junk that
must never be read."""
import os
import struct

from ..bolt import FName
from ..env import LocalFs
from ..plugin_types import PluginFlag

def plugin_bytes(esp, flags=0, subrecords=((b'HEDR', b'\x00' * 12),),
                 declared_size=None, sig=None, blob=None):
    """Return the bytes of a plugin whose header record has the given flags
    and subrecords, laid out for the game's Esp class. declared_size
    overrides the record data size written in the header, blob replaces the
    subrecords with raw bytes."""
    sub_fmt = esp.sub_header_format
    if blob is None:
        blob = b''.join(struct.pack(sub_fmt, sub_sig, len(data)) + data
                        for sub_sig, data in subrecords)
    size = len(blob) if declared_size is None else declared_size
    sig = esp.plugin_header_sig if sig is None else sig
    if esp.rec_header_size == 16: # TES3: sig, size, unknown, flags
        head = struct.pack(esp.rec_pack_format_str, sig, size, 0, flags)
    else:
        fields = [sig, size, flags] + [0] * (
            len(esp.rec_pack_format_str) - 5)
        head = struct.pack(esp.rec_pack_format_str, *fields)
    return head + blob + b'GRUP' + b'\xff' * 20

def fnames(*names):
    """Return a set of FNames - FName hashes differ from the hashes of
    mixed case strs."""
    return set(map(FName, names))

def master_flags(esm=False, esl=False):
    return (PluginFlag.ESM.flag_bit if esm else 0) | (
        PluginFlag.ESL.flag_bit if esl else 0)

class FakeGame(object):
    """A game installation in a temporary directory - each game gets its own
    subdirectory."""
    def __init__(self, tmp_path, game_info):
        self.game_info = game_info
        tmp_path = tmp_path / game_info.game_id
        self.game_path = os.fspath(tmp_path / 'game')
        self.mods_dir = os.path.join(self.game_path, game_info.mods_dir)
        self.local_path = os.fspath(tmp_path / 'local')
        os.makedirs(self.mods_dir)
        os.makedirs(self.local_path)
        self._next_time = 1_500_000_000

    def add_plugin(self, name, esm=None, esl=False, mtime=None, data=None):
        """Add a plugin - esm defaults to the .esm extension. Plugins get
        increasing modification times, one minute apart, unless given."""
        if esm is None: esm = name.lower().endswith('.esm')
        if data is None:
            data = plugin_bytes(self.game_info.Esp, master_flags(esm, esl))
        path = os.path.join(self.mods_dir, name)
        with open(path, 'wb') as out:
            out.write(data)
        if mtime is None:
            mtime = self._next_time
            self._next_time += 60
        os.utime(path, (mtime, mtime))
        return path

    def add_plugins(self, *names):
        for n in names: self.add_plugin(n)

    def mtime(self, name):
        return os.stat(os.path.join(self.mods_dir, name)).st_mtime

    def remove_plugin(self, name):
        os.remove(os.path.join(self.mods_dir, name))

    def local_file(self, fname):
        return os.path.join(self.local_path, fname)

    def write_local(self, fname, lines, encoding='utf-8'):
        with open(self.local_file(fname), 'wb') as out:
            out.write(''.join(f'{l}\r\n' for l in lines).encode(encoding))

    def read_local(self, fname):
        with open(self.local_file(fname), 'rb') as ins:
            return ins.read().decode('utf-8').splitlines()

class FailingFs(LocalFs):
    """A LocalFs whose writes fail once fail_writes is set."""
    fail_writes = False

    def atomic_write(self, path, data):
        if self.fail_writes: raise PermissionError(13, 'Denied', path)
        super().atomic_write(path, data)

    def set_mtime(self, path, mtime):
        if self.fail_writes: raise PermissionError(13, 'Denied', path)
        super().set_mtime(path, mtime)
