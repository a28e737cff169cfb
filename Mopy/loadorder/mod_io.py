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
"""Bounded readers for the plugin header record. Only the first record of a
plugin (TES3/TES4) is ever read, we check its signature, its declared size
and the sizes of its subrecords - nothing past it is looked at."""
from __future__ import annotations

import os
from io import BytesIO

from .bolt import structs_cache
from .exception import ModReadError, ModSigMismatchError, ModSizeError

int_unpacker = structs_cache['=I'].unpack

class PluginHeader(object):
    """The parts of the plugin header record we care about."""
    __slots__ = ('recType', 'blob_size', 'flags1')

    def __init__(self, recType, blob_size, flags1):
        self.recType = recType
        self.blob_size = blob_size # size of the record *without* its header
        self.flags1 = flags1

    def __repr__(self):
        return f'{type(self).__name__}({self.recType!r}, ' \
               f'blob_size={self.blob_size}, flags1=0x{self.flags1:X})'

class FastModReader(BytesIO):
    """BytesIO-derived reader over a byte prefix of a plugin - every read
    past the prefix raises ModReadError."""
    def __init__(self, in_name, initial_bytes):
        super().__init__(initial_bytes)
        self.inName = in_name
        self.size = len(initial_bytes)

    def unpack(self, struct_unpacker, size, *debug_strs):
        read_data = self.read(size)
        if len(read_data) != size:
            raise ModReadError(self.inName, debug_strs,
                               self.tell() - len(read_data) + size, self.size)
        return struct_unpacker(read_data)

    def seek(self, offset, whence=os.SEEK_SET, *debug_strs):
        if whence == os.SEEK_CUR:
            new_pos = self.tell() + offset
        elif whence == os.SEEK_END:
            new_pos = self.size + offset
        else:
            new_pos = offset
        if new_pos < 0 or new_pos > self.size:
            raise ModReadError(self.inName, debug_strs, new_pos, self.size)
        return super().seek(offset, whence)

    def __repr__(self):
        return f'{type(self).__name__}({self.inName})'

def unpack_header(ins, esp) -> PluginHeader:
    """Unpack the plugin header record header, using the layout given by the
    game's Esp class."""
    head_struct = structs_cache[esp.rec_pack_format_str]
    vals = ins.unpack(head_struct.unpack, head_struct.size, 'HEADER')
    return PluginHeader(vals[0], vals[1], vals[esp.rec_flags_index])

def _check_subrecords(ins, header, esp):
    """Walk the subrecords in the header record data. Their declared sizes
    (plus their headers) must add up to at most the record data size."""
    sub_struct = structs_cache[esp.sub_header_format]
    sub_head_size = sub_struct.size
    blob_size, rec_sig = header.blob_size, header.recType
    big_size = None # set by a XXXX subrecord, used by the next subrecord
    while (pos := ins.tell()) < blob_size:
        if pos + sub_head_size > blob_size:
            raise ModSizeError(ins.inName, (rec_sig, 'SUBHEADER'),
                               blob_size - pos, sub_head_size)
        sub_sig, sub_size = ins.unpack(sub_struct.unpack, sub_head_size,
                                       rec_sig)
        if big_size is not None:
            sub_size, big_size = big_size, None
        elif sub_sig == b'XXXX':
            big_size, = ins.unpack(int_unpacker, 4, rec_sig, sub_sig)
            continue
        if ins.tell() + sub_size > blob_size:
            raise ModSizeError(ins.inName, (rec_sig, sub_sig),
                               blob_size - ins.tell(), sub_size)
        ins.seek(sub_size, os.SEEK_CUR, rec_sig, sub_sig)
    if big_size is not None:
        raise ModReadError(ins.inName, (rec_sig, b'XXXX'), blob_size,
                           blob_size)

def read_plugin_header(fs, abs_path, in_name, esp) -> PluginHeader:
    """Read and check the header record of the plugin at abs_path. Raises
    a ModError subclass if the header is truncated or inconsistent and
    OSError if the file can't be read.

    :param fs: the file system to read from, see env.LocalFs
    :param in_name: plugin name used in error messages
    :param esp: the GameInfo.Esp class of the game"""
    file_size = fs.get_size(abs_path)
    head_size = esp.rec_header_size
    with FastModReader(in_name, fs.read_prefix(abs_path, head_size)) as ins:
        header = unpack_header(ins, esp)
    if header.recType != esp.plugin_header_sig:
        raise ModSigMismatchError(in_name, esp.plugin_header_sig,
                                  header.recType)
    if head_size + header.blob_size > file_size:
        raise ModSizeError(in_name, (header.recType,), file_size - head_size,
                           header.blob_size)
    rec_data = fs.read_prefix(abs_path, head_size + header.blob_size)
    with FastModReader(in_name, rec_data[head_size:]) as ins:
        _check_subrecords(ins, header, esp)
    return header
