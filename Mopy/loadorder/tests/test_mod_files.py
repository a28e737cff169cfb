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
import struct

import pytest

from . import FakeGame, master_flags, plugin_bytes
from ..env import LocalFs
from ..exception import InvalidPluginError, ModReadError, \
    ModSigMismatchError, ModSizeError
from ..game.morrowind import MorrowindGameInfo
from ..game.oblivion import OblivionGameInfo
from ..game.skyrim import SkyrimGameInfo
from ..game.skyrimse import SkyrimSEGameInfo
from ..mod_files import check_extension, classify, split_ghost
from ..mod_io import FastModReader, read_plugin_header
from ..plugin_types import PluginFlag

_fs = LocalFs()

def _classify(game, name, **kwargs):
    game.add_plugin(name, **kwargs)
    return classify(_fs, game.game_info, game.mods_dir, name,
                    game.mtime(name))

def _invalid_reason(game, name, **kwargs):
    with pytest.raises(InvalidPluginError) as exc_info:
        _classify(game, name, **kwargs)
    return exc_info.value.reason

@pytest.fixture
def skyrim(tmp_path):
    return FakeGame(tmp_path, SkyrimGameInfo)

@pytest.fixture
def skyrimse(tmp_path):
    return FakeGame(tmp_path, SkyrimSEGameInfo)

def test_split_ghost():
    assert split_ghost('Foo.esp.ghost') == ('Foo.esp', True)
    assert split_ghost('Foo.esp.GHOST') == ('Foo.esp', True)
    assert split_ghost('Foo.esp') == ('Foo.esp', False)

def test_check_extension():
    assert check_extension(SkyrimGameInfo, 'Foo.ESP') == '.esp'
    assert check_extension(SkyrimGameInfo, 'Foo.esm.ghost') == '.esm'
    assert check_extension(SkyrimSEGameInfo, 'Foo.esl') == '.esl'
    for bad in ('Foo.esl', 'Foo.txt', 'Foo', 'Foo.esp.bak', 'Foo.ghost'):
        with pytest.raises(InvalidPluginError):
            check_extension(SkyrimGameInfo, bad)

class TestClassify(object):
    def test_regular(self, skyrim):
        info = _classify(skyrim, 'Regular.esp')
        assert info.fn_key == 'Regular.esp'
        assert not info.is_master and not info.is_light
        assert info.kind == 'regular'
        assert info.limit_flag is PluginFlag
        assert info.ftime == skyrim.mtime('Regular.esp')

    def test_master(self, skyrim):
        info = _classify(skyrim, 'Master.esm')
        assert info.is_master and info.kind == 'master'

    def test_false_flagged(self, skyrim):
        """An .esp with the master flag set is a master."""
        assert _classify(skyrim, 'Flagged.esp', esm=True).is_master

    def test_esm_without_flag(self, skyrim, skyrimse):
        """The master flag decides, whatever the extension and the game."""
        assert not _classify(skyrim, 'Unflagged.esm', esm=False).is_master
        info = _classify(skyrimse, 'Unflagged.esm', esm=False)
        assert not info.is_master and info.kind == 'regular'

    def test_light(self, skyrim, skyrimse):
        """The light flag is ignored by games without light plugins."""
        assert not _classify(skyrim, 'Light.esp', esl=True).is_light
        info = _classify(skyrimse, 'Light.esp', esl=True)
        assert info.is_light and not info.is_master
        assert info.kind == 'light'
        assert info.limit_flag is PluginFlag.ESL
        # .esl files are light whatever their flags, masters only if flagged
        info = _classify(skyrimse, 'Unflagged.esl')
        assert info.is_light and not info.is_master
        info = _classify(skyrimse, 'Light.esl', esm=True)
        assert info.is_light and info.is_master
        assert info.kind == 'light master'
        assert 'not a valid plugin extension' in _invalid_reason(
            skyrim, 'Light.esl')

    def test_ghosted(self, skyrim):
        info = _classify(skyrim, 'Hidden.esp.ghost')
        assert info.fn_key == 'Hidden.esp'
        assert info.disk_name == 'Hidden.esp.ghost'
        assert info.ghosted

    def test_to_key(self, skyrim):
        skyrim.add_plugin('Keyed.esp')
        info = classify(_fs, SkyrimGameInfo, skyrim.mods_dir, 'Keyed.esp',
                        0.0, to_key=str)
        assert type(info.fn_key) is str

    def test_missing(self, skyrim):
        with pytest.raises(InvalidPluginError) as exc_info:
            classify(_fs, SkyrimGameInfo, skyrim.mods_dir, 'Gone.esp', 0.0)
        assert exc_info.value.reason == 'File not found'

    def test_empty(self, skyrim):
        assert 'Attempted to read past' in _invalid_reason(
            skyrim, 'Empty.esp', data=b'')

    def test_truncated_header(self, skyrim):
        data = plugin_bytes(SkyrimGameInfo.Esp)[:20]
        assert 'Attempted to read past' in _invalid_reason(
            skyrim, 'Truncated.esp', data=data)

    def test_wrong_signature(self, skyrim):
        data = plugin_bytes(SkyrimGameInfo.Esp, sig=b'TES3')
        assert _invalid_reason(skyrim, 'Morrowind.esp', data=data) == \
               'Expected TES4 header, but got TES3'

    def test_declared_size_past_end(self, skyrim):
        data = plugin_bytes(SkyrimGameInfo.Esp, declared_size=1000)
        assert 'exceeds available size' in _invalid_reason(
            skyrim, 'Oversized.esp', data=data)

    def test_subrecord_overflow(self, skyrim):
        """The HEDR subrecord does not fit in the header record."""
        data = plugin_bytes(SkyrimGameInfo.Esp, declared_size=10)
        assert 'HEDR: Declared size 12 exceeds available size 4' in \
               _invalid_reason(skyrim, 'BadHedr.esp', data=data)

    def test_partial_subrecord_header(self, skyrim):
        data = plugin_bytes(SkyrimGameInfo.Esp, blob=b'HED')
        assert 'SUBHEADER' in _invalid_reason(skyrim, 'BadSub.esp',
                                              data=data)

    def test_xxxx_subrecord(self, skyrim):
        """A XXXX subrecord gives the size of the next subrecord."""
        blob = b'XXXX' + struct.pack('=HI', 4, 12) + b'HEDR' + \
               struct.pack('=H', 0) + b'\x00' * 12
        data = plugin_bytes(SkyrimGameInfo.Esp, master_flags(esm=True),
                            blob=blob)
        assert _classify(skyrim, 'Big.esp', data=data).is_master

    def test_oblivion(self, tmp_path):
        game = FakeGame(tmp_path, OblivionGameInfo)
        assert _classify(game, 'Oblivion.esm').is_master
        assert not _classify(game, 'Mod.esp').is_master
        # a Skyrim plugin has a longer header, the sizes won't match
        data = plugin_bytes(SkyrimGameInfo.Esp)
        assert 'exceeds available size' in _invalid_reason(
            game, 'Skyrim.esp', data=data)

    def test_morrowind(self, tmp_path):
        """Morrowind plugins are masters if they have the .esm extension."""
        game = FakeGame(tmp_path, MorrowindGameInfo)
        assert _classify(game, 'Morrowind.esm', esm=False).is_master
        assert not _classify(game, 'Flagged.esp', esm=True).is_master
        data = plugin_bytes(SkyrimGameInfo.Esp)
        assert 'Expected TES3 header' in _invalid_reason(
            game, 'Skyrim.esp', data=data)

class TestModIO(object):
    def test_read_plugin_header(self, skyrim):
        path = skyrim.add_plugin('Header.esm')
        header = read_plugin_header(_fs, path, 'Header.esm',
                                    SkyrimGameInfo.Esp)
        assert header.recType == b'TES4'
        assert header.blob_size == 18
        assert header.flags1 == PluginFlag.ESM.flag_bit

    def test_sig_mismatch_error(self, skyrim):
        path = skyrim.add_plugin('Bad.esp', data=plugin_bytes(
            SkyrimGameInfo.Esp, sig=b'GRUP'))
        with pytest.raises(ModSigMismatchError):
            read_plugin_header(_fs, path, 'Bad.esp', SkyrimGameInfo.Esp)

    def test_size_error(self, skyrim):
        path = skyrim.add_plugin('Bad.esp', data=plugin_bytes(
            SkyrimGameInfo.Esp, declared_size=2 ** 31))
        with pytest.raises(ModSizeError):
            read_plugin_header(_fs, path, 'Bad.esp', SkyrimGameInfo.Esp)

    def test_fast_mod_reader_bounds(self):
        with FastModReader('Test.esp', b'\x01\x00\x00\x00') as ins:
            assert ins.unpack(struct.Struct('=I').unpack, 4) == (1,)
            with pytest.raises(ModReadError):
                ins.unpack(struct.Struct('=I').unpack, 4, 'HEDR')
            with pytest.raises(ModReadError):
                ins.seek(-1)
            with pytest.raises(ModReadError):
                ins.seek(1, 1) # past the end from the current position
