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
#  Mopy/bash/games.py copyright (C) 2016 Utumno: Original design
#
# =============================================================================
"""Load order handling backend featuring a LoStore hierarchy implementing the
two ways games store their load order (plugin modification times or
loadorder.txt), an ActivesStore for the active plugins and a LoFile hierarchy
for reading and writing load order files. Used by load_order.py, where the
stores are initialized and driven by a LoadOrderHandle."""
##: multiple backups? fixes can happen in rapid succession, so preserving
# several older files in a directory would be useful (maybe limit to some
# number, e.g. 5 older versions)
from __future__ import annotations

__author__ = 'Utumno'

import os
import re
from collections import defaultdict
from contextlib import contextmanager
from itertools import pairwise

from . import bolt
from .bolt import FName, deprint
from .exception import InvalidPluginError, LoFileError
from .mod_files import split_ghost
from .plugin_types import PluginFlag

# Typing
LoList = list[FName]

@contextmanager
def lo_io(path):
    """Convert OSErrors raised in the block to LoFileError for path."""
    try:
        yield
    except OSError as e:
        raise LoFileError(path, e) from e

def _decode(data: bytes) -> str:
    """Load order files should be utf-8 but older tools may have written
    them using some code page - let chardet guess in that case."""
    try:
        return data.decode('utf-8-sig')
    except UnicodeDecodeError:
        return bolt.decoder(data)

class LoFile(object):
    """A file holding load order information (plugins.txt/loadorder.txt but
    also ini files for INI games). We need to be careful in case sensitive
    file systems."""
    _re_comment = re.compile('^#.*')

    def __init__(self, fs, path, to_key=FName, light_marker=''):
        self._fs = fs
        self._to_key = to_key
        self._light_marker = light_marker
        self.abs_path = self._resolve_case_ambiguity(fs, path)

    def _parse_lines(self, lines):
        modnames = []
        for line in lines:
            modname = self._re_comment.sub('', line.strip())
            if not modname: continue
            if modname[0] == '*': modname = modname[1:] # star: active marker
            if (lm := self._light_marker) and modname.startswith(lm):
                modname = modname[len(lm):]
            # Vortex keeps the .ghost extension
            modnames.append(self._to_key(split_ghost(modname)[0]))
        return modnames

    def parse_modfile(self) -> LoList:
        """Parse the file and return the plugin names it lists, in file
        order. Raises FileNotFoundError if the file does not exist."""
        return self._parse_lines(
            _decode(self._fs.read_bytes(self.abs_path)).splitlines())

    def write_modfile(self, lord, light_plugins=frozenset()):
        """Atomically replace the file with one listing the plugins in lord,
        prefixing the light_plugins with our light marker if we have one."""
        lm = self._light_marker
        out = ''.join(f'{lm if lm and mod in light_plugins else ""}{mod}\r\n'
                      for mod in lord)
        with lo_io(self.abs_path):
            self._fs.atomic_write(self.abs_path, out.encode('utf-8'))

    @staticmethod
    def _resolve_case_ambiguity(fs, lo_file_path):
        """Third-party tools like LOOT do not all use the same case for
        plugins.txt and loadorder.txt. This method returns the path of the
        newest of the load order files that differ only in case from
        lo_file_path, or lo_file_path if none exists."""
        lo_dir, lo_fname = os.path.split(lo_file_path)
        try:
            matching = [os.path.join(lo_dir, f) for f in fs.list_dir(lo_dir)
                        if f.lower() == lo_fname.lower()]
        except FileNotFoundError:
            return lo_file_path
        if len(matching) > 1:
            matching.sort(key=fs.get_mtime, reverse=True)
            deprint(f'Resolving ambiguous {lo_fname} case (found '
                    f'{matching}) to newest file ({matching[0]})')
        return matching[0] if matching else lo_file_path

    def create_backup(self):
        pl_path = self.abs_path
        try:
            self._fs.copy(pl_path, f'{pl_path}.bak')
        except FileNotFoundError:
            deprint(f'Tried to back up {pl_path}, but it did not exist')
        except OSError:
            deprint(f'Failed to back up {pl_path}', traceback=True)

    def __repr__(self):
        return f'{type(self).__name__}<{self.abs_path}>'

class IniLoFile(LoFile):
    """A section of an INI listing plugins, one per key - the key format
    receives a %(lo_idx)s argument, e.g. Morrowind.ini:
        [Game Files]
        GameFile0=Morrowind.esm
        GameFile1=Tribunal.esm
    INIs of these games are written in cp1252."""
    _encoding = 'cp1252'

    def __init__(self, fs, path, ini_key, to_key=FName):
        super().__init__(fs, path, to_key)
        _ini, self._section, self._key_fmt = ini_key
        self._key_re = re.compile(re.escape(self._key_fmt).replace(
            re.escape('%(lo_idx)s'), r'(\d+)') + r'\s*=(.*)$', re.I)

    def _split_sections(self):
        """Return the lines before our section, our section's lines and the
        lines after it (starting at the next section header)."""
        try:
            data = self._fs.read_bytes(self.abs_path)
        except FileNotFoundError:
            return [], [], []
        lines = bolt.decoder(data, self._encoding).splitlines()
        head = f'[{self._section}]'.lower()
        for start, line in enumerate(lines):
            if line.strip().lower() == head: break
        else:
            return lines, [], []
        for end in range(start + 1, len(lines)):
            if lines[end].lstrip().startswith('['): break
        else:
            end = len(lines)
        return lines[:start], lines[start + 1:end], lines[end:]

    def parse_modfile(self) -> LoList:
        if not self._fs.exists(self.abs_path):
            raise FileNotFoundError(self.abs_path)
        _pre, section, _post = self._split_sections()
        entries = []
        for line in section:
            if ma := self._key_re.match(line.strip()):
                entries.append((int(ma.group(1)), ma.group(2).strip()))
        entries.sort(key=lambda e: e[0]) # by index, stable for duplicates
        return self._parse_lines(v for _i, v in entries)

    def write_modfile(self, lord, light_plugins=frozenset()):
        """Write out lord using the section/key format attrs, keeping the
        rest of the INI as is."""
        encoded = []
        for i, mod in enumerate(lord):
            line = f'{self._key_fmt % {"lo_idx": i}}={mod}'
            try:
                encoded.append(line.encode(self._encoding))
            except UnicodeEncodeError:
                raise InvalidPluginError(mod, f'Name can not be stored in '
                    f'{os.path.basename(self.abs_path)}')
        with lo_io(self.abs_path):
            pre, _section, post = self._split_sections()
            out = [l.encode(self._encoding, 'replace') for l in pre]
            out.append(f'[{self._section}]'.encode(self._encoding))
            out.extend(encoded)
            out.extend(l.encode(self._encoding, 'replace') for l in post)
            self._fs.atomic_write(self.abs_path, b'\r\n'.join(out) + b'\r\n')

class FixInfo(object):
    """Encapsulate info on load order and active lists fixups."""
    def __init__(self):
        self.lo_removed = set()
        self.lo_added = set()
        self.lo_duplicates = set()
        self.lo_reordered = ([], [])
        self.lo_created = False
        # active mods corrections
        self.act_removed = set()
        self.act_duplicates = set()
        self.missing_must_be_active = set()
        self.selectedExtra = []

    def lo_changed(self):
        return bool(self.lo_removed or self.lo_added or self.lo_duplicates or
                    any(self.lo_reordered))

    def act_changed(self):
        return bool(self.act_removed or self.act_duplicates or
                    self.missing_must_be_active or self.selectedExtra)

    def lo_deprint(self):
        self._warn_lo()
        self._warn_active()

    def _warn_lo(self):
        if not self.lo_changed(): return
        msg = [_pl(li, f'{at[3:]}: ') for at in ('lo_removed', 'lo_added',
            'lo_duplicates') if (li := getattr(self, at))]
        if any(self.lo_reordered):
            msg.append('reordered:')
            msg.append(_pl(self.lo_reordered[0], 'from: '))
            msg.append(_pl(self.lo_reordered[1], 'to  : '))
        deprint('Fixed Load Order: ' + '\n'.join(msg))

    def _warn_active(self):
        if not self.act_changed(): return
        msg = ['Invalid active plugins corrected:']
        if self.act_removed:
            msg.append('Active list contains plugins not present in the '
                       'plugins folder, invalid and/or corrupted:')
            msg.append(_pl(self.act_removed))
        for path in sorted(self.missing_must_be_active):
            msg.append(f'{path} not present in active list while present in '
                       f'the plugins folder')
        if self.selectedExtra:
            msg.append('Active list contains more plugins than allowed - the '
                       'following plugins will be deactivated:')
            msg.append(_pl(self.selectedExtra))
        if self.act_duplicates:
            msg.append('Removed duplicate entries from active list:')
            msg.append(_pl(self.act_duplicates))
        deprint('\n'.join(msg))

# Helpers shared by the stores ------------------------------------------------
def check_for_duplicates(plugins_list: list) -> set:
    """Remove duplicates from plugins_list in place, keeping the first
    occurrence, and return them."""
    mods, duplicates, j = set(), set(), 0
    for i, mod in enumerate(plugins_list[:]):
        if mod in mods:
            del plugins_list[i - j]
            j += 1
            duplicates.add(mod)
        else:
            mods.add(mod)
    return duplicates

def active_limit_excess(acti, installed) -> dict[PluginFlag, list]:
    """Return the plugins in acti exceeding the limit of their type (in acti
    order) keyed by the limiting flag."""
    pl_type_active = defaultdict(list)
    for m in acti:
        pl_type_active[installed[m].limit_flag].append(m)
    return {pflag: drop for pflag, plugins in pl_type_active.items() if
            (drop := plugins[pflag.max_plugins:])}

class LoStore(object):
    """API for reading and writing the load order according to the way the
    game engine stores it, and for fixing load orders read from disk."""

    def __init__(self, game_info, fs, dirs, to_key=FName):
        self._game_info = game_info
        self._fs = fs
        self._to_key = to_key
        self._mandatory_first = None if (
            mf := game_info.mandatory_first()) is None else to_key(mf)

    # API ---------------------------------------------------------------------
    def read(self, installed, fix_lo: FixInfo, actives_store) -> LoList:
        """Return the fixed load order of the installed plugins."""
        lord = self._fetch_load_order(installed, actives_store, fix_lo)
        self.fix_load_order(lord, installed, fix_lo)
        return lord

    def write(self, lord, installed, cache):
        """Persist a valid load order of the installed plugins."""
        raise NotImplementedError

    def create_backup(self):
        pass # timestamps, no file to backup

    def get_lo_files(self) -> list[str]:
        return []

    def is_ambiguous(self, installed) -> bool:
        raise NotImplementedError

    def is_master_key(self, installed):
        """Return a sort key placing masters (and the plugin that must load
        first) before the rest."""
        mf = self._mandatory_first
        return lambda x: (x != mf and not installed[x].is_master,)

    # ABSTRACT ----------------------------------------------------------------
    def _fetch_load_order(self, installed, actives_store, fix_lo) -> LoList:
        raise NotImplementedError

    # VALIDATION --------------------------------------------------------------
    def fix_load_order(self, lord: LoList, installed, fix_lo: FixInfo):
        """Fix lord in place: drop duplicates and plugins that are not
        installed (or not valid), insert missing masters before the first
        non master and append missing non masters, make sure masters load
        first and move the plugin that must load first to the top."""
        old_lord = lord[:]
        fix_lo.lo_duplicates = check_for_duplicates(lord)
        fix_lo.lo_removed = {x for x in lord if x not in installed}
        lord[:] = [x for x in lord if x in installed]
        ol = lord[:] # snapshot used in checking master block reordering
        present = set(lord)
        # add new plugins in the order they were installed
        added = sorted((x for x in installed if x not in present),
                       key=lambda x: (installed[x].ftime, x.lower()))
        fix_lo.lo_added = set(added)
        is_m = self.is_master_key(installed)
        not_master = lambda x: is_m(x)[0]
        first_non_master = next(
            (i for i, x in enumerate(lord) if not_master(x)), len(lord))
        lord[first_non_master:first_non_master] = [x for x in added if
                                                   not not_master(x)]
        lord.extend(x for x in added if not_master(x))
        # See if any masters are loaded below a non master and reorder
        lord.sort(key=is_m)
        reordered = ol != [x for x in lord if x in present]
        if (mf := self._mandatory_first) is not None and mf in installed and \
                lord[0] != mf:
            deprint(f'{mf} has index {lord.index(mf)} (must be 0)')
            lord.remove(mf)
            lord.insert(0, mf)
            reordered = True
        if reordered:
            fix_lo.lo_reordered = old_lord, lord[:]

class TimestampLo(LoStore):
    """Oblivion and other games where load order is set using modification
    times. Writing the load order changes the modification times of the
    plugins one by one - a concurrent external change may interleave."""

    def _sort_key(self, installed):
        is_m = self.is_master_key(installed)
        # split into master block and not master block then sort by ftime
        # then by name case insensitive (for time conflicts)
        return lambda x: (*is_m(x), installed[x].ftime, x.lower(), x)

    def _fetch_load_order(self, installed, actives_store, fix_lo):
        return sorted(installed, key=self._sort_key(installed))

    def write(self, lord, installed, cache):
        """Unless the (whole second) modification times already increase
        along lord, restamp the plugins to times one second apart in lord
        order, starting from the earliest time among them. Only plugins
        whose time changes are touched."""
        times = [installed[x].ftime for x in lord]
        if all(int(a) < int(b) for a, b in pairwise(times)): return
        older = min(times)
        for i, mod in enumerate(lord):
            info = installed[mod]
            if info.ftime == (new_time := older + i): continue
            with lo_io(info.abs_path):
                self._fs.set_mtime(info.abs_path, new_time)
            cache.update_mtime(info, new_time)

    def is_ambiguous(self, installed):
        mtimes = [int(info.ftime) for info in installed.values()]
        return len(set(mtimes)) != len(mtimes)

class TextfileLo(LoStore):
    """Games that use loadorder.txt to store the load order."""

    def __init__(self, game_info, fs, dirs, to_key=FName):
        super().__init__(game_info, fs, dirs, to_key)
        self._loadorder_txt = LoFile(fs, os.path.join(
            dirs['local'], game_info.loadorder_txt), to_key)

    def _fetch_load_order(self, installed, actives_store, fix_lo):
        """Read loadorder.txt - if it does not exist use the active plugins
        so the load order of the user is preserved."""
        lo_path = self._loadorder_txt.abs_path
        try:
            with lo_io(lo_path):
                return self._loadorder_txt.parse_modfile()
        except LoFileError as e:
            if not isinstance(e.cause, FileNotFoundError): raise
        fix_lo.lo_created = True
        deprint(f'{lo_path} not found, using the active plugins order')
        return actives_store.read_raw()

    def write(self, lord, installed, cache):
        self._loadorder_txt.write_modfile(lord)

    def create_backup(self):
        self._loadorder_txt.create_backup()

    def get_lo_files(self):
        return [self._loadorder_txt.abs_path]

    def is_ambiguous(self, installed):
        try:
            with lo_io(self._loadorder_txt.abs_path):
                listed = set(self._loadorder_txt.parse_modfile())
        except LoFileError as e:
            if isinstance(e.cause, FileNotFoundError): return True
            raise
        return not listed.issuperset(installed)

class ActivesStore(object):
    """The active plugins file - plugins.txt or an INI section. For games
    where the game master must load first it is implicitly active and never
    written out."""

    def __init__(self, game_info, fs, dirs, to_key=FName):
        self._game_info = game_info
        self._to_key = to_key
        self._mandatory = tuple(map(to_key, game_info.mandatory_active()))
        self._implicit = {to_key(game_info.master_file)} if \
            game_info.master_loads_first else set()
        if (ini_key := game_info.ini_key_actives) is not None:
            self._plugins_txt = IniLoFile(fs, os.path.join(dirs['app'],
                ini_key[0]), ini_key, to_key)
        else:
            self._plugins_txt = LoFile(fs, os.path.join(dirs['local'],
                game_info.plugins_txt), to_key, game_info.Esp.light_marker)

    @property
    def abs_path(self):
        return self._plugins_txt.abs_path

    def read_raw(self) -> LoList:
        """Return the plugins listed in the file, in file order - implicitly
        active plugins are prepended. Missing file means no active plugins."""
        try:
            with lo_io(self.abs_path):
                acti = self._plugins_txt.parse_modfile()
        except LoFileError as e:
            if not isinstance(e.cause, FileNotFoundError): raise
            acti = []
        return [*(m for m in self._mandatory if m in self._implicit), *acti]

    def read(self, lord, installed, fix_lo: FixInfo) -> LoList:
        """Return the fixed active plugins, ordered by lord."""
        acti = self.read_raw()
        self.fix_active_plugins(acti, lord, installed, fix_lo)
        return acti

    def write(self, acti, installed):
        """Persist valid active plugins acti (in load order)."""
        self._plugins_txt.write_modfile(
            [x for x in acti if x not in self._implicit],
            {x for x in acti if installed[x].is_light})

    def create_backup(self):
        self._plugins_txt.create_backup()

    def mandatory_active(self, installed) -> list:
        """Return the always active plugins that are installed."""
        return [x for x in self._mandatory if x in installed]

    def fix_active_plugins(self, acti, lord, installed, fix_active: FixInfo):
        """Fix acti in place: drop plugins not in the (valid) load order and
        duplicates, add missing always active plugins, drop plugins exceeding
        the limits in file order and sort by load order."""
        lo_dex = {mod: i for i, mod in enumerate(lord)}
        acti_filtered = [x for x in acti if x in lo_dex]
        fix_active.act_removed = {x for x in acti if x not in lo_dex and
                                  x not in self._implicit}
        fix_active.act_duplicates = check_for_duplicates(acti_filtered)
        mandatory = self.mandatory_active(installed)
        fix_active.missing_must_be_active = {
            x for x in mandatory if x not in acti_filtered} - self._implicit
        # always active plugins count first towards the limits
        mand_set = set(mandatory)
        acti_filtered = [*mandatory, *(x for x in acti_filtered if
                                       x not in mand_set)]
        if excess := active_limit_excess(acti_filtered, installed):
            disable = {x for drop in excess.values() for x in drop}
            fix_active.selectedExtra = [x for x in acti_filtered if
                                        x in disable]
            acti_filtered = [x for x in acti_filtered if x not in disable]
        acti_filtered.sort(key=lo_dex.__getitem__)
        acti[:] = acti_filtered

# Print helpers
def _pl(it, legend=''):
    return legend + ', '.join(it)
