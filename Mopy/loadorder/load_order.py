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
#  Mopy/bash/load_order.py copyright (C) 2016 Utumno: Original design
#
# =============================================================================
"""Load order management - the LoadOrderHandle ties the plugin cache and the
load order/active plugins stores of a game installation together and exposes
the load order API.

Notes:
- a handle's state (installed plugins, LoadOrder snapshot and plugin cache)
is guarded by a reader-writer lock: queries share it, all operations that
change state or touch the disk for writing take it exclusively.
- every set operation validates first and only updates the cached LoadOrder
once the files were written successfully. A failed write invalidates the
plugin cache so the next reload re-reads the disk.
- active plugins must always be manipulated having a valid load order at
hand: all active plugins must be installed and have a load order.
- invalid (corrupted) plugins do not have a load order.
- two handles on the same installation share nothing - using them
concurrently may mess up timestamp based load orders.
"""
from __future__ import annotations

__author__ = 'Utumno'

import collections
import functools
import os
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

from . import bush
from ._games_lo import ActivesStore, FixInfo, TextfileLo, TimestampLo, \
    active_limit_excess, lo_io
from .bolt import FName, RWLock, deprint, fname_factory
from .env import LocalFs
from .exception import BoltError, InvalidActiveSetError, \
    InvalidLoadOrderError, InvalidPluginError, LoFileError, StateError, \
    TooManyActivePluginsError
from .game import LoMethod
from .initialization import init_dirs
from .mod_files import check_extension, split_ghost
from .plugin_infos import PluginCache

_lo_stores = {LoMethod.TIMESTAMP: TimestampLo, LoMethod.TEXTFILE: TextfileLo}

@dataclass(slots=True)
class LordDiff:
    """Diff of two LoadOrders - see LoadOrder.lo_diff for the fields use."""
    missing: set[FName] = field(default_factory=set) # del from lo <=> del mods
    added: set[FName] = field(default_factory=set) # new in lo <=> new mods
    reordered: set[FName] = field(default_factory=set)
    active_flips: set[FName] = field(default_factory=set)
    act_index_change: set[FName] = field(default_factory=set)
    act_del: set[FName] = field(default_factory=set)
    act_new: set[FName] = field(default_factory=set)

    def act_changed(self):
        """Return items whose active state or active order changed."""
        return {*self.active_flips, *self.act_index_change, *self.act_del,
                *self.act_new}

    def lo_changed(self):
        return bool(self.added or self.missing or self.reordered)

class LoadOrder(object):
    """Immutable class representing a load order."""
    __empty = ()
    __none = frozenset()

    def __init__(self, loadOrder: Iterable[FName] = __empty,
            active: Iterable[FName] = __none):
        set_act = frozenset(active)
        loadOrder = tuple(loadOrder)
        if missing := (set_act - set(loadOrder)):
            raise BoltError(
                f'Active plugins with no load order: {", ".join(missing)}')
        self._loadOrder = loadOrder
        self._active = set_act
        self.mod_lo_index = {a: i for i, a in enumerate(loadOrder)}
        self._activeOrdered = tuple(
            sorted(set_act, key=self.mod_lo_index.__getitem__))
        self.mod_act_index = {a: i for i, a in enumerate(self._activeOrdered)}

    @property
    def loadOrder(self): return self._loadOrder
    @property
    def active(self): return self._active
    @property
    def activeOrdered(self): return self._activeOrdered

    def lo_diff(self, other: LoadOrder):
        ldiff = LordDiff()
        # plugins missing from other and plugins that appear fresh in other
        ldiff.missing = self.mod_lo_index.keys() - other.mod_lo_index
        ldiff.added = other.mod_lo_index.keys() - self.mod_lo_index
        new_del = ldiff.missing | ldiff.added
        diff = self.mod_lo_index.items() ^ other.mod_lo_index.items()
        # present plugins that are not new and their load order differs
        ldiff.reordered = {k for k, _v in diff if k not in new_del}
        diff = self.mod_act_index.items() ^ other.mod_act_index.items()
        diff_count = collections.Counter(k for k, _v in diff)
        # if it appears twice, its active order changed
        ldiff.act_index_change = {k for k, c in diff_count.items() if c == 2}
        act_state_change = {k for k, c in diff_count.items() if c == 1}
        ldiff.active_flips = {k for k in act_state_change if k not in new_del}
        ldiff.act_del = act_state_change & self.active
        ldiff.act_new = act_state_change & other.active
        return ldiff

    def __eq__(self, other):
        return isinstance(other, LoadOrder) and self._active == other._active \
               and self._loadOrder == other._loadOrder
    def __ne__(self, other): return not (self == other)
    def __hash__(self): return hash((self._loadOrder, self._active))

    def __str__(self):
        return ', '.join([(f'*{x}' if x in self._active else x) for x in
                          self.loadOrder])

class HandleState(Enum):
    UNINITIALIZED = 'uninitialized'
    LOADED = 'loaded'
    ERROR = 'error'

def _reading(meth):
    """Run meth holding the handle's lock in shared mode - the handle must
    be loaded."""
    @functools.wraps(meth)
    def _locked(self, *args, **kwargs):
        with self._lock.read_locked():
            self._check_loaded()
            return meth(self, *args, **kwargs)
    return _locked

def _writing(meth):
    """Run meth holding the handle's lock exclusively - the handle must be
    loaded."""
    @functools.wraps(meth)
    def _locked(self, *args, **kwargs):
        with self._lock.write_locked():
            self._check_loaded()
            return meth(self, *args, **kwargs)
    return _locked

class LoadOrderHandle(object):
    """Load order and active plugins of a single game installation."""

    def __init__(self, game_info, game_path, local_path=None, *, fs=None,
                 backup_on_fix=True):
        self.game_info = game_info
        self._game_path = game_path
        self._local_path = local_path
        self._fs = LocalFs() if fs is None else fs
        self._backup_on_fix = backup_on_fix
        self._lock = RWLock()
        self.state = HandleState.UNINITIALIZED
        self.dirs = {}
        self._to_key = FName
        self._cache: PluginCache | None = None
        self._lo_store = self._actives_store = None
        self._installed = {}
        self._cached_lord = LoadOrder()

    # INITIALIZATION ----------------------------------------------------------
    def init(self):
        """Scan the plugins folder, read the load order and active plugins
        fixing them as needed (nothing is written to disk) and mark the
        handle as loaded. On failure the handle is put in the error state and
        the exception is reraised."""
        with self._lock.write_locked():
            try:
                self.dirs = init_dirs(self.game_info, self._game_path,
                                      self._local_path)
                self._to_key = fname_factory(self._probe_case_sensitive())
                self._cache = PluginCache(self._fs, self.game_info,
                                          self.dirs['mods'], self._to_key)
                with lo_io(self.dirs['local']):
                    self._lo_store = _lo_stores[self.game_info.lo_method](
                        self.game_info, self._fs, self.dirs, self._to_key)
                    self._actives_store = ActivesStore(self.game_info,
                        self._fs, self.dirs, self._to_key)
                self._print_lo_paths()
                fix_lo = FixInfo()
                self._installed, self._cached_lord = self._load(fix_lo)
                fix_lo.lo_deprint()
            except BaseException:
                self.state = HandleState.ERROR
                raise
            self.state = HandleState.LOADED

    def _probe_case_sensitive(self):
        try:
            with lo_io(self.dirs['mods']):
                return self._fs.is_case_sensitive(self.dirs['mods'])
        except LoFileError as e:
            if isinstance(e.cause, FileNotFoundError): raise
            # read only plugins folder - go by the platform
            deprint(f'Could not probe case sensitivity of '
                    f'{self.dirs["mods"]}: {e.cause}')
            return os.name != 'nt'

    def _print_lo_paths(self):
        """Prints the paths that will be used and what they'll be used for.
        Useful for debugging."""
        deprint(f'Using the following load order files for '
                f'{self.game_info.display_name}:')
        deprint(f' - Active plugins: {self._actives_store.abs_path}')
        for lo_file in self._lo_store.get_lo_files():
            deprint(f' - Load order: {lo_file}')

    def _load(self, fix_lo):
        """Scan the plugins folder and read both load order and active
        plugins from disk, fixing them - return the installed plugins and
        a LoadOrder."""
        with lo_io(self.dirs['mods']):
            installed = self._cache.scan()
        lord = self._lo_store.read(installed, fix_lo, self._actives_store)
        acti = self._actives_store.read(lord, installed, fix_lo)
        return installed, LoadOrder(lord, acti)

    def _check_loaded(self):
        if self.state is not HandleState.LOADED:
            raise StateError(f'Load order handle for '
                f'{self.game_info.display_name} is {self.state.value}')

    # API ---------------------------------------------------------------------
    def reload(self) -> LordDiff:
        """Clear the plugin cache and read everything from disk again,
        returning what changed. Works in the error state too."""
        with self._lock.write_locked():
            if self._cache is None:
                raise StateError('Load order handle was never initialized')
            self._cache.invalidate_all()
            fix_lo = FixInfo()
            try:
                installed, lord = self._load(fix_lo)
            except BaseException:
                self.state = HandleState.ERROR
                raise
            fix_lo.lo_deprint()
            ldiff = self._cached_lord.lo_diff(lord)
            self._installed, self._cached_lord = installed, lord
            self.state = HandleState.LOADED
            return ldiff

    @_writing
    def fix_lists(self) -> LordDiff:
        """Rescan and read load order and active plugins with a cleared
        cache and write both back, backing up the previous files."""
        self._cache.invalidate_all()
        fix_lo = FixInfo()
        installed, lord = self._load(fix_lo)
        fix_lo.lo_deprint()
        if self._backup_on_fix:
            self._lo_store.create_backup()
            self._actives_store.create_backup()
        with self._invalidating_on_error():
            self._lo_store.write(list(lord.loadOrder), installed, self._cache)
            self._actives_store.write(lord.activeOrdered, installed)
        ldiff = self._cached_lord.lo_diff(lord)
        self._installed, self._cached_lord = installed, lord
        return ldiff

    @_reading
    def get_load_order(self) -> list[FName]:
        return list(self._cached_lord.loadOrder)

    @_reading
    def get_active_plugins(self) -> list[FName]:
        """Return the active plugins, in load order."""
        return list(self._cached_lord.activeOrdered)

    @_writing
    def set_load_order(self, lord: Iterable[str]):
        """Validate and persist the load order. Installed plugins missing
        from lord are added the way they are added when reading the load
        order from disk."""
        self._set_load_order(self._validate_lo(lord))

    @_writing
    def set_plugin_position(self, plugin_name, index):
        """Move (or insert) an installed plugin to the given position,
        clamped to the load order length."""
        key = self._get_plugin(plugin_name)
        lord = [x for x in self._cached_lord.loadOrder if x != key]
        lord.insert(max(0, min(index, len(lord))), key)
        self._set_load_order(self._validate_lo(lord))

    @_writing
    def set_active_plugins(self, active: Iterable[str]):
        """Validate and persist the active plugins."""
        self._set_active_plugins(self._validate_active(active))

    @_writing
    def activate(self, plugin_name):
        key = self._get_plugin(plugin_name)
        if key in self._cached_lord.active: return
        self._set_active_plugins(self._validate_active(
            [*self._cached_lord.activeOrdered, key]))

    @_writing
    def deactivate(self, plugin_name):
        key = self._get_plugin(plugin_name)
        if key not in self._cached_lord.active: return
        self._set_active_plugins(self._validate_active(
            [x for x in self._cached_lord.activeOrdered if x != key]))

    @_reading
    def is_active(self, plugin_name) -> bool:
        return self._key(plugin_name) in self._cached_lord.active

    @_reading
    def index_of(self, plugin_name) -> int:
        """Return the load order index of the plugin."""
        key = self._key(plugin_name)
        try:
            return self._cached_lord.mod_lo_index[key]
        except KeyError:
            raise InvalidPluginError(plugin_name, 'Plugin is not in the '
                                                  'load order')

    @_reading
    def get_plugin_at_index(self, index) -> FName:
        if index < 0: raise IndexError(f'Invalid load order index {index}')
        return self._cached_lord.loadOrder[index]

    def get_load_order_method(self) -> LoMethod:
        return self.game_info.lo_method

    @_reading
    def is_ambiguous(self) -> bool:
        """Return True if the load order on disk does not fully determine
        the load order: plugins sharing a modification time (timestamp
        games) or plugins missing from loadorder.txt."""
        return self._lo_store.is_ambiguous(self._installed)

    @_reading
    def get_lo_files(self) -> list[str]:
        """Return the paths of the files used to store the active plugins
        and the load order."""
        return [self._actives_store.abs_path, *self._lo_store.get_lo_files()]

    # Writing -----------------------------------------------------------------
    def _invalidating_on_error(self):
        return _InvalidateOnError(self._cache)

    def _set_load_order(self, lord):
        """Write lord even if it is the cached load order - timestamp games
        may have ambiguous times on disk."""
        with self._invalidating_on_error():
            self._lo_store.write(lord, self._installed, self._cache)
            if self.game_info.lo_method is LoMethod.TEXTFILE:
                # keep the active plugins file in load order
                new_lo = LoadOrder(lord, self._cached_lord.active)
                self._actives_store.write(new_lo.activeOrdered,
                                          self._installed)
        self._cached_lord = LoadOrder(lord, self._cached_lord.active)

    def _set_active_plugins(self, acti):
        new_lo = LoadOrder(self._cached_lord.loadOrder, acti)
        with self._invalidating_on_error():
            self._actives_store.write(new_lo.activeOrdered, self._installed)
        self._cached_lord = new_lo

    # VALIDATION --------------------------------------------------------------
    def _key(self, plugin_name):
        return self._to_key(split_ghost(plugin_name)[0])

    def _get_plugin(self, plugin_name):
        """Return the key of an installed valid plugin, in the case it has on
        disk, or raise InvalidPluginError."""
        check_extension(self.game_info, plugin_name)
        try:
            return self._installed[self._key(plugin_name)].fn_key
        except KeyError:
            raise InvalidPluginError(plugin_name, 'Plugin is not installed '
                                                  'or is not valid')

    def _validate_lo(self, lord):
        """Check lord and return it completed with the installed plugins it
        is missing."""
        lord = [self._get_plugin(p) for p in lord]
        if dups := [x for x, c in collections.Counter(lord).items() if c > 1]:
            raise InvalidLoadOrderError(f'duplicate entries: {_pl(dups)}')
        is_m = self._lo_store.is_master_key(self._installed)
        seen_non_master = None
        for mod in lord:
            if is_m(mod)[0]:
                seen_non_master = seen_non_master or mod
            elif seen_non_master is not None:
                raise InvalidLoadOrderError(f'master {mod} loads after non '
                                            f'master {seen_non_master}')
        mf = self.game_info.mandatory_first()
        if mf is not None and (mf := self._to_key(mf)) in self._installed \
                and (not lord or lord[0] != mf):
            raise InvalidLoadOrderError(f'{mf} must load first')
        fix_lo = FixInfo()
        self._lo_store.fix_load_order(lord, self._installed, fix_lo)
        if fix_lo.lo_added:
            deprint(f'Added missing plugins to load order: '
                    f'{_pl(fix_lo.lo_added)}')
        return lord

    def _validate_active(self, acti):
        acti = [self._get_plugin(p) for p in acti]
        if dups := [x for x, c in collections.Counter(acti).items() if c > 1]:
            raise InvalidActiveSetError(f'duplicate entries: {_pl(dups)}')
        acti_set = set(acti)
        if missing := [x for x in self._actives_store.mandatory_active(
                self._installed) if x not in acti_set]:
            raise InvalidActiveSetError(f'{_pl(missing)} must be active')
        if excess := active_limit_excess(acti, self._installed):
            pflag = next(iter(excess))
            raise TooManyActivePluginsError(pflag.kind_name,
                                            pflag.max_plugins)
        return acti

    def __repr__(self):
        return f'{type(self).__name__}({self.game_info.game_id}, ' \
               f'{self._game_path}, {self.state.value})'

class _InvalidateOnError(object):
    """Invalidate the plugin cache if writing fails - the exception is
    propagated."""
    def __init__(self, cache):
        self._cache = cache
    def __enter__(self): return self
    def __exit__(self, exc_type, exc_value, exc_traceback):
        if exc_type is not None:
            self._cache.invalidate_all()
        return False

def create_handle(game_id, game_path, local_path=None, **kwargs):
    """Create and initialize a load order handle for the game with the
    given id installed in game_path."""
    handle = LoadOrderHandle(bush.get_game(game_id), game_path, local_path,
                             **kwargs)
    handle.init()
    return handle

def _pl(it):
    return ', '.join(it)
