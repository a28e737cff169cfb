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
"""Library of low level helpers used throughout the load order package - no
game specific code should live here. Contains the case insensitive FName,
encoding detection helpers, the struct cache, the deprint logging function
and the reader-writer lock guarding load order handles."""
from __future__ import annotations

import io
import os
import struct
import sys
import threading
import traceback as _traceback
from contextlib import contextmanager

import chardet

# Unicode ---------------------------------------------------------------------
#--decode unicode strings
#  Load order files written by older tools may use the system code page, so
#  these are tried in order when the utf-8 decoding fails
encodingOrder = (
    'ascii',    # Plain old ASCII (0-127)
    'utf8',
    'cp1252',   # English (extended ASCII)
    'gbk',      # GBK (simplified Chinese + some)
    'cp932',    # Japanese
    'cp949',    # Korean
    'cp1251',   # Russian
)

_encodingSwap = {
    # The encoding detector reports back some encodings that
    # are subsets of others.  Use the better encoding when
    # given the option
    # 'reported encoding':'actual encoding to use',
    'GB2312': 'gbk',        # Simplified Chinese
    'SHIFT_JIS': 'cp932',   # Japanese
    'windows-1252': 'cp1252',
    'windows-1251': 'cp1251',
    'utf-8': 'utf8',
    'ascii': 'ascii',
}

# Encodings that we can't use because Python doesn't even support them
_blocked_encodings = {'EUC-TW'}

def getbestencoding(bitstream):
    """Tries to detect the encoding a bitstream was saved in.  Uses Mozilla's
    detection library to find the best match (heuristics)"""
    if not bitstream:
        # Default to UTF-8 if the stream we're given is empty and hence no
        # inference can be made (chardet returns None, which breaks when passed
        # to decode())
        return 'utf8', 1.0
    # Go through big streams 16 KB at a time, load order files are tiny but
    # someone could point us to the wrong file
    if len(bitstream) > 16384:
        bitstream_view = io.BytesIO(bitstream)
        result = result_sentinel = {'encoding': None, 'confidence': 0.0,
                                    'language': None}
        while block := bitstream_view.read(16384):
            result = chardet.detect(block)
            if result != result_sentinel:
                break
    else:
        result = chardet.detect(bitstream)
    encoding_, confidence = result['encoding'], result['confidence']
    encoding_ = _encodingSwap.get(encoding_, encoding_)
    return encoding_, confidence

def decoder(byte_str, encoding=None) -> str:
    """Decode a byte string to unicode, using heuristics on encoding."""
    if isinstance(byte_str, str) or byte_str is None: return byte_str
    # Try the user specified encoding first
    if encoding:
        try: return str(byte_str, encoding)
        except UnicodeDecodeError: pass
    # Try to detect the encoding next
    encoding, confidence = getbestencoding(byte_str)
    if encoding and confidence >= 0.55 and (
            encoding not in _blocked_encodings):
        try: return str(byte_str, encoding)
        except (UnicodeDecodeError, LookupError): pass
    # If even that fails, fall back to the old method, trial and error
    for encoding in encodingOrder:
        try: return str(byte_str, encoding)
        except UnicodeDecodeError: pass
    raise UnicodeDecodeError('unknown', byte_str, 0, len(byte_str),
                             'Text could not be decoded using any method')

class _SigToStr(dict):
    """Cache of decoded record signatures - only used in error messages."""
    __slots__ = ()
    def __missing__(self, key):
        return self.setdefault(key, key.decode('ascii', 'replace') if
                               isinstance(key, bytes) else f'{key}')

sig_to_str = _SigToStr().__getitem__

class _StructsCache(dict):
    __slots__ = ()
    def __missing__(self, key):
        return self.setdefault(key, struct.Struct(key))

structs_cache = _StructsCache()

# Names -----------------------------------------------------------------------
_not_cached = object()

class fast_cached_property:
    """Similar to functools.cached_property, but ~2x faster because it does not
    feature locking and lacks that decorator's runtime error checking."""
    def __init__(self, wrapped_func):
        self._wrapped_func = wrapped_func
        self._wrapped_attr = None # set later

    def __set_name__(self, owner, name):
        self._wrapped_attr = name

    def __get__(self, instance, owner=None):
        wrapped_val = instance.__dict__.get(self._wrapped_attr, _not_cached)
        if wrapped_val is _not_cached:
            wrapped_val = self._wrapped_func(instance)
            instance.__dict__[self._wrapped_attr] = wrapped_val
        return wrapped_val

class FName(str):
    """Case insensitive plugin filename. It is-a str and is used as one,
    apart from comparisons and hashing, which use the lowered string. It
    compares case insensitive with both FName and str, from either side: the
    reflected __eq__ of the subclass runs first. Hashes differ from those of
    mixed case strs though, so don't mix FName and str keys in a dict."""
    _filenames_cache: dict[str, FName] = {}
    _hash: int # Lazily cached since it's needed so often

    def __new__(cls, unicode_str: None | FName | str, *args,
                __cache=_filenames_cache, **kwargs):
        if type(unicode_str) is FName or unicode_str is None:
            return unicode_str
        try:
            return __cache[unicode_str]
        except KeyError:
            if type(unicode_str) is not str:
                raise ValueError(f'{unicode_str!r} type is '
                                 f'{type(unicode_str)} - a str is required')
            return __cache.setdefault(unicode_str, super().__new__(
                cls, unicode_str, *args, **kwargs))

    @fast_cached_property
    def _lower(self): return super().lower()

    def lower(self): return self._lower

    #--Hash/Compare
    def __hash__(self):
        try:
            return self._hash
        except AttributeError:
            self._hash = hash(self._lower)
            return self._hash
    def __eq__(self, other):
        try:
            return self._lower == other._lower
        except AttributeError:
            return isinstance(other, str) and self._lower == str.lower(other)
    def __ne__(self, other):
        return not self == other
    def __lt__(self, other):
        try:
            return self._lower < other._lower
        except AttributeError:
            return self._lower < str.lower(other)
    def __gt__(self, other):
        try:
            return self._lower > other._lower
        except AttributeError:
            return self._lower > str.lower(other)
    def __le__(self, other): return not self > other
    def __ge__(self, other): return not self < other
    #--repr
    def __repr__(self):
        return f'{type(self).__name__}({super().__repr__()})'

def fname_factory(case_sensitive):
    """Return the callable used to turn filename strings into dict keys -
    case sensitive file systems keep plain strings."""
    return str if case_sensitive else FName

# Locking ---------------------------------------------------------------------
class RWLock:
    """Reader-writer lock: any number of readers or a single writer. Writers
    waiting on the lock block new readers, so a steady stream of queries
    can't starve a mutation. Not reentrant."""
    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self):
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self):
        with self._cond:
            self._readers -= 1
            if not self._readers:
                self._cond.notify_all()

    def acquire_write(self):
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self):
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read_locked(self):
        self.acquire_read()
        try:
            yield self
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self):
        self.acquire_write()
        try:
            yield self
        finally:
            self.release_write()

# Logging ---------------------------------------------------------------------
_USER_DIR = os.path.expanduser('~')
_CENSORED_DIR = os.path.join(os.path.split(_USER_DIR)[0], '*****')

def deprint(*args, traceback=False, trace=True, frame=1):
    """Prints message along with file and line location.
       Available keyword arguments:
       trace: (default True) - if a Truthy value, displays the module,
              line number, and function this was used from
       traceback: (default False) - if a Truthy value, prints any tracebacks
              for exceptions that have occurred.
       frame: (default 1) - With `trace`, determines the function caller's
              frame for getting the function name
    """
    if trace:
        # CPython only due to _getframe usage
        parent_frame = sys._getframe(frame)
        code_obj = parent_frame.f_code
        msg = f'{os.path.basename(code_obj.co_filename)} ' \
              f'{parent_frame.f_lineno:4d} {code_obj.co_name}: '
    else:
        msg = ''
    msg += ' '.join([f'{x}' for x in args])
    # Print to stdout by default, but change to stderr if we have an error
    target_stream = sys.stdout
    if traceback:
        target_stream = sys.stderr
        msg += f'\n{_traceback.format_exc()}'
    # Censor the user's home directory
    msg = msg.replace(_USER_DIR, _CENSORED_DIR)
    print(msg, flush=True, file=target_stream)
