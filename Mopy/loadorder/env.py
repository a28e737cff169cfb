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
"""Filesystem access used by the load order engine. Everything that touches
the disk goes through a LocalFs instance, so tests (and embedders) can pass
in their own implementation. All methods raise OSError on failure."""
import os
import shutil
import stat
import sys
import tempfile

from .bolt import deprint

def clear_read_only(filepath):
    os.chmod(f'{filepath}', stat.S_IWUSR | stat.S_IRUSR | stat.S_IWOTH)

def is_case_sensitive(test_path):
    """Check if the specified path is case-sensitive."""
    with tempfile.TemporaryDirectory(dir=test_path) as temp_ci_test:
        for fname in ('.lo_case_test', '.Lo_CaSe_TeSt'):
            with open(os.path.join(temp_ci_test, fname), 'wb'):
                pass
        return len(os.listdir(temp_ci_test)) == 2

def get_local_app_data_path():
    """Return the user's local application data folder along with a string
    describing where we got it from."""
    if sys.platform == 'win32':
        return (os.environ.get('LOCALAPPDATA'),
                'Folder path retrieved via %LOCALAPPDATA%')
    xdg_data = os.environ.get('XDG_DATA_HOME') or os.path.expanduser(
        os.path.join('~', '.local', 'share'))
    return (xdg_data, 'Folder path retrieved via $XDG_DATA_HOME (or '
                      'fallback to ~/.local/share)')

class LocalFs(object):
    """Synchronous access to the local file system."""

    def list_dir(self, dir_path):
        """Return the names of the regular files in dir_path."""
        with os.scandir(dir_path) as entries:
            return [e.name for e in entries if e.is_file()]

    def exists(self, path):
        return os.path.exists(path)

    def get_mtime(self, path) -> float:
        return os.stat(path).st_mtime

    def get_size(self, path) -> int:
        return os.stat(path).st_size

    def set_mtime(self, path, mtime):
        try:
            os.utime(path, (os.stat(path).st_atime, mtime))
        except PermissionError:
            clear_read_only(path)
            os.utime(path, (os.stat(path).st_atime, mtime))

    def read_prefix(self, path, size) -> bytes:
        """Read at most size bytes from the start of the file."""
        with open(path, 'rb') as ins:
            return ins.read(size)

    def read_bytes(self, path) -> bytes:
        with open(path, 'rb') as ins:
            return ins.read()

    def atomic_write(self, path, data: bytes):
        """Write data to a temporary file next to path and replace path with
        it - readers will see either the old or the new contents."""
        out_dir = os.path.dirname(path) or '.'
        os.makedirs(out_dir, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=out_dir, suffix='.tmp',
            prefix=f'{os.path.basename(path)}.')
        try:
            with os.fdopen(fd, 'wb') as out:
                out.write(data)
            try:
                os.replace(tmp_path, path)
            except PermissionError:
                clear_read_only(path)
                os.replace(tmp_path, path)
        except BaseException:
            try:
                os.remove(tmp_path)
            except OSError:
                deprint(f'Failed to remove {tmp_path}', traceback=True)
            raise

    def copy(self, src_path, dest_path):
        shutil.copy2(src_path, dest_path)

    def is_case_sensitive(self, dir_path):
        return is_case_sensitive(dir_path)
