"""
File-system ports.

Components never touch the disk directly; they receive a reader
(``read_file``, ``read_dir``, ``exists``) and a writer (``write_file``,
``ensure_dir``, ``copy_dir``, ``clean``). Every method returns a
``(success, value_or_error)`` tuple except ``exists``.

The ``Memory*`` implementations share a :class:`MemoryStore` and are used by
the test suite and by anyone embedding Folio without a real disk.
"""

import os
import shutil
import logging
from typing import Dict, List, Set, Tuple

from .errors import ErrorKind, create_error

logger = logging.getLogger('Folio.ports')


class LocalFileSystem:
    """Read-only access to the local disk."""

    def read_file(self, path):
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return True, f.read()
        except FileNotFoundError as e:
            return False, create_error(ErrorKind.NOT_FOUND, f"File not found: {path}", e, path=path)
        except (IOError, OSError, UnicodeDecodeError) as e:
            return False, create_error(ErrorKind.IO, f"Failed to read file: {path}", e, path=path)

    def read_dir(self, path):
        try:
            return True, sorted(os.listdir(path))
        except (IOError, OSError) as e:
            return False, create_error(ErrorKind.IO, f"Failed to read directory: {path}", e, path=path)

    def exists(self, path):
        return os.path.exists(path)


class LocalFileWriter:
    """Write access to the local disk."""

    def write_file(self, path, content):
        try:
            parent = os.path.dirname(path)
            if parent:
                os.makedirs(parent, exist_ok=True)
            with open(path, 'w', encoding='utf-8') as f:
                f.write(content)
            return True, None
        except (IOError, OSError, PermissionError) as e:
            return False, create_error(ErrorKind.IO, f"Failed to write file: {path}", e, path=path)

    def ensure_dir(self, path):
        try:
            os.makedirs(path, exist_ok=True)
            return True, None
        except (IOError, OSError, PermissionError) as e:
            return False, create_error(ErrorKind.IO, f"Failed to ensure directory: {path}", e, path=path)

    def copy_dir(self, src, dest):
        """Copy ``src`` into ``dest``. Returns the number of files copied."""
        try:
            shutil.copytree(src, dest, dirs_exist_ok=True)
        except (IOError, OSError, shutil.Error) as e:
            return False, create_error(ErrorKind.IO, f"Failed to copy {src} to {dest}", e, path=src)

        copied = sum(len(files) for _, _, files in os.walk(src))
        logger.debug(f"Copied {copied} files from {src} to {dest}")
        return True, copied

    def clean(self, path):
        try:
            shutil.rmtree(path)
        except FileNotFoundError:
            pass
        except (IOError, OSError, PermissionError) as e:
            return False, create_error(ErrorKind.IO, f"Failed to clean directory: {path}", e, path=path)
        return True, None


class MemoryStore:
    """A flat map of normalized paths to text, plus the set of known directories."""

    def __init__(self, files: Dict[str, str] = None):
        self.files: Dict[str, str] = {}
        self.dirs: Set[str] = set()
        for path, content in (files or {}).items():
            self.put(path, content)

    @staticmethod
    def norm(path: str) -> str:
        return os.path.normpath(path).replace(os.sep, '/')

    def put(self, path: str, content: str) -> None:
        path = self.norm(path)
        self.files[path] = content
        self.add_dir(os.path.dirname(path))

    def add_dir(self, path: str) -> None:
        while path and path not in self.dirs:
            self.dirs.add(path)
            path = os.path.dirname(path)

    def children(self, path: str) -> List[str]:
        prefix = self.norm(path).rstrip('/') + '/'
        names = set()
        for entry in list(self.files) + list(self.dirs):
            if entry.startswith(prefix):
                names.add(entry[len(prefix):].split('/', 1)[0])
        return sorted(names)


class MemoryFileSystem:
    def __init__(self, store: MemoryStore = None):
        self.store = store or MemoryStore()

    def read_file(self, path):
        key = self.store.norm(path)
        if key not in self.store.files:
            return False, create_error(ErrorKind.NOT_FOUND, f"File not found: {path}", path=path)
        return True, self.store.files[key]

    def read_dir(self, path):
        key = self.store.norm(path)
        if key not in self.store.dirs:
            return False, create_error(ErrorKind.IO, f"Failed to read directory: {path}", path=path)
        return True, self.store.children(key)

    def exists(self, path):
        key = self.store.norm(path)
        return key in self.store.files or key in self.store.dirs


class MemoryFileWriter:
    def __init__(self, store: MemoryStore = None):
        self.store = store or MemoryStore()

    def write_file(self, path, content):
        self.store.put(path, content)
        return True, None

    def ensure_dir(self, path):
        self.store.add_dir(self.store.norm(path))
        return True, None

    def copy_dir(self, src, dest):
        prefix = self.store.norm(src).rstrip('/') + '/'
        if self.store.norm(src) not in self.store.dirs:
            return False, create_error(ErrorKind.IO, f"Failed to copy {src} to {dest}", path=src)
        copied = 0
        for path, content in list(self.store.files.items()):
            if path.startswith(prefix):
                self.store.put(os.path.join(dest, path[len(prefix):]), content)
                copied += 1
        return True, copied

    def clean(self, path):
        prefix = self.store.norm(path).rstrip('/') + '/'
        root = self.store.norm(path)
        self.store.files = {p: c for p, c in self.store.files.items() if not p.startswith(prefix)}
        self.store.dirs = {d for d in self.store.dirs if d != root and not d.startswith(prefix)}
        return True, None


def memory_ports(files: Dict[str, str] = None) -> Tuple[MemoryFileSystem, MemoryFileWriter]:
    """A reader and writer over one shared in-memory store."""
    store = MemoryStore(files)
    return MemoryFileSystem(store), MemoryFileWriter(store)
