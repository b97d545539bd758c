"""In-memory overlay over the files of a workspace.

Manifest writes made during a versioning run are held here until
``flush()``. A dry run simply never flushes, so it cannot touch the disk
while still being able to report which files would change.
"""

from __future__ import annotations

import posixpath
from pathlib import Path

import tomlkit


def normalize_path(path: str | Path) -> str:
    """Normalise a workspace-relative path to forward slashes.

    Examples:
        "packages/a/../b/pyproject.toml" → "packages/b/pyproject.toml"
        "./pyproject.toml" → "pyproject.toml"
    """
    normalized = posixpath.normpath(str(path).replace("\\", "/")).lstrip("/")
    return "" if normalized == "." else normalized


class ManifestTree:
    """Read-through, write-back view of the files under ``root``."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)
        self._pending: dict[str, str] = {}

    def exists(self, path: str) -> bool:
        key = normalize_path(path)
        return key in self._pending or (self.root / key).is_file()

    def read_text(self, path: str) -> str:
        key = normalize_path(path)
        if key in self._pending:
            return self._pending[key]
        return (self.root / key).read_text()

    def read(self, path: str) -> tomlkit.TOMLDocument:
        """Parse the TOML file at ``path``, including unflushed writes.

        Raises:
            FileNotFoundError: If the file exists neither in memory nor on disk.
        """
        return tomlkit.parse(self.read_text(path))

    def write(self, path: str, doc: tomlkit.TOMLDocument) -> None:
        self._pending[normalize_path(path)] = tomlkit.dumps(doc)

    def changed_files(self) -> list[str]:
        """Paths whose pending content differs from what is on disk."""
        changed: list[str] = []
        for key, content in self._pending.items():
            on_disk = self.root / key
            if not on_disk.is_file() or on_disk.read_text() != content:
                changed.append(key)
        return changed

    def flush(self) -> list[str]:
        """Write pending changes to disk and return the paths written."""
        written = self.changed_files()
        for key in written:
            dest = self.root / key
            dest.parent.mkdir(parents=True, exist_ok=True)
            dest.write_text(self._pending[key])
        self._pending.clear()
        return written
