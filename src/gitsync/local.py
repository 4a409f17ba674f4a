"""Local files offered to a sync run."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from ._exclude import ExcludeFilter
from .hashing import blob_sha, file_blob_sha
from .paths import sanitize_path

# Never uploaded from a working copy
_ALWAYS_SKIPPED_DIRS = frozenset({".git"})


@dataclass(frozen=True)
class LocalFile:
    """A file to sync: its normalized relative path and where its bytes live.

    *source* is a filesystem path (read lazily) or the content itself.
    """
    path: str
    source: Path | bytes

    @classmethod
    def from_bytes(cls, path: str, data: bytes) -> LocalFile:
        return cls(path, bytes(data))

    def read(self) -> bytes:
        if isinstance(self.source, bytes):
            return self.source
        return Path(self.source).read_bytes()

    def blob_sha(self) -> str:
        """Git blob OID of the content; ``OSError`` if it cannot be read."""
        if isinstance(self.source, bytes):
            return blob_sha(self.source)
        return file_blob_sha(self.source)


def local_files(entries) -> list[LocalFile]:
    """Normalize ``(raw_path, source)`` pairs, dropping rejected paths.

    Device-supplied paths can contain backslashes or traversal segments;
    whatever normalizes to nothing is filtered out here.
    """
    result: list[LocalFile] = []
    for raw, source in entries:
        path = sanitize_path(raw)
        if not path:
            continue
        if not isinstance(source, bytes):
            source = Path(source)
        result.append(LocalFile(path, source))
    return result


def scan_directory(
    root: str | os.PathLike[str],
    *,
    exclude: ExcludeFilter | None = None,
) -> list[LocalFile]:
    """Collect every regular file under *root*, sorted by path.

    Symlinked directories are not descended into.  Paths are relative to
    *root* (the folder's own name is not part of them).
    """
    base = Path(root)
    if not base.is_dir():
        raise NotADirectoryError(os.fspath(root))

    found: list[tuple[str, Path]] = []
    for dirpath, dirnames, filenames in os.walk(base):
        dp = Path(dirpath)
        rel_dir = dp.relative_to(base).as_posix()
        if rel_dir == ".":
            rel_dir = ""
        if exclude is not None:
            exclude.enter_directory(dp, rel_dir)

        kept = []
        for dname in sorted(dirnames):
            if dname in _ALWAYS_SKIPPED_DIRS or (dp / dname).is_symlink():
                continue
            rel = f"{rel_dir}/{dname}" if rel_dir else dname
            if exclude is not None and exclude.is_excluded(rel, is_dir=True):
                continue
            kept.append(dname)
        dirnames[:] = kept

        for fname in filenames:
            full = dp / fname
            if not full.is_file():
                continue
            rel = f"{rel_dir}/{fname}" if rel_dir else fname
            if exclude is not None and exclude.is_excluded(rel):
                continue
            found.append((rel, full))

    files = local_files(found)
    files.sort(key=lambda f: f.path)
    return files
