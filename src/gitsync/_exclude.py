"""Exclude filter for local directory scans.

Combines ``--exclude`` patterns, an ``--exclude-from`` file and, when
asked, the ``.gitignore`` files found while walking the tree.  Pattern
syntax follows gitignore rules (``dulwich.ignore.IgnoreFilter``).
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

from dulwich.ignore import IgnoreFilter


class ExcludeFilter:
    """Predicate deciding which local paths a scan skips."""

    def __init__(
        self,
        *,
        patterns: Sequence[str] | None = None,
        exclude_from: str | None = None,
        gitignore: bool = False,
    ) -> None:
        lines: list[bytes] = [p.encode("utf-8") for p in patterns or ()]
        if exclude_from is not None:
            for raw in Path(exclude_from).read_bytes().splitlines():
                line = raw.strip()
                if line and not line.startswith(b"#"):
                    lines.append(line)
        self._base: IgnoreFilter | None = IgnoreFilter(lines) if lines else None
        self._gitignore = gitignore
        # {rel_dir: IgnoreFilter | None}, filled as the walk enters directories
        self._dir_filters: dict[str, IgnoreFilter | None] = {}

    @property
    def active(self) -> bool:
        return self._base is not None or self._gitignore

    def enter_directory(self, abs_dir: Path, rel_dir: str) -> None:
        """Load ``.gitignore`` from *abs_dir* if gitignore mode is on."""
        if not self._gitignore or rel_dir in self._dir_filters:
            return
        gi = abs_dir / ".gitignore"
        self._dir_filters[rel_dir] = (
            IgnoreFilter.from_path(str(gi)) if gi.is_file() else None
        )

    def is_excluded(self, rel_path: str, *, is_dir: bool = False) -> bool:
        """Check *rel_path* against the patterns and loaded ``.gitignore`` files.

        ``enter_directory`` must already have run for every ancestor.
        """
        check = rel_path + "/" if is_dir else rel_path
        if self._base is not None and self._base.is_ignored(check) is True:
            return True
        if not self._gitignore:
            return False

        # The deepest .gitignore with an opinion wins
        parts = rel_path.split("/")
        for depth in range(len(parts) - 1, -1, -1):
            filt = self._dir_filters.get("/".join(parts[:depth]))
            if filt is None:
                continue
            sub = "/".join(parts[depth:])
            result = filt.is_ignored(sub + "/" if is_dir else sub)
            if result is not None:
                return result
        return False
