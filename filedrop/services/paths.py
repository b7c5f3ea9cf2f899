from __future__ import annotations

import logging
import posixpath
import re
from dataclasses import dataclass
from pathlib import Path

from .errors import InvalidPath

logger = logging.getLogger(__name__)

_DRIVE_PREFIX = re.compile(r'^[A-Za-z]:')


@dataclass(frozen=True)
class ResolvedPath:
    """A location inside the storage root.

    Only ``PathResolver`` builds these; ``relative`` is the normalized
    forward-slash form handed back to clients (``''`` for the root).
    """

    absolute: Path
    relative: str

    @property
    def name(self) -> str:
        return self.absolute.name

    @property
    def is_root(self) -> bool:
        return self.relative == ''


def normalize_relative(requested_path: str | None) -> str:
    raw = (requested_path or '').replace('\\', '/')
    if '\x00' in raw:
        raise InvalidPath('Path contains a null byte')
    if raw.startswith('/') or _DRIVE_PREFIX.match(raw):
        raise InvalidPath('Absolute paths are not allowed')
    if not raw:
        return ''

    normalized = posixpath.normpath(raw)
    if normalized == '.':
        return ''
    if normalized == '..' or normalized.startswith('../'):
        raise InvalidPath('Path escapes the storage root')
    return normalized


class PathResolver:
    def __init__(self, root: str | Path):
        self.root = Path(root).resolve(strict=False)

    def resolve(self, requested_path: str | None) -> ResolvedPath:
        return self._confine(normalize_relative(requested_path))

    def join(self, parent: ResolvedPath, requested_path: str | None) -> ResolvedPath:
        relative = normalize_relative(requested_path)
        if not relative:
            raise InvalidPath('Path must name an entry below its parent')
        if parent.relative:
            relative = f'{parent.relative}/{relative}'
        return self._confine(relative)

    def resolve_entry(self, requested_path: str | None) -> ResolvedPath:
        """Resolve a path without following a symlink in its last component.

        The parent folder is confined as usual; the entry itself is taken as
        it sits in that folder, so a link pointing outside the root can still
        be unlinked.
        """
        relative = normalize_relative(requested_path)
        if not relative:
            return self._confine(relative)
        parent, _, name = relative.rpartition('/')
        folder = self._confine(parent)
        return ResolvedPath(absolute=folder.absolute / name, relative=relative)

    def contains(self, path: Path) -> bool:
        try:
            canonical = path.resolve(strict=False)
        except (OSError, RuntimeError):
            return False
        return canonical == self.root or self.root in canonical.parents

    def _confine(self, relative: str) -> ResolvedPath:
        candidate = self.root.joinpath(*relative.split('/')) if relative else self.root
        if not self.contains(candidate):
            logger.warning('Rejected path escaping storage root: %r', relative)
            raise InvalidPath('Path escapes the storage root')
        return ResolvedPath(absolute=candidate, relative=relative)
