from __future__ import annotations

import logging
import os
import shutil
from datetime import datetime, timezone
from pathlib import Path

from .errors import AccessDenied, AlreadyExists, InvalidPath, IsADirectory, MissingName, NotADirectory, NotFound, WriteFailure
from .paths import PathResolver, ResolvedPath

logger = logging.getLogger(__name__)


def sort_key(item: dict) -> tuple:
    return (item['type'] != 'folder', item['name'].casefold(), item['name'])


def _exists(path: Path) -> bool:
    return path.exists() or path.is_symlink()


class FileOps:
    """Every filesystem touch for a single storage root goes through here."""

    def __init__(self, root: str | Path):
        self.resolver = PathResolver(root)

    @property
    def root(self) -> Path:
        return self.resolver.root

    def safe_path(self, rel: str | None) -> ResolvedPath:
        return self.resolver.resolve(rel)

    def list_dir(self, rel: str | None) -> tuple[ResolvedPath, list[dict]]:
        target = self.safe_path(rel)
        if not target.absolute.exists():
            raise NotFound('Directory not found')
        if not target.absolute.is_dir():
            raise NotADirectory()

        items: list[dict] = []
        try:
            with os.scandir(target.absolute) as entries:
                for entry in entries:
                    item = self._describe(target, entry)
                    if item is not None:
                        items.append(item)
        except PermissionError as exc:
            raise AccessDenied() from exc
        except FileNotFoundError as exc:
            raise NotFound('Directory not found') from exc

        items.sort(key=sort_key)
        return target, items

    def _describe(self, parent: ResolvedPath, entry: os.DirEntry) -> dict | None:
        try:
            stat = entry.stat()
        except FileNotFoundError:
            # dangling symlink, or removed since scandir
            try:
                stat = entry.stat(follow_symlinks=False)
            except FileNotFoundError:
                return None
        except PermissionError:
            stat = entry.stat(follow_symlinks=False)

        is_dir = entry.is_dir()
        return {
            'name': entry.name,
            'path': f'{parent.relative}/{entry.name}' if parent.relative else entry.name,
            'type': 'folder' if is_dir else 'file',
            'size': None if is_dir else stat.st_size,
            'modified': datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        }

    def create_folder(self, rel: str | None, name: str | None) -> str:
        if not name or not name.strip():
            raise MissingName()

        parent = self.safe_path(rel)
        target = self.resolver.join(parent, name.strip())
        if _exists(target.absolute):
            raise AlreadyExists()

        try:
            target.absolute.mkdir(parents=True, exist_ok=False)
        except FileExistsError as exc:
            raise AlreadyExists() from exc
        except NotADirectoryError as exc:
            raise NotADirectory('Parent path is not a folder') from exc
        except PermissionError as exc:
            raise AccessDenied() from exc
        except OSError as exc:
            logger.error('Failed to create folder %s: %s', target.relative, exc)
            raise WriteFailure('Failed to create folder') from exc

        logger.info('Created folder %s', target.relative)
        return target.relative

    def delete(self, rel: str | None) -> None:
        target = self.resolver.resolve_entry(rel)
        if target.is_root:
            raise InvalidPath('Cannot delete the storage root')

        path = target.absolute
        if not _exists(path):
            raise NotFound()

        try:
            if path.is_dir() and not path.is_symlink():
                shutil.rmtree(path)
            else:
                path.unlink()
        except FileNotFoundError as exc:
            raise NotFound() from exc
        except PermissionError as exc:
            raise AccessDenied() from exc
        except OSError as exc:
            logger.error('Failed to delete %s: %s', target.relative, exc)
            raise WriteFailure('Failed to delete') from exc

        logger.info('Deleted %s', target.relative)

    def open_file(self, rel: str | None) -> ResolvedPath:
        target = self.safe_path(rel)
        if not target.absolute.exists():
            raise NotFound('File not found')
        if target.absolute.is_dir():
            raise IsADirectory()
        return target
