from __future__ import annotations

import io
import logging
import os
import posixpath
import zipfile
from collections import deque
from pathlib import Path
from typing import Iterable, Iterator

from .errors import ArchiveError, EmptySelection, InvalidPath, NotADirectory, NotFound
from .file_ops import FileOps

logger = logging.getLogger(__name__)

ROOT_ARCHIVE_NAME = 'download'

# ZipInfo.compress_level is public from Python 3.13; older releases only have the underscored slot
_LEVEL_ATTR = 'compress_level' if hasattr(zipfile.ZipInfo, 'compress_level') else '_compresslevel'


class _ChunkSink(io.RawIOBase):
    """Write-only, unseekable buffer; zipfile switches to data descriptors."""

    def __init__(self):
        self._chunks: deque[bytes] = deque()

    def writable(self) -> bool:
        return True

    def write(self, data) -> int:
        self._chunks.append(bytes(data))
        return len(data)

    def drain(self) -> bytes:
        data = b''.join(self._chunks)
        self._chunks.clear()
        return data


def unique_name(name: str, taken: set[str]) -> str:
    if name not in taken:
        taken.add(name)
        return name
    stem, ext = posixpath.splitext(name)
    counter = 2
    while f'{stem} ({counter}){ext}' in taken:
        counter += 1
    candidate = f'{stem} ({counter}){ext}'
    taken.add(candidate)
    return candidate


class ArchiveStreamer:
    def __init__(self, ops: FileOps, compress_level: int = 9, chunk_size: int = 1024 * 1024):
        self.ops = ops
        self.compress_level = compress_level
        self.chunk_size = chunk_size

    def stream_folder(self, rel: str | None) -> tuple[str, Iterator[bytes]]:
        folder = self.ops.safe_path(rel)
        if not folder.absolute.exists():
            raise NotFound('Folder not found')
        if not folder.absolute.is_dir():
            raise NotADirectory()

        name = ROOT_ARCHIVE_NAME if folder.is_root else folder.name
        return f'{name}.zip', self._generate([(folder.absolute, '')])

    def stream_paths(self, rels: Iterable[str]) -> Iterator[bytes]:
        members: list[tuple[Path, str]] = []
        taken: set[str] = set()
        for raw in rels:
            target = self.ops.safe_path(raw)
            if target.is_root:
                raise InvalidPath('The storage root cannot be part of a selection')
            if not target.absolute.exists():
                raise NotFound(f'Not found: {target.relative}')
            members.append((target.absolute, unique_name(target.name, taken)))

        if not members:
            raise EmptySelection('No paths provided')
        return self._generate(members)

    def _walk(self, top: Path, arcname: str) -> Iterator[tuple[Path, str, bool]]:
        if not top.is_dir():
            yield top, arcname, False
            return

        stack: list[tuple[Path, str]] = [(top, arcname)]
        while stack:
            directory, prefix = stack.pop()
            if prefix:
                yield directory, prefix, True

            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)

            subdirs: list[tuple[Path, str]] = []
            for entry in entries:
                member = f'{prefix}/{entry.name}' if prefix else entry.name
                path = Path(entry.path)
                if entry.is_dir(follow_symlinks=False):
                    subdirs.append((path, member))
                elif entry.is_file():
                    if entry.is_symlink() and not self.ops.resolver.contains(path):
                        logger.warning('Skipping symlink leaving storage root: %s', member)
                        continue
                    yield path, member, False
            stack.extend(reversed(subdirs))

    def _write_file(self, zf: zipfile.ZipFile, sink: _ChunkSink, path: Path, member: str) -> Iterator[bytes]:
        info = zipfile.ZipInfo.from_file(path, member)
        info.compress_type = zipfile.ZIP_DEFLATED
        setattr(info, _LEVEL_ATTR, self.compress_level)
        with open(path, 'rb') as src, zf.open(info, 'w') as dest:
            while chunk := src.read(self.chunk_size):
                dest.write(chunk)
                data = sink.drain()
                if data:
                    yield data

    def _generate(self, members: list[tuple[Path, str]]) -> Iterator[bytes]:
        sink = _ChunkSink()
        current = ''
        try:
            with zipfile.ZipFile(
                sink,
                mode='w',
                compression=zipfile.ZIP_DEFLATED,
                compresslevel=self.compress_level,
                allowZip64=True,
            ) as zf:
                for top, arcname in members:
                    for path, member, is_dir in self._walk(top, arcname):
                        current = member
                        if is_dir:
                            zf.writestr(zipfile.ZipInfo.from_file(path, member), b'')
                        else:
                            yield from self._write_file(zf, sink, path, member)
                        data = sink.drain()
                        if data:
                            yield data
        except OSError as exc:
            logger.error('Archive aborted at %r: %s', current, exc)
            raise ArchiveError(f'Failed to add {current!r} to archive') from exc

        tail = sink.drain()
        if tail:
            yield tail
