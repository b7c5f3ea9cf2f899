from __future__ import annotations

import asyncio
import logging
import os
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

import aiofiles
import aiofiles.os

from .errors import AlreadyExists, NotADirectory, UploadTooLarge, WriteFailure
from .file_ops import FileOps

logger = logging.getLogger(__name__)


class AsyncReadable(Protocol):
    async def read(self, size: int = -1) -> bytes:
        ...


@dataclass
class UploadDescriptor:
    target_folder: str
    filename: str
    source: AsyncReadable
    relative_subpath: Optional[str] = None
    size_hint: Optional[int] = None


@dataclass(frozen=True)
class StoredFile:
    name: str
    size: int
    path: str

    def as_dict(self) -> dict:
        return {'name': self.name, 'size': self.size, 'path': self.path}


def _discard(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning('Could not remove staging file %s: %s', path, exc)


def _too_large(max_bytes: int) -> UploadTooLarge:
    return UploadTooLarge(f'File exceeds the maximum upload size of {max_bytes} bytes')


def _staging_path(destination: Path) -> Path:
    # same folder as the destination so os.replace stays on one filesystem
    return destination.with_name(f'.{destination.name}.part-{uuid.uuid4().hex}')


async def _copy(source: AsyncReadable, destination: Path, max_bytes: int, chunk_size: int) -> int:
    written = 0
    async with aiofiles.open(destination, 'wb') as out:
        while chunk := await source.read(chunk_size):
            written += len(chunk)
            if written > max_bytes:
                raise _too_large(max_bytes)
            await out.write(chunk)
        await out.flush()
        await asyncio.to_thread(os.fsync, out.fileno())
    return written


async def store_upload(ops: FileOps, upload: UploadDescriptor, max_bytes: int, chunk_size: int) -> StoredFile:
    """Write one upload under the storage root.

    Bytes go to a hidden staging file next to the destination, which is only
    renamed over the destination once the copy is complete and synced. A file
    already at the destination is untouched until then, so a failed upload
    never costs the previous version.
    """
    folder = ops.safe_path(upload.target_folder)
    destination = ops.resolver.join(folder, upload.relative_subpath or upload.filename)

    if upload.size_hint is not None and upload.size_hint > max_bytes:
        raise _too_large(max_bytes)
    if destination.absolute.is_dir():
        raise AlreadyExists(f'A folder named {destination.name!r} already exists')

    try:
        destination.absolute.parent.mkdir(parents=True, exist_ok=True)
    except (FileExistsError, NotADirectoryError) as exc:
        raise NotADirectory('Upload destination is inside a file') from exc
    except OSError as exc:
        logger.error('Failed to prepare upload folder for %s: %s', destination.relative, exc)
        raise WriteFailure() from exc

    staging = _staging_path(destination.absolute)
    try:
        written = await _copy(upload.source, staging, max_bytes, chunk_size)
        await aiofiles.os.replace(staging, destination.absolute)
    except OSError as exc:
        _discard(staging)
        logger.error('Failed to write upload %s: %s', destination.relative, exc)
        raise WriteFailure() from exc
    except BaseException:
        # only the staging file is removed; the destination keeps its old content
        _discard(staging)
        raise

    logger.info('Stored upload %s (%d bytes)', destination.relative, written)
    return StoredFile(name=upload.filename, size=written, path=destination.relative)


async def store_batch(ops: FileOps, uploads: list[UploadDescriptor], max_bytes: int, chunk_size: int) -> list[StoredFile]:
    stored: list[StoredFile] = []
    for upload in uploads:
        try:
            stored.append(await store_upload(ops, upload, max_bytes, chunk_size))
        except Exception:
            if stored:
                logger.warning('Upload batch failed after %d of %d files; written files are kept', len(stored), len(uploads))
            raise
    return stored
