from __future__ import annotations

from typing import Optional
from urllib.parse import quote, unquote_plus

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from fastapi.responses import FileResponse, StreamingResponse

from ..config import settings
from ..deps import get_file_ops
from ..schemas import FolderCreateRequest, FolderCreateResponse, ListingResponse, MessageResponse, UploadResponse
from ..services.archive import ArchiveStreamer
from ..services.errors import EmptySelection
from ..services.file_ops import FileOps
from ..services.uploads import UploadDescriptor, store_batch

router = APIRouter(prefix='/api', tags=['files'])


def _attachment(filename: str) -> dict[str, str]:
    quoted = quote(filename)
    if quoted != filename:
        return {'Content-Disposition': f"attachment; filename*=utf-8''{quoted}"}
    return {'Content-Disposition': f'attachment; filename="{filename}"'}


def _streamer(ops: FileOps) -> ArchiveStreamer:
    return ArchiveStreamer(ops, compress_level=settings.zip_compress_level, chunk_size=settings.upload_chunk_size)


def split_paths(raw_query: str) -> list[str]:
    """Collect the entries of every ``paths`` parameter in a raw query string.

    Entries are separated by literal commas and percent-decoded one by one,
    so a name containing a comma arrives as ``%2C`` and stays in one piece.
    """
    entries: list[str] = []
    for pair in raw_query.split('&'):
        key, _, value = pair.partition('=')
        if unquote_plus(key) != 'paths':
            continue
        entries.extend(unquote_plus(part).strip() for part in value.split(','))
    return [entry for entry in entries if entry]


@router.get('/files', response_model=ListingResponse)
def list_files(path: str = Query(default=''), ops: FileOps = Depends(get_file_ops)):
    folder, items = ops.list_dir(path)
    return {'currentPath': folder.relative, 'items': items}


@router.post('/upload', response_model=UploadResponse)
async def upload(
    folder: str = Form(default=''),
    files: Optional[list[UploadFile]] = File(default=None),
    paths: Optional[list[str]] = Form(default=None),
    ops: FileOps = Depends(get_file_ops),
):
    if not files:
        raise EmptySelection('No files uploaded')

    subpaths = paths or []
    descriptors = [
        UploadDescriptor(
            target_folder=folder,
            filename=file.filename or '',
            source=file,
            relative_subpath=(subpaths[index] if index < len(subpaths) else None) or None,
            size_hint=file.size,
        )
        for index, file in enumerate(files)
    ]
    try:
        stored = await store_batch(ops, descriptors, settings.max_upload_bytes, settings.upload_chunk_size)
    finally:
        for file in files:
            await file.close()

    return {'message': 'Files uploaded successfully', 'files': [item.as_dict() for item in stored]}


@router.get('/download/{path:path}')
def download(path: str, ops: FileOps = Depends(get_file_ops)):
    target = ops.open_file(path)
    return FileResponse(target.absolute, filename=target.name)


@router.get('/download-zip/{path:path}')
def download_zip(path: str, ops: FileOps = Depends(get_file_ops)):
    filename, chunks = _streamer(ops).stream_folder(path)
    return StreamingResponse(chunks, media_type='application/zip', headers=_attachment(filename))


@router.get('/download-multi')
def download_multi(request: Request, ops: FileOps = Depends(get_file_ops)):
    chunks = _streamer(ops).stream_paths(split_paths(request.url.query))
    return StreamingResponse(chunks, media_type='application/zip', headers=_attachment('download.zip'))


@router.post('/folder', response_model=FolderCreateResponse)
def create_folder(payload: FolderCreateRequest, ops: FileOps = Depends(get_file_ops)):
    created = ops.create_folder(payload.path, payload.name)
    return {'message': 'Folder created successfully', 'path': created}


@router.delete('/delete/{path:path}', response_model=MessageResponse)
def delete(path: str, ops: FileOps = Depends(get_file_ops)):
    ops.delete(path)
    return {'message': 'Deleted successfully'}
