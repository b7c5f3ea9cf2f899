from __future__ import annotations


class FileDropError(Exception):
    status_code = 500
    default_message = 'Operation failed'

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidPath(FileDropError):
    status_code = 400
    default_message = 'Invalid path'


class NotFound(FileDropError):
    status_code = 404
    default_message = 'File or folder not found'


class NotADirectory(FileDropError):
    status_code = 400
    default_message = 'Not a directory'


class IsADirectory(FileDropError):
    status_code = 400
    default_message = 'Cannot download a directory'


class AlreadyExists(FileDropError):
    status_code = 400
    default_message = 'Folder already exists'


class MissingName(FileDropError):
    status_code = 400
    default_message = 'Folder name is required'


class UploadTooLarge(FileDropError):
    status_code = 413
    default_message = 'File exceeds the maximum upload size'


class WriteFailure(FileDropError):
    status_code = 500
    default_message = 'Failed to write file'


class Unavailable(FileDropError):
    status_code = 500
    default_message = 'Disk space information unavailable'


class ArchiveError(FileDropError):
    status_code = 500
    default_message = 'Failed to build archive'


class AccessDenied(FileDropError):
    status_code = 403
    default_message = 'Permission denied'


class EmptySelection(FileDropError):
    status_code = 400
    default_message = 'Nothing selected'
