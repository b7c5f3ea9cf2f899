from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class Entry(BaseModel):
    name: str
    path: str
    type: str = Field(pattern='^(file|folder)$')
    size: Optional[int] = None
    modified: datetime


class ListingResponse(CamelModel):
    current_path: str = Field(alias='currentPath')
    items: list[Entry]


class FolderCreateRequest(BaseModel):
    path: Optional[str] = ''
    name: Optional[str] = None


class FolderCreateResponse(BaseModel):
    message: str
    path: str


class StoredFileOut(BaseModel):
    name: str
    size: int
    path: str


class UploadResponse(BaseModel):
    message: str
    files: list[StoredFileOut]


class MessageResponse(BaseModel):
    message: str


class DiskSpaceResponse(CamelModel):
    total: int
    free: int
    used: int
    percent_used: int = Field(alias='percentUsed')


class VersionResponse(BaseModel):
    version: str


class HealthResponse(BaseModel):
    status: str
    timestamp: str
