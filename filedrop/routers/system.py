from __future__ import annotations

from fastapi import APIRouter, Depends

from ..deps import get_file_ops
from ..schemas import DiskSpaceResponse, HealthResponse, VersionResponse
from ..services.file_ops import FileOps
from ..services.storage import disk_usage
from ..services.system_info import get_version, health

router = APIRouter(prefix='/api', tags=['system'])


@router.get('/disk-space', response_model=DiskSpaceResponse)
def disk_space(ops: FileOps = Depends(get_file_ops)):
    return disk_usage(ops.root)


@router.get('/version', response_model=VersionResponse)
def version():
    return {'version': get_version()}


@router.get('/health', response_model=HealthResponse)
def health_check():
    return health()
