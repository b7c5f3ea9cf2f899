from __future__ import annotations

from datetime import datetime, timezone
from importlib.metadata import PackageNotFoundError, version

from ..config import settings

DISTRIBUTION = 'filedrop'


def get_version() -> str:
    if settings.app_version:
        return settings.app_version
    try:
        return version(DISTRIBUTION)
    except PackageNotFoundError:
        return 'unknown'


def health() -> dict:
    return {'status': 'ok', 'timestamp': datetime.now(timezone.utc).isoformat()}
