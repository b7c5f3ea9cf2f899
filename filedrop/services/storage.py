from __future__ import annotations

import logging
from pathlib import Path

import psutil

from .errors import Unavailable

logger = logging.getLogger(__name__)


def percent_used(used: int, total: int) -> int:
    if total <= 0:
        return 0
    return round(used / total * 100)


def disk_usage(root: str | Path) -> dict:
    try:
        usage = psutil.disk_usage(str(root))
    except (OSError, NotImplementedError) as exc:
        logger.error('Disk usage unavailable for %s: %s', root, exc)
        raise Unavailable() from exc

    return {
        'total': usage.total,
        'free': usage.free,
        'used': usage.used,
        'percentUsed': percent_used(usage.used, usage.total),
    }
