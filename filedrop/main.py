from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from .config import settings
from .deps import get_file_ops
from .logging_setup import configure_logging
from .routers import files, system
from .services.errors import FileDropError
from .services.system_info import get_version

logger = logging.getLogger(__name__)

_BASE_DIR = Path(__file__).resolve().parent
_STATIC_DIR = _BASE_DIR / 'static'
_TEMPLATES_DIR = _BASE_DIR / 'templates'

_SECURITY_HEADERS = {
    'X-Frame-Options': 'DENY',
    'X-Content-Type-Options': 'nosniff',
    'Referrer-Policy': 'strict-origin-when-cross-origin',
}

# Large uploads and archive streams get their own (by default disabled) timeout.
_TRANSFER_PREFIXES = ('/api/upload', '/api/download/', '/api/download-zip/', '/api/download-multi')

_GENERIC_ERROR = 'Internal server error. Please try again.'


@asynccontextmanager
async def lifespan(_app: FastAPI):
    configure_logging(settings.log_level)
    ops = get_file_ops()
    ops.root.mkdir(parents=True, exist_ok=True)
    logger.info('%s serving %s', settings.app_name, ops.root)
    yield


app = FastAPI(title=settings.app_name, lifespan=lifespan)


def _parse_cors_origins(value: str) -> list[str]:
    return [origin.strip() for origin in value.split(',') if origin.strip()]


cors_origins = _parse_cors_origins(settings.cors_origins)
if cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials='*' not in cors_origins,
        allow_methods=['GET', 'POST', 'DELETE', 'OPTIONS'],
        allow_headers=['Content-Type'],
    )

if _STATIC_DIR.is_dir():
    app.mount('/static', StaticFiles(directory=_STATIC_DIR), name='static')
templates = Jinja2Templates(directory=str(_TEMPLATES_DIR))


def _apply_security_headers(response):
    for key, value in _SECURITY_HEADERS.items():
        response.headers[key] = value
    return response


def timeout_for(path: str) -> float | None:
    if path.startswith(_TRANSFER_PREFIXES):
        return settings.transfer_timeout_sec or None
    return settings.request_timeout_sec


@app.middleware('http')
async def timeout_middleware(request: Request, call_next):
    timeout = timeout_for(request.url.path)
    try:
        return await asyncio.wait_for(call_next(request), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning('%s %s timed out after %ss', request.method, request.url.path, timeout)
        return JSONResponse({'error': 'Request timed out'}, status_code=504)


def upload_request_limit() -> int:
    return settings.max_upload_bytes + settings.upload_overhead_bytes


@app.middleware('http')
async def upload_limit_middleware(request: Request, call_next):
    # The multipart parser spools every part before the route runs, so the
    # declared body length is checked while nothing has been read yet.
    if request.method != 'POST' or request.url.path != '/api/upload':
        return await call_next(request)
    declared = request.headers.get('content-length')
    if declared is None:
        return JSONResponse({'error': 'Content-Length is required for uploads'}, status_code=411)
    try:
        length = int(declared)
    except ValueError:
        return JSONResponse({'error': 'Invalid Content-Length'}, status_code=400)
    limit = upload_request_limit()
    if length > limit:
        logger.warning('Rejected upload of %d bytes (limit %d)', length, limit)
        return JSONResponse(
            {'error': f'File exceeds the maximum upload size of {settings.max_upload_bytes} bytes'},
            status_code=413,
        )
    return await call_next(request)


@app.middleware('http')
async def security_middleware(request: Request, call_next):
    response = await call_next(request)
    return _apply_security_headers(response)


@app.exception_handler(FileDropError)
async def filedrop_error_handler(request: Request, exc: FileDropError):
    if exc.status_code >= 500:
        logger.error('%s %s failed: %s', request.method, request.url.path, exc.message)
    return _apply_security_headers(JSONResponse({'error': exc.message}, status_code=exc.status_code))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception('Unhandled error on %s %s', request.method, request.url.path, exc_info=exc)
    if request.url.path.startswith('/api/'):
        response = JSONResponse({'error': _GENERIC_ERROR}, status_code=500)
    else:
        response = HTMLResponse('<h1>Unexpected error</h1><p>Please try again.</p>', status_code=500)
    return _apply_security_headers(response)


@app.get('/', response_class=HTMLResponse)
def index(request: Request):
    return templates.TemplateResponse(
        request,
        'index.html',
        {'app_name': settings.app_name, 'version': get_version()},
    )


app.include_router(files.router)
app.include_router(system.router)
