from __future__ import annotations

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8')

    app_name: str = 'FileDrop'
    app_version: Optional[str] = None
    app_host: str = '0.0.0.0'
    app_port: int = 3000
    upload_dir: str = './uploads'
    max_upload_bytes: int = Field(default=4 * 1024 ** 3, ge=1)
    upload_overhead_bytes: int = Field(default=1024 * 1024, ge=0)
    upload_chunk_size: int = Field(default=1024 * 1024, ge=64 * 1024, le=64 * 1024 * 1024)
    zip_compress_level: int = Field(default=9, ge=0, le=9)
    request_timeout_sec: float = Field(default=30, gt=0)
    transfer_timeout_sec: float = Field(default=0, ge=0)
    log_level: str = 'info'
    cors_origins: str = '*'


settings = Settings()
