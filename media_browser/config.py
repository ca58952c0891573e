from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8')

    app_name: str = 'Media Browser'
    app_host: str = '127.0.0.1'
    app_port: int = 9898
    media_root: str = '.'
    media_extensions: str = ''
    stream_chunk_size: int = Field(default=32 * 1024, ge=1024, le=8 * 1024 * 1024)
    log_level: str = 'info'
    cors_origins: str = ''


def parse_extensions(value: str) -> frozenset[str]:
    exts = set()
    for raw in value.split(','):
        ext = raw.strip().lower()
        if not ext:
            continue
        exts.add(ext if ext.startswith('.') else f'.{ext}')
    return frozenset(exts)


settings = Settings()
