"""Factory for configuring stream backends from environment variables."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .local import LocalFileStore
from .s3 import S3BlobStore


@dataclass
class StreamSettings:
    read_chunk_size: int
    write_high_water_mark: int
    resolve_max_workers: int
    s3_region: Optional[str] = None
    s3_endpoint_url: Optional[str] = None
    s3_use_path_style: bool = False
    s3_verify_ssl: bool = True


def load_stream_settings_from_env() -> StreamSettings:
    # Values come from the config module so env parsing lives in one place.
    from . import config

    return StreamSettings(
        read_chunk_size=int(config.READ_CHUNK_SIZE),
        write_high_water_mark=int(config.WRITE_HIGH_WATER_MARK),
        resolve_max_workers=int(config.RESOLVE_MAX_WORKERS),
        s3_region=config.S3_REGION,
        s3_endpoint_url=config.S3_ENDPOINT_URL,
        s3_use_path_style=bool(config.S3_USE_PATH_STYLE),
        s3_verify_ssl=bool(config.S3_VERIFY_SSL),
    )


def build_local_store(settings: StreamSettings) -> LocalFileStore:
    return LocalFileStore()


def build_blob_store(settings: StreamSettings) -> S3BlobStore:
    return S3BlobStore(
        region=settings.s3_region,
        endpoint_url=settings.s3_endpoint_url,
        use_path_style=settings.s3_use_path_style,
        verify_ssl=settings.s3_verify_ssl,
    )
