"""Stream service facade over the locator, stream, array and resolver layers."""

from __future__ import annotations

import threading
from concurrent.futures import Future
from typing import Any, Optional, Sequence, Union

from .arrays import ArrayReader, ArrayWriter, open_read_array, open_write_array
from .factory import StreamSettings, build_blob_store, build_local_store, load_stream_settings_from_env
from .resolver import ResourceResolver, load_json
from .streams import CompletionCallback, ReadStream, StreamFactory, WriteStream


class StreamService:
    """Facade to hide transport details from callers."""

    def __init__(self, settings: Optional[StreamSettings] = None, blob_store=None, file_store=None):
        self.settings = settings or load_stream_settings_from_env()
        self.blob_store = blob_store or build_blob_store(self.settings)
        self.file_store = file_store or build_local_store(self.settings)
        self.factory = StreamFactory(
            self.blob_store,
            self.file_store,
            read_chunk_size=self.settings.read_chunk_size,
            write_high_water_mark=self.settings.write_high_water_mark,
        )
        self.resolver = ResourceResolver(self.factory, max_workers=self.settings.resolve_max_workers)

    def open_read(self, descriptor) -> ReadStream:
        return self.factory.open_read(descriptor)

    def open_write(self, destination, on_complete: Optional[CompletionCallback] = None,
                   throw_error: bool = False) -> WriteStream:
        """Open an upload stream.

        With ``throw_error=True`` a failed upload terminates the process
        instead of reaching the callback-less error channel. Only meant for
        fire-and-forget batch jobs.
        """
        return self.factory.open_write(destination, on_complete=on_complete, throw_error=throw_error)

    def open_read_array(self, source) -> ArrayReader:
        return open_read_array(self.factory, source)

    def open_write_array(self, destination, on_complete: Optional[CompletionCallback] = None,
                         throw_error: bool = False) -> ArrayWriter:
        return open_write_array(self.factory, destination, on_complete=on_complete, throw_error=throw_error)

    def load_json(self, descriptor) -> Any:
        return load_json(self.factory, descriptor)

    def resolve(self, document: dict, keys: Union[str, Sequence[str]]) -> dict:
        return self.resolver.resolve(document, keys)

    def resolve_keys(self, document: dict, *keys: str) -> dict:
        return self.resolver.resolve_keys(document, *keys)

    def resolve_async(self, document: dict, keys: Union[str, Sequence[str]]) -> Future:
        return self.resolver.resolve_async(document, keys)


_stream_service_singleton: Optional[StreamService] = None
_stream_service_singleton_lock = threading.Lock()


def get_stream_service() -> StreamService:
    global _stream_service_singleton
    if _stream_service_singleton is None:
        with _stream_service_singleton_lock:
            if _stream_service_singleton is None:
                _stream_service_singleton = StreamService()
    return _stream_service_singleton


def reset_stream_service_singleton() -> None:
    global _stream_service_singleton
    with _stream_service_singleton_lock:
        _stream_service_singleton = None
