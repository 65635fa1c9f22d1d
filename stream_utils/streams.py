"""Byte streams over local files and the blob store."""

from __future__ import annotations

import io
import logging
import os
import threading
from collections import deque
from functools import partial
from typing import Callable, Iterator, Optional

from . import config
from .exceptions import TransportError
from .interfaces import FileLocator, Locator, ObjectDestination, UploadResult
from .local import LocalFileStore
from .locator import build_s3_url, parse_read, parse_write

logger = logging.getLogger(__name__)

# Exit status used when a throw_error upload fails
FATAL_EXIT_CODE = 70

CompletionCallback = Callable[[Optional[Exception], Optional[UploadResult]], None]


class ReadStream(io.RawIOBase):
    """Readable byte stream that opens its source lazily on first read.

    Open and read failures are raised from ``read()`` as ``TransportError``
    and reported to ``on_error`` subscribers; creating the stream never does
    I/O.
    """

    def __init__(self, locator: Locator, opener: Callable[[], io.RawIOBase],
                 chunk_size: int = config.READ_CHUNK_SIZE):
        super().__init__()
        self.locator = locator
        self.chunk_size = chunk_size
        self.error: Optional[TransportError] = None
        self._opener = opener
        self._source = None
        self._error_callbacks = []
        self._error_lock = threading.Lock()

    def readable(self) -> bool:
        return True

    def on_error(self, callback: Callable[[TransportError], None]) -> 'ReadStream':
        with self._error_lock:
            self._error_callbacks.append(callback)
            error = self.error
        if error is not None:
            callback(error)
        return self

    def _fail(self, exc: Exception) -> TransportError:
        url = self.locator.url
        error = TransportError(f"Failed reading {url}: {exc}", locator=url)
        error.__cause__ = exc
        with self._error_lock:
            self.error = error
            subscribers = list(self._error_callbacks)
        logger.debug(f"{url} read failed: {exc}")
        for callback in subscribers:
            callback(error)
        return error

    def _ensure_open(self):
        if self._source is None:
            try:
                self._source = self._opener()
            except Exception as exc:
                raise self._fail(exc) from exc
        return self._source

    def readinto(self, buffer) -> int:
        if self.closed:
            raise ValueError('read from closed stream')
        if self.error is not None:
            raise self.error
        if len(buffer) == 0:
            return 0
        source = self._ensure_open()
        try:
            data = source.read(len(buffer))
        except Exception as exc:
            raise self._fail(exc) from exc
        n = len(data)
        buffer[:n] = data
        return n

    def iter_chunks(self, chunk_size: Optional[int] = None) -> Iterator[bytes]:
        size = chunk_size or self.chunk_size
        while True:
            data = self.read(size)
            if not data:
                break
            yield data

    def close(self) -> None:
        if self._source is not None:
            self._source.close()
            self._source = None
        super().close()


class PassThrough:
    """Bounded in-process byte pipe between a writer and a reader thread.

    ``write()`` blocks while more than ``high_water_mark`` bytes are
    buffered. ``read(n)`` blocks until ``n`` bytes are available or the
    writer closes, like a regular file.
    """

    def __init__(self, high_water_mark: int = config.WRITE_HIGH_WATER_MARK):
        self.high_water_mark = high_water_mark
        self._chunks = deque()
        self._size = 0
        self._closed = False
        self._aborted: Optional[Exception] = None
        self._cond = threading.Condition()

    def write(self, data) -> int:
        data = bytes(data)
        with self._cond:
            while self._size >= self.high_water_mark and self._aborted is None:
                self._cond.wait()
            if self._aborted is not None:
                raise self._aborted
            if self._closed:
                raise ValueError('write to closed pass-through')
            if data:
                self._chunks.append(data)
                self._size += len(data)
                self._cond.notify_all()
        return len(data)

    def read(self, size: Optional[int] = -1) -> bytes:
        want = None if size is None or size < 0 else size
        out = bytearray()
        with self._cond:
            while want is None or len(out) < want:
                if self._chunks:
                    chunk = self._chunks.popleft()
                    self._size -= len(chunk)
                    if want is not None and len(out) + len(chunk) > want:
                        cut = want - len(out)
                        self._chunks.appendleft(chunk[cut:])
                        self._size += len(chunk) - cut
                        chunk = chunk[:cut]
                    out += chunk
                    self._cond.notify_all()
                elif self._closed or self._aborted is not None:
                    break
                else:
                    self._cond.wait()
        return bytes(out)

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def abort(self, exc: Exception) -> None:
        """Drop buffered data and fail all further writes with exc."""
        with self._cond:
            self._aborted = exc
            self._chunks.clear()
            self._size = 0
            self._cond.notify_all()


class WriteStream(io.RawIOBase):
    """Writable byte stream uploaded to the blob store in the background.

    The effective key is resolved once, when the stream is created.
    ``writing`` stays True until the put settles. On success ``src`` and
    ``result`` are set; on failure ``error`` is.
    """

    def __init__(self, destination: ObjectDestination, blob_store, on_complete: Optional[CompletionCallback] = None,
                 throw_error: bool = False, high_water_mark: int = config.WRITE_HIGH_WATER_MARK):
        super().__init__()
        self.destination = destination
        self.bucket = destination.bucket
        self.key = destination.resolve_key()
        self.writing = True
        self.src: Optional[str] = None
        self.result: Optional[UploadResult] = None
        self.error: Optional[TransportError] = None
        self._on_complete = on_complete
        self._throw_error = throw_error
        self._error_callbacks = []
        self._error_lock = threading.Lock()
        self._buffer = PassThrough(high_water_mark)
        self._settled = threading.Event()

        logger.debug(f"uploading to {self.bucket}/{self.key}...")
        self._thread = threading.Thread(
            target=self._upload, args=(blob_store,), name=f"upload-{self.key}", daemon=True
        )
        self._thread.start()

    @property
    def url(self) -> str:
        return build_s3_url(self.bucket, self.key)

    def writable(self) -> bool:
        return True

    def on_error(self, callback: Callable[[TransportError], None]) -> 'WriteStream':
        with self._error_lock:
            self._error_callbacks.append(callback)
            error = self.error
        if error is not None and self._on_complete is None:
            callback(error)
        return self

    def write(self, data) -> int:
        if self.closed:
            raise ValueError('write to closed stream')
        if self.error is not None:
            raise self.error
        return self._buffer.write(data)

    def close(self) -> None:
        if not self.closed:
            self._buffer.close()
        super().close()

    def wait(self, timeout: Optional[float] = None) -> UploadResult:
        """Close the stream and block until the upload settles."""
        self.close()
        if not self._settled.wait(timeout):
            raise TimeoutError(f"upload to {self.url} still in progress")
        if self.error is not None:
            raise self.error
        return self.result

    def _upload(self, blob_store) -> None:
        url = self.url
        try:
            raw = blob_store.put(self.bucket, self.key, self.destination.content_type, self._buffer)
        except Exception as exc:
            error = TransportError(f"Upload to {url} failed: {exc}", locator=url)
            error.__cause__ = exc
            self._buffer.abort(error)
            with self._error_lock:
                self.error = error
                subscribers = list(self._error_callbacks)
            self.writing = False
            logger.error(f"{url} upload failed: {exc}", exc_info=True)
            try:
                self._fail(error, subscribers)
            finally:
                self._settled.set()
            return

        self.result = UploadResult(bucket=self.bucket, key=self.key, locator=url, raw=raw)
        self.src = url
        self.writing = False
        logger.info(f"{url} uploaded")
        try:
            if self._on_complete is not None:
                self._on_complete(None, self.result)
        finally:
            self._settled.set()

    def _fail(self, error: TransportError, subscribers) -> None:
        if self._on_complete is not None:
            self._on_complete(error, None)
        if self._throw_error:
            # Deliberately bypasses every error channel: the process dies here.
            logger.critical(f"{self.url} upload failed with throw_error set, terminating: {error}")
            os._exit(FATAL_EXIT_CODE)
        if self._on_complete is None:
            for callback in subscribers:
                callback(error)


class StreamFactory:
    """Opens read/write byte streams for parsed locators."""

    def __init__(self, blob_store, file_store: Optional[LocalFileStore] = None, *,
                 read_chunk_size: int = config.READ_CHUNK_SIZE,
                 write_high_water_mark: int = config.WRITE_HIGH_WATER_MARK):
        self.blob_store = blob_store
        self.file_store = file_store or LocalFileStore()
        self.read_chunk_size = read_chunk_size
        self.write_high_water_mark = write_high_water_mark

    def open_read(self, descriptor) -> ReadStream:
        locator = parse_read(descriptor)
        if isinstance(locator, FileLocator):
            opener = partial(self.file_store.open, locator.path)
        else:
            range_header = locator.range.header if locator.range is not None else None
            opener = partial(self.blob_store.get, locator.bucket, locator.key, range_header)
        logger.debug(f"opening {locator.url} for read")
        return ReadStream(locator, opener, chunk_size=self.read_chunk_size)

    def open_write(self, descriptor, on_complete: Optional[CompletionCallback] = None,
                   throw_error: bool = False) -> WriteStream:
        destination = parse_write(descriptor)
        if on_complete is not None and not callable(on_complete):
            raise TypeError('on_complete, when provided, must be callable')
        return WriteStream(
            destination,
            self.blob_store,
            on_complete=on_complete,
            throw_error=throw_error,
            high_water_mark=self.write_high_water_mark,
        )
