"""JSON array element streams on top of byte streams."""

from __future__ import annotations

import json
from typing import Any, Iterable, Iterator, Optional

import ijson

from .exceptions import JsonParseError, TransportError
from .streams import CompletionCallback, ReadStream, StreamFactory, WriteStream

ARRAY_OPEN = b'[\n'
ARRAY_SEPARATOR = b'\n,\n'
ARRAY_CLOSE = b'\n]\n'
EMPTY_ARRAY = b'[]\n'


class ArrayReader:
    """Single-pass iterator over the elements of a JSON array."""

    def __init__(self, items: Iterable[Any], stream: Optional[ReadStream] = None):
        self.stream = stream
        self._items = iter(items)
        self._exhausted = False

    def __iter__(self) -> Iterator[Any]:
        return self

    def __next__(self) -> Any:
        if self._exhausted:
            raise StopIteration
        try:
            return next(self._items)
        except StopIteration:
            self.close()
            raise
        except ijson.JSONError as exc:
            url = self.stream.locator.url if self.stream is not None else None
            self.close()
            raise JsonParseError(f"Malformed JSON array in {url}: {exc}", locator=url) from exc
        except TransportError:
            self.close()
            raise

    def close(self) -> None:
        self._exhausted = True
        if self.stream is not None:
            self.stream.close()

    def __enter__(self) -> 'ArrayReader':
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class ArrayWriter:
    """Serializes pushed values into a JSON array written to a byte stream.

    ``writing``, ``src``, ``result`` and ``error`` are read from the
    underlying stream on every access.
    """

    def __init__(self, stream: WriteStream):
        self.stream = stream
        self.count = 0
        self._closed = False

    @property
    def writing(self) -> bool:
        return self.stream.writing

    @property
    def src(self) -> Optional[str]:
        return self.stream.src

    @property
    def result(self):
        return self.stream.result

    @property
    def error(self):
        return self.stream.error

    @property
    def key(self) -> str:
        return self.stream.key

    def write(self, value: Any) -> None:
        if self._closed:
            raise ValueError('write to closed array writer')
        data = json.dumps(value).encode('utf-8')
        self.stream.write((ARRAY_OPEN if self.count == 0 else ARRAY_SEPARATOR) + data)
        self.count += 1

    def extend(self, values: Iterable[Any]) -> None:
        for value in values:
            self.write(value)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self.stream.write(EMPTY_ARRAY if self.count == 0 else ARRAY_CLOSE)
        finally:
            self.stream.close()

    def wait(self, timeout: Optional[float] = None):
        self.close()
        return self.stream.wait(timeout)

    def __enter__(self) -> 'ArrayWriter':
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def open_read_array(factory: StreamFactory, source) -> ArrayReader:
    """Stream the elements of a JSON array from a locator or an in-memory list."""
    if isinstance(source, (list, tuple)):
        return ArrayReader(source)
    stream = factory.open_read(source)
    return ArrayReader(ijson.items(stream, 'item', use_float=True), stream=stream)


def open_write_array(factory: StreamFactory, destination, on_complete: Optional[CompletionCallback] = None,
                     throw_error: bool = False) -> ArrayWriter:
    """Open a sink that uploads the values written to it as a JSON array."""
    stream = factory.open_write(destination, on_complete=on_complete, throw_error=throw_error)
    return ArrayWriter(stream)
