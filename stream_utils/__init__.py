"""Streaming I/O over local files and S3 objects addressed by URL-like locators."""

from .exceptions import FetchError, InvalidFormat, JsonParseError, StreamUtilsError, TransportError
from .interfaces import (
    SOURCE_KEY,
    ByteRange,
    FileLocator,
    ObjectDestination,
    ObjectLocator,
    Plain,
    Reference,
    UploadResult,
)
from .locator import classify, is_object_url, parse_read, parse_write
from .service import StreamService, get_stream_service, reset_stream_service_singleton


def open_read(descriptor):
    return get_stream_service().open_read(descriptor)


def open_write(destination, on_complete=None, throw_error=False):
    return get_stream_service().open_write(destination, on_complete=on_complete, throw_error=throw_error)


def open_read_array(source):
    return get_stream_service().open_read_array(source)


def open_write_array(destination, on_complete=None, throw_error=False):
    return get_stream_service().open_write_array(destination, on_complete=on_complete, throw_error=throw_error)


def load_json(descriptor):
    return get_stream_service().load_json(descriptor)


def resolve(document, keys):
    return get_stream_service().resolve(document, keys)


def resolve_keys(document, *keys):
    return get_stream_service().resolve_keys(document, *keys)


__all__ = [
    'SOURCE_KEY',
    'ByteRange',
    'FileLocator',
    'ObjectDestination',
    'ObjectLocator',
    'Plain',
    'Reference',
    'UploadResult',
    'StreamUtilsError',
    'InvalidFormat',
    'TransportError',
    'JsonParseError',
    'FetchError',
    'classify',
    'is_object_url',
    'parse_read',
    'parse_write',
    'StreamService',
    'get_stream_service',
    'reset_stream_service_singleton',
    'open_read',
    'open_write',
    'open_read_array',
    'open_write_array',
    'load_json',
    'resolve',
    'resolve_keys',
]
