"""Locator parsing/classification helpers for local files and S3 objects."""

from __future__ import annotations

import re
from typing import Any

from .exceptions import InvalidFormat
from .interfaces import (
    SOURCE_KEY,
    ByteRange,
    FileLocator,
    Locator,
    ObjectDestination,
    ObjectLocator,
    Plain,
    Reference,
    Value,
)

S3_SCHEME = 's3://'

RX_FILE = re.compile(r'^file://(.+)$', re.IGNORECASE)
RX_OBJECT = re.compile(
    r'^(?:s3://|https://s3\.amazonaws\.com/)'
    r'(?P<bucket>[^/?]+)/(?P<key>[^?]*[^/?])'
    r'(?:\?offset=(?P<offset>\d+)&length=(?P<length>\d+))?$',
    re.IGNORECASE,
)


def build_s3_url(bucket: str, key: str) -> str:
    return f"{S3_SCHEME}{bucket}/{key}"


def _unwrap(descriptor: Any) -> Any:
    if isinstance(descriptor, dict) and SOURCE_KEY in descriptor:
        return descriptor[SOURCE_KEY]
    return descriptor


def is_object_url(value: Any) -> bool:
    """True if value is a bare string in the object-store read grammar."""
    return isinstance(value, str) and RX_OBJECT.match(value.strip()) is not None


def parse_read(descriptor: Any) -> Locator:
    """Parse a read descriptor (string, ``{'$src': ...}`` or locator)."""
    if isinstance(descriptor, (FileLocator, ObjectLocator)):
        return descriptor

    raw = _unwrap(descriptor)
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidFormat(f"Locator must be a non-empty string: {descriptor!r}", descriptor)
    raw = raw.strip()

    m = RX_FILE.match(raw)
    if m:
        return FileLocator(path=m.group(1))

    m = RX_OBJECT.match(raw)
    if m:
        byte_range = None
        if m.group('offset') is not None:
            byte_range = ByteRange(offset=int(m.group('offset')), length=int(m.group('length')))
        return ObjectLocator(bucket=m.group('bucket'), key=m.group('key'), range=byte_range)

    raise InvalidFormat(f"Unexpected locator format: {raw}", descriptor)


def parse_write(descriptor: Any) -> ObjectDestination:
    """Parse a write descriptor into an object-store destination.

    Accepts the legacy ``s3://bucket/key`` form (literal key) or a mapping
    ``{bucketName, keyPrefix | key, contentType?}``.
    """
    if isinstance(descriptor, ObjectDestination):
        return descriptor

    raw = _unwrap(descriptor)

    if isinstance(raw, str):
        m = RX_OBJECT.match(raw.strip())
        if not m or m.group('offset') is not None:
            raise InvalidFormat(f"Unexpected destination format: {raw!r}", descriptor)
        return ObjectDestination(bucket=m.group('bucket'), key=m.group('key'))

    if not isinstance(raw, dict):
        raise InvalidFormat(f"Destination must be a string or a mapping: {descriptor!r}", descriptor)

    bucket = raw.get('bucketName')
    if not isinstance(bucket, str) or not bucket:
        raise InvalidFormat('Destination requires a bucketName', descriptor)

    key = raw.get('key')
    key_prefix = raw.get('keyPrefix')
    if (key is None) == (key_prefix is None):
        raise InvalidFormat('Destination requires exactly one of key or keyPrefix', descriptor)
    for value in (key, key_prefix):
        if value is not None and not isinstance(value, str):
            raise InvalidFormat('Destination key and keyPrefix must be strings', descriptor)

    content_type = raw.get('contentType')
    if content_type is not None and (not isinstance(content_type, str) or not content_type):
        raise InvalidFormat('Destination contentType must be a non-empty string', descriptor)

    try:
        if content_type is None:
            return ObjectDestination(bucket=bucket, key=key, key_prefix=key_prefix)
        return ObjectDestination(bucket=bucket, key=key, key_prefix=key_prefix, content_type=content_type)
    except InvalidFormat as exc:
        raise InvalidFormat(str(exc), descriptor) from exc


def classify(value: Any) -> Value:
    """Split a document value into inline data or a remote reference."""
    if isinstance(value, dict) and SOURCE_KEY in value:
        return Reference(parse_read(value))
    if is_object_url(value):
        return Reference(parse_read(value))
    return Plain(value)
