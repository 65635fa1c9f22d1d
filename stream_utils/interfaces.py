"""Shared dataclasses for locators, destinations and upload results."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Union
from uuid import uuid4

from .exceptions import InvalidFormat

SOURCE_KEY = '$src'
DEFAULT_CONTENT_TYPE = 'application/json'


@dataclass(frozen=True)
class ByteRange:
    """Byte range of an object read.

    The end byte is inclusive and equals ``offset + length``, so a read
    transfers ``length + 1`` bytes.
    """

    offset: int
    length: int

    @property
    def end(self) -> int:
        return self.offset + self.length

    @property
    def header(self) -> str:
        return f"bytes={self.offset}-{self.end}"


@dataclass(frozen=True)
class FileLocator:
    """Local file source."""

    path: str

    @property
    def url(self) -> str:
        return f"file://{self.path}"


@dataclass(frozen=True)
class ObjectLocator:
    """Object-store source with an optional byte range."""

    bucket: str
    key: str
    range: Optional[ByteRange] = None

    @property
    def url(self) -> str:
        url = f"s3://{self.bucket}/{self.key}"
        if self.range is not None:
            url += f"?offset={self.range.offset}&length={self.range.length}"
        return url


Locator = Union[FileLocator, ObjectLocator]


@dataclass(frozen=True)
class ObjectDestination:
    """Object-store write target.

    Exactly one of ``key`` / ``key_prefix`` is set. A literal ``key`` is used
    as is; a ``key_prefix`` gets a unique suffix each time the key is resolved.
    """

    bucket: str
    key_prefix: Optional[str] = None
    key: Optional[str] = None
    content_type: str = DEFAULT_CONTENT_TYPE

    def __post_init__(self):
        if not isinstance(self.bucket, str) or not self.bucket:
            raise InvalidFormat('Destination requires a bucket', self)
        if (self.key is None) == (self.key_prefix is None):
            raise InvalidFormat('Destination requires exactly one of key or key_prefix', self)
        if self.key is not None and (not isinstance(self.key, str) or not self.key):
            raise InvalidFormat('Destination key must be a non-empty string', self)
        if self.key_prefix is not None and not isinstance(self.key_prefix, str):
            raise InvalidFormat('Destination key_prefix must be a string', self)
        if not isinstance(self.content_type, str) or not self.content_type:
            raise InvalidFormat('Destination content_type must be a non-empty string', self)

    def resolve_key(self) -> str:
        if self.key is not None:
            return self.key
        return f"{self.key_prefix}{uuid4().hex}"


@dataclass
class UploadResult:
    """Result of a completed upload."""

    bucket: str
    key: str
    locator: str
    raw: Any = None

    def as_reference(self) -> dict:
        return {SOURCE_KEY: self.locator}


@dataclass(frozen=True)
class Plain:
    """Inline document value."""

    value: Any


@dataclass(frozen=True)
class Reference:
    """Document value pointing at remote content."""

    locator: Locator


Value = Union[Plain, Reference]
