"""Local filesystem source."""

from __future__ import annotations

from typing import BinaryIO


class LocalFileStore:
    """Sequential reads of local files."""

    def open(self, path: str) -> BinaryIO:
        return open(path, 'rb')
