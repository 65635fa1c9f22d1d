"""Resolution of remote resources referenced from a document.

A field is remote when it holds ``{'$src': '<locator>'}`` or a bare
``s3://`` / ``https://s3.amazonaws.com/`` string. ``resolve`` fetches every
remote field among the requested keys concurrently and, once all fetches
succeed, replaces the fields in the original document.
"""

from __future__ import annotations

import json
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, List, Optional, Sequence, Tuple, Union

from . import config
from .exceptions import FetchError, JsonParseError, TransportError
from .interfaces import Locator, Reference
from .locator import classify, parse_read
from .streams import StreamFactory

logger = logging.getLogger(__name__)


def load_json(factory: StreamFactory, descriptor) -> Any:
    """Read a whole document and parse it as JSON."""
    locator = parse_read(descriptor)
    with factory.open_read(locator) as stream:
        body = stream.read()
    try:
        return json.loads(body.decode('utf-8'))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise JsonParseError(f"Malformed JSON in {locator.url}: {exc}", locator=locator.url) from exc


class _FirstFailureJoin:
    """Settles once every future succeeds, or as soon as one fails."""

    def __init__(self, futures: List[Future]):
        self.failure: Optional[BaseException] = None
        self._remaining = len(futures)
        self._lock = threading.Lock()
        self._settled = threading.Event()
        for future in futures:
            future.add_done_callback(self._on_done)

    def _on_done(self, future: Future) -> None:
        exc = None if future.cancelled() else future.exception()
        with self._lock:
            self._remaining -= 1
            if exc is not None and self.failure is None:
                self.failure = exc
            if self.failure is not None or self._remaining == 0:
                self._settled.set()

    def wait(self) -> None:
        self._settled.wait()
        if self.failure is not None:
            raise self.failure


class ResourceResolver:
    """Fetches and inlines the remote fields of a document."""

    def __init__(self, factory: StreamFactory, max_workers: int = config.RESOLVE_MAX_WORKERS):
        self.factory = factory
        self.max_workers = max_workers

    def collect_references(self, document: dict, keys: Sequence[str]) -> List[Tuple[str, Locator]]:
        tasks = []
        for key in keys:
            value = classify(document.get(key))
            if isinstance(value, Reference):
                tasks.append((key, value.locator))
        return tasks

    def _fetch(self, key: str, locator: Locator) -> Any:
        logger.debug(f"downloading {key} from {locator.url}...")
        try:
            value = load_json(self.factory, locator)
        except TransportError as exc:
            logger.error(f"Failed to download {key} from {locator.url}: {exc}")
            raise FetchError(f"Failed to fetch {key} from {locator.url}: {exc}",
                             locator=locator.url, key=key) from exc
        logger.debug(f"{key} downloaded")
        return value

    def resolve(self, document: dict, keys: Union[str, Sequence[str]]) -> dict:
        """Replace remote fields of document (in place) with their content.

        All-or-nothing: the first failed fetch cancels the pending ones and
        is raised, leaving the document untouched.
        """
        if not isinstance(document, dict):
            raise TypeError('document argument must be a dict')
        if isinstance(keys, str):
            keys = [keys]
        elif not isinstance(keys, (list, tuple)) or not all(isinstance(k, str) for k in keys):
            raise TypeError('keys argument must be a string or a list of strings')

        tasks = self.collect_references(document, keys)
        if not tasks:
            return document

        executor = ThreadPoolExecutor(max_workers=min(self.max_workers, len(tasks)), thread_name_prefix='resolve')
        try:
            futures = [executor.submit(self._fetch, key, locator) for key, locator in tasks]
            _FirstFailureJoin(futures).wait()
            fetched = [future.result() for future in futures]
        finally:
            # In-flight fetches finish in the background; their results are dropped.
            executor.shutdown(wait=False, cancel_futures=True)

        for (key, _), value in zip(tasks, fetched):
            document[key] = value
        return document

    def resolve_keys(self, document: dict, *keys: str) -> dict:
        return self.resolve(document, list(keys))

    def resolve_async(self, document: dict, keys: Union[str, Sequence[str]]) -> Future:
        executor = ThreadPoolExecutor(max_workers=1)
        try:
            return executor.submit(self.resolve, document, keys)
        finally:
            executor.shutdown(wait=False)
