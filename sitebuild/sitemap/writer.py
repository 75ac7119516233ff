"""Incremental JSON-array serialization for unbounded record streams.

The opening bracket is written eagerly, each record is serialized on its
own, and the closing bracket only on ``end``. Nothing is buffered beyond the
record being written.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
from collections.abc import Iterator
from pathlib import Path
from typing import Protocol, TextIO

from ..errors import WriterStateError
from .types import EnrichedRecord

logger = logging.getLogger(__name__)

ARRAY_OPEN = "[\n"
ARRAY_SEPARATOR = ",\n"
ARRAY_CLOSE = "\n]\n"
RECORD_INDENT = "  "

_ACTIVE_OUTPUT_PATHS: set[str] = set()


class RecordSink(Protocol):
    """Sequential consumer of enriched records."""

    def begin(self) -> None: ...

    def write(self, record: EnrichedRecord | dict[str, object]) -> None: ...

    def end(self) -> int: ...


class JsonArrayWriter:
    """Stream records into ``stream`` as one JSON array of objects.

    ``begin`` is implied by the first ``write`` or ``end``. After ``end`` the
    writer refuses further writes with ``WriterStateError``. When
    ``close_stream`` is set, ``end`` and ``abort`` also flush and close the
    underlying stream.
    """

    def __init__(self, stream: TextIO, close_stream: bool = False) -> None:
        self._stream = stream
        self._close_stream = close_stream
        self._count = 0
        self._begun = False
        self._ended = False

    @property
    def count(self) -> int:
        return self._count

    @property
    def ended(self) -> bool:
        return self._ended

    def begin(self) -> None:
        if self._ended:
            raise WriterStateError("cannot begin a writer that has already ended")
        if self._begun:
            return
        self._stream.write(ARRAY_OPEN)
        self._begun = True

    def write(self, record: EnrichedRecord | dict[str, object]) -> None:
        if self._ended:
            raise WriterStateError("write() called after end()")
        self.begin()
        payload = record.to_json_dict() if isinstance(record, EnrichedRecord) else record
        if self._count > 0:
            self._stream.write(ARRAY_SEPARATOR)
        self._stream.write(RECORD_INDENT + json.dumps(payload, separators=(",", ":"), ensure_ascii=False))
        self._count += 1

    def end(self) -> int:
        """Close the array and return the number of records written."""
        if self._ended:
            raise WriterStateError("end() called twice")
        self.begin()
        try:
            self._stream.write(ARRAY_CLOSE)
            self._stream.flush()
        finally:
            self._ended = True
            if self._close_stream:
                self._stream.close()
        return self._count

    def abort(self) -> None:
        """Release the stream without closing the array.

        Used on early termination; the output is left unterminated.
        """
        if self._ended:
            return
        self._ended = True
        if not self._close_stream:
            return
        try:
            self._stream.flush()
        finally:
            self._stream.close()


@contextlib.contextmanager
def open_json_array_writer(path: Path) -> Iterator[JsonArrayWriter]:
    """Open ``path`` for streaming and guarantee the handle is released.

    The opening bracket is written as soon as the file is open. If the body
    raises, the file is flushed and closed without the closing bracket.
    Callers finalize with ``writer.end()`` inside the block. Only one writer
    per path may be open at a time in this process.
    """
    path = Path(path)
    key = os.path.abspath(path)
    if key in _ACTIVE_OUTPUT_PATHS:
        raise WriterStateError(f"another writer is already streaming to {path}")
    handle = path.open("w", encoding="utf-8", newline="\n")
    _ACTIVE_OUTPUT_PATHS.add(key)
    writer = JsonArrayWriter(handle, close_stream=True)
    try:
        writer.begin()
        yield writer
    except BaseException:
        logger.error("Sitemap output %s left incomplete after %d records", path, writer.count)
        writer.abort()
        raise
    else:
        if not writer.ended:
            writer.end()
    finally:
        _ACTIVE_OUTPUT_PATHS.discard(key)


__all__ = [
    "ARRAY_OPEN",
    "ARRAY_SEPARATOR",
    "ARRAY_CLOSE",
    "RecordSink",
    "JsonArrayWriter",
    "open_json_array_writer",
]
