"""Collecting the named segments that make up a program container."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Union

_log = logging.getLogger("qaic_compute.program")

_CONSTANTS_SEGMENT = "constants.bin"

SegmentData = Union[str, bytes, bytearray, memoryview, Iterable[int]]


@dataclass(frozen=True)
class Segment:
    """One named segment with its data and offset."""

    name: str
    offset: int
    data: bytes


class QPCBuilder:
    """Collects named segments for a program container."""

    def __init__(self) -> None:
        self._data: dict[str, bytes] = {}
        self._offsets: dict[str, int] = {}

    def add_segment(self, name: str, data: SegmentData, offset: int = 0) -> None:
        """Add a segment; text is stored with a terminating NUL byte.

        An existing segment of the same name is kept unchanged.
        """
        if isinstance(data, str):
            payload = data.encode() + b"\0"
        elif isinstance(data, int):
            raise TypeError("segment data must be bytes-like or text")
        else:
            payload = bytes(data)
        self._data.setdefault(name, payload)
        self._offsets.setdefault(name, offset)
        _log.debug('adding section "%s" (size = %d) to QPC.', name, len(payload))

    def add_segment_from_file(
        self, name: str, file_path: str | os.PathLike[str]
    ) -> None:
        """Add a segment whose contents are read from ``file_path``.

        The constants segment gets the file size as its offset, every other
        segment 0.  Reading errors propagate as :class:`OSError`.
        """
        payload = Path(file_path).read_bytes()
        self._data[name] = payload
        offset = len(payload) if name == _CONSTANTS_SEGMENT else 0
        self._offsets.setdefault(name, offset)
        _log.debug('adding section "%s" (size = %d) to QPC.', name, len(payload))

    def remove_segment(self, name: str) -> None:
        """Remove a segment if present."""
        self._data.pop(name, None)
        self._offsets.pop(name, None)

    def has_segment(self, name: str) -> bool:
        return name in self._data

    def segment_offset(self, name: str) -> int:
        """Return the offset of a segment, or 0 if it does not exist."""
        return self._offsets.get(name, 0)

    def segment_data(self, name: str) -> bytes:
        """Return the data of a segment, or empty bytes if it does not exist."""
        return self._data.get(name, b"")

    def segments(self) -> list[Segment]:
        """Return every segment, ordered by name."""
        return [
            Segment(name, self._offsets.get(name, 0), self._data[name])
            for name in sorted(self._data)
        ]

    def reset(self) -> None:
        """Drop every segment."""
        self._data.clear()
        self._offsets.clear()

    def __len__(self) -> int:
        return len(self._data)