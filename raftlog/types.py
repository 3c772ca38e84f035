"""Log entries and snapshots held by the replicated log."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Iterable, Sequence

NO_LIMIT = (1 << 64) - 1
"""Size limit meaning 'no limit at all'."""


class EntryType(enum.IntEnum):
    NORMAL = 0
    CONF_CHANGE = 1
    CONF_CHANGE_V2 = 2


def _varint_len(value: int) -> int:
    return (max(value, 1).bit_length() + 6) // 7


@dataclass(frozen=True)
class Entry:
    """A single log entry at a given index and term."""

    term: int = 0
    index: int = 0
    type: EntryType = EntryType.NORMAL
    data: bytes | None = None

    def size(self) -> int:
        """Encoded size of the entry in bytes."""
        n = 3 + _varint_len(self.term) + _varint_len(self.index) + _varint_len(int(self.type))
        if self.data is not None:
            length = len(self.data)
            n += 1 + length + _varint_len(length)
        return n


@dataclass(frozen=True)
class SnapshotMetadata:
    index: int = 0
    term: int = 0


@dataclass(frozen=True)
class Snapshot:
    data: bytes | None = None
    metadata: SnapshotMetadata = field(default_factory=SnapshotMetadata)


def ents_size(entries: Iterable[Entry]) -> int:
    """Total encoded size of ``entries``."""
    return sum(e.size() for e in entries)


def limit_size(entries: Sequence[Entry], max_size: int) -> list[Entry]:
    """Return the longest prefix of ``entries`` within ``max_size`` bytes.

    The first entry is always kept, even when it alone exceeds the limit.
    """
    if not entries:
        return []
    size = entries[0].size()
    for limit in range(1, len(entries)):
        size += entries[limit].size()
        if size > max_size:
            return list(entries[:limit])
    return list(entries)