"""Entries and snapshot not yet written to stable storage."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence

from .logger import RaftPanic, get_logger
from .types import Entry, Snapshot


@dataclass
class Unstable:
    """Unstable log entries and snapshot awaiting persistence.

    ``entries[i]`` sits at log position ``i + offset``. Entries below
    ``offset_in_progress`` are already being written to storage.
    """

    snapshot: Snapshot | None = None
    entries: list[Entry] = field(default_factory=list)
    offset: int = 0
    snapshot_in_progress: bool = False
    offset_in_progress: int = 0
    logger: Any = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.entries = list(self.entries)
        if self.logger is None:
            self.logger = get_logger()

    def _panic(self, msg: str, *args: Any) -> None:
        self.logger.panic(msg, *args)
        raise RaftPanic(msg % args)

    def maybe_first_index(self) -> int | None:
        """First possible entry index, known only when a snapshot is held."""
        if self.snapshot is not None:
            return self.snapshot.metadata.index + 1
        return None

    def maybe_last_index(self) -> int | None:
        """Last index held in entries or snapshot, or None when empty."""
        if self.entries:
            return self.offset + len(self.entries) - 1
        if self.snapshot is not None:
            return self.snapshot.metadata.index
        return None

    def maybe_term(self, i: int) -> int | None:
        """Term of the entry at index ``i`` if it is held here."""
        if i < self.offset:
            if self.snapshot is not None and self.snapshot.metadata.index == i:
                return self.snapshot.metadata.term
            return None
        last = self.maybe_last_index()
        if last is None or i > last:
            return None
        return self.entries[i - self.offset].term

    def next_entries(self) -> list[Entry]:
        """Entries not yet in the process of being written."""
        in_progress = self.offset_in_progress - self.offset
        return self.entries[in_progress:]

    def next_snapshot(self) -> Snapshot | None:
        """The snapshot if it is not already being written."""
        if self.snapshot is None or self.snapshot_in_progress:
            return None
        return self.snapshot

    def accept_in_progress(self) -> None:
        """Mark all current entries and the snapshot as being written."""
        if self.entries:
            self.offset_in_progress = self.entries[-1].index + 1
        if self.snapshot is not None:
            self.snapshot_in_progress = True

    def stable_to(self, i: int, t: int) -> None:
        """Drop entries up to (i, t) once they are on stable storage."""
        gt = self.maybe_term(i)
        if gt is None:
            self.logger.info("entry at index %d missing from unstable log; ignoring", i)
            return
        if i < self.offset:
            self.logger.info("entry at index %d matched unstable snapshot; ignoring", i)
            return
        if gt != t:
            self.logger.info(
                "entry at (index,term)=(%d,%d) mismatched with entry at (%d,%d) in unstable log; ignoring",
                i, t, i, gt,
            )
            return
        self.entries = self.entries[i + 1 - self.offset:]
        self.offset = i + 1
        self.offset_in_progress = max(self.offset_in_progress, self.offset)

    def stable_snap_to(self, i: int) -> None:
        if self.snapshot is not None and self.snapshot.metadata.index == i:
            self.snapshot = None
            self.snapshot_in_progress = False

    def restore(self, snapshot: Snapshot) -> None:
        self.offset = snapshot.metadata.index + 1
        self.offset_in_progress = self.offset
        self.entries = []
        self.snapshot = snapshot
        self.snapshot_in_progress = False

    def truncate_and_append(self, ents: Sequence[Entry]) -> None:
        """Append ``ents``, replacing any held entries from their first index."""
        if not ents:
            raise ValueError("no entries to append")
        from_index = ents[0].index
        if from_index == self.offset + len(self.entries):
            self.entries.extend(ents)
        elif from_index <= self.offset:
            self.logger.info("replace the unstable entries from index %d", from_index)
            self.entries = list(ents)
            self.offset = from_index
            self.offset_in_progress = self.offset
        else:
            self.logger.info("truncate the unstable entries before index %d", from_index)
            self.entries = self.slice(self.offset, from_index) + list(ents)
            self.offset_in_progress = min(self.offset_in_progress, from_index)

    def slice(self, lo: int, hi: int) -> list[Entry]:
        """Entries with indexes in [lo, hi); the range must be held here."""
        if lo > hi:
            self._panic("invalid unstable.slice %d > %d", lo, hi)
        upper = self.offset + len(self.entries)
        if lo < self.offset or hi > upper:
            self._panic("unstable.slice[%d,%d) out of bound [%d,%d]", lo, hi, self.offset, upper)
        return self.entries[lo - self.offset:hi - self.offset]