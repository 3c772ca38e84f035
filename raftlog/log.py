"""The replicated log: stable storage plus unstable entries in memory."""

from __future__ import annotations

import abc
from typing import Any, Iterator, Sequence

from .logger import RaftPanic, get_logger
from .types import NO_LIMIT, Entry, Snapshot, ents_size, limit_size
from .unstable import Unstable


class StorageError(Exception):
    """Base class for errors reported when reading the log."""


class CompactedError(StorageError):
    """The requested index is unavailable due to compaction."""

    def __init__(self, message: str = "requested index is unavailable due to compaction") -> None:
        super().__init__(message)


class UnavailableError(StorageError):
    """The requested entry is not available yet."""

    def __init__(self, message: str = "requested entry at index is unavailable") -> None:
        super().__init__(message)


class Storage(abc.ABC):
    """Read access to the entries persisted since the last snapshot.

    Implementations raise :class:`CompactedError` or :class:`UnavailableError`
    when asked for entries they cannot supply.
    """

    @abc.abstractmethod
    def first_index(self) -> int:
        """Index of the first entry that may be read."""

    @abc.abstractmethod
    def last_index(self) -> int:
        """Index of the last entry in storage."""

    @abc.abstractmethod
    def term(self, i: int) -> int:
        """Term of the entry at index ``i``, within [first_index-1, last_index]."""

    @abc.abstractmethod
    def entries(self, lo: int, hi: int, max_size: int) -> list[Entry]:
        """Entries in [lo, hi), limited to about ``max_size`` bytes (at least one)."""

    @abc.abstractmethod
    def snapshot(self) -> Snapshot:
        """The most recent snapshot."""


class RaftLog:
    """A log made of stable storage followed by in-memory unstable entries."""

    def __init__(
        self,
        storage: Storage,
        logger: Any = None,
        max_applying_ents_size: int = NO_LIMIT,
    ) -> None:
        if storage is None:
            raise RaftPanic("storage must not be nil")
        self.storage = storage
        self.logger = logger if logger is not None else get_logger()
        self.max_applying_ents_size = max_applying_ents_size
        self.applying_ents_size = 0
        self.applying_ents_paused = False

        first_index = storage.first_index()
        last_index = storage.last_index()
        self.unstable = Unstable(
            offset=last_index + 1,
            offset_in_progress=last_index + 1,
            logger=self.logger,
        )
        self.committed = first_index - 1
        self.applying = first_index - 1
        self.applied = first_index - 1

    def __str__(self) -> str:
        u = self.unstable
        return (
            f"committed={self.committed}, applied={self.applied}, applying={self.applying}, "
            f"unstable.offset={u.offset}, unstable.offsetInProgress={u.offset_in_progress}, "
            f"len(unstable.Entries)={len(u.entries)}"
        )

    def _panic(self, msg: str, *args: Any) -> None:
        self.logger.panic(msg, *args)
        raise RaftPanic(msg % args)

    def maybe_append(
        self, index: int, log_term: int, committed: int, ents: Sequence[Entry] = ()
    ) -> int | None:
        """Append ``ents`` after (index, log_term) if it matches.

        Returns the last index of the new entries, or None when the
        entries cannot be appended.
        """
        if not self.match_term(index, log_term):
            return None
        lastnewi = index + len(ents)
        ci = self.find_conflict(ents)
        if ci == 0:
            pass
        elif ci <= self.committed:
            self._panic("entry %d conflict with committed entry [committed(%d)]", ci, self.committed)
        else:
            offset = index + 1
            if ci - offset > len(ents):
                self._panic("index, %d, is out of range [%d]", ci - offset, len(ents))
            self.append(ents[ci - offset:])
        self.commit_to(min(committed, lastnewi))
        return lastnewi

    def append(self, ents: Sequence[Entry]) -> int:
        """Append ``ents`` to the unstable log and return the last index."""
        if not ents:
            return self.last_index()
        after = ents[0].index - 1
        if after < self.committed:
            self._panic("after(%d) is out of range [committed(%d)]", after, self.committed)
        self.unstable.truncate_and_append(ents)
        return self.last_index()

    def find_conflict(self, ents: Sequence[Entry]) -> int:
        """Index of the first entry that conflicts with or extends the log, else 0."""
        for ne in ents:
            if not self.match_term(ne.index, ne.term):
                if ne.index <= self.last_index():
                    self.logger.info(
                        "found conflict at index %d [existing term: %d, conflicting term: %d]",
                        ne.index, self.term_or_zero(ne.index), ne.term,
                    )
                return ne.index
        return 0

    def find_conflict_by_term(self, index: int, term: int) -> tuple[int, int]:
        """Largest index <= ``index`` whose term is <= ``term`` or unknown.

        Returns that index and its term, or 0 for the term when unknown.
        """
        while index > 0:
            try:
                our_term = self.term(index)
            except StorageError:
                return index, 0
            if our_term <= term:
                return index, our_term
            index -= 1
        return 0, 0

    def next_unstable_ents(self) -> list[Entry]:
        return self.unstable.next_entries()

    def has_next_unstable_ents(self) -> bool:
        return bool(self.next_unstable_ents())

    def has_next_or_in_progress_unstable_ents(self) -> bool:
        return bool(self.unstable.entries)

    def next_committed_ents(self, allow_unstable: bool) -> list[Entry]:
        """Committed entries available to be applied."""
        if self.applying_ents_paused or self.has_next_or_in_progress_snapshot():
            return []
        lo, hi = self.applying + 1, self.max_appliable_index(allow_unstable) + 1
        if lo >= hi:
            return []
        max_size = self.max_applying_ents_size - self.applying_ents_size
        if max_size <= 0:
            self._panic(
                "applying entry size (%d-%d)=%d not positive",
                self.max_applying_ents_size, self.applying_ents_size, max_size,
            )
        try:
            return self.slice(lo, hi, max_size)
        except StorageError as exc:
            self._panic("unexpected error when getting unapplied entries (%s)", exc)
            raise

    def has_next_committed_ents(self, allow_unstable: bool) -> bool:
        if self.applying_ents_paused or self.has_next_or_in_progress_snapshot():
            return False
        return self.applying + 1 < self.max_appliable_index(allow_unstable) + 1

    def max_appliable_index(self, allow_unstable: bool) -> int:
        hi = self.committed
        if not allow_unstable:
            hi = min(hi, self.unstable.offset - 1)
        return hi

    def next_unstable_snapshot(self) -> Snapshot | None:
        return self.unstable.next_snapshot()

    def has_next_unstable_snapshot(self) -> bool:
        return self.unstable.next_snapshot() is not None

    def has_next_or_in_progress_snapshot(self) -> bool:
        return self.unstable.snapshot is not None

    def snapshot(self) -> Snapshot:
        if self.unstable.snapshot is not None:
            return self.unstable.snapshot
        return self.storage.snapshot()

    def first_index(self) -> int:
        index = self.unstable.maybe_first_index()
        if index is not None:
            return index
        return self.storage.first_index()

    def last_index(self) -> int:
        index = self.unstable.maybe_last_index()
        if index is not None:
            return index
        return self.storage.last_index()

    def commit_to(self, tocommit: int) -> None:
        """Raise the commit index to ``tocommit``; never lowers it."""
        if self.committed < tocommit:
            if self.last_index() < tocommit:
                self._panic(
                    "tocommit(%d) is out of range [lastIndex(%d)]. "
                    "Was the raft log corrupted, truncated, or lost?",
                    tocommit, self.last_index(),
                )
            self.committed = tocommit

    def applied_to(self, i: int, size: int) -> None:
        if self.committed < i or i < self.applied:
            self._panic(
                "applied(%d) is out of range [prevApplied(%d), committed(%d)]",
                i, self.applied, self.committed,
            )
        self.applied = i
        self.applying = max(self.applying, i)
        self.applying_ents_size = max(self.applying_ents_size - size, 0)
        self.applying_ents_paused = self.applying_ents_size >= self.max_applying_ents_size

    def accept_applying(self, i: int, size: int, allow_unstable: bool) -> None:
        if self.committed < i:
            self._panic(
                "applying(%d) is out of range [prevApplying(%d), committed(%d)]",
                i, self.applying, self.committed,
            )
        self.applying = i
        self.applying_ents_size += size
        # Pause when over the limit, or when the last batch was cut short by it.
        self.applying_ents_paused = (
            self.applying_ents_size >= self.max_applying_ents_size
            or i < self.max_appliable_index(allow_unstable)
        )

    def stable_to(self, i: int, t: int) -> None:
        self.unstable.stable_to(i, t)

    def stable_snap_to(self, i: int) -> None:
        self.unstable.stable_snap_to(i)

    def accept_unstable(self) -> None:
        """Mark the current unstable entries and snapshot as being persisted."""
        self.unstable.accept_in_progress()

    def last_term(self) -> int:
        try:
            return self.term(self.last_index())
        except StorageError as exc:
            self._panic("unexpected error when getting the last term (%s)", exc)
            raise

    def term(self, i: int) -> int:
        """Term of entry ``i``; raises CompactedError or UnavailableError."""
        t = self.unstable.maybe_term(i)
        if t is not None:
            return t
        # The valid range is [first_index-1, last_index].
        if i + 1 < self.first_index():
            raise CompactedError()
        if i > self.last_index():
            raise UnavailableError()
        return self.storage.term(i)

    def term_or_zero(self, i: int) -> int:
        """Term of entry ``i``, or 0 when it is compacted or unavailable."""
        try:
            return self.term(i)
        except StorageError:
            return 0

    def entries(self, i: int, max_size: int = NO_LIMIT) -> list[Entry]:
        if i > self.last_index():
            return []
        return self.slice(i, self.last_index() + 1, max_size)

    def all_entries(self) -> list[Entry]:
        """All entries in the log, retrying after a racing compaction."""
        while True:
            try:
                return self.entries(self.first_index(), NO_LIMIT)
            except CompactedError:
                continue

    def is_up_to_date(self, lasti: int, term: int) -> bool:
        """Whether a log ending at (lasti, term) is at least as up to date."""
        last_term = self.last_term()
        return term > last_term or (term == last_term and lasti >= self.last_index())

    def match_term(self, i: int, term: int) -> bool:
        try:
            return self.term(i) == term
        except StorageError:
            return False

    def maybe_commit(self, max_index: int, term: int) -> bool:
        if max_index > self.committed and term != 0 and self.term_or_zero(max_index) == term:
            self.commit_to(max_index)
            return True
        return False

    def restore(self, snapshot: Snapshot) -> None:
        self.logger.info(
            "log [%s] starts to restore snapshot [index: %d, term: %d]",
            self, snapshot.metadata.index, snapshot.metadata.term,
        )
        self.committed = snapshot.metadata.index
        self.unstable.restore(snapshot)

    def scan(self, lo: int, hi: int, page_size: int) -> Iterator[list[Entry]]:
        """Yield the entries in [lo, hi) in consecutive pages.

        Each page holds up to ``page_size`` bytes of entries, or a single
        entry larger than that.
        """
        while lo < hi:
            ents = self.slice(lo, hi, page_size)
            if not ents:
                raise StorageError(f"got 0 entries in [{lo}, {hi})")
            yield ents
            lo += len(ents)

    def slice(self, lo: int, hi: int, max_size: int = NO_LIMIT) -> list[Entry]:
        """Entries from ``lo`` through ``hi - 1``, limited to ``max_size`` bytes."""
        self.check_out_of_bounds(lo, hi)
        if lo == hi:
            return []
        offset = self.unstable.offset
        if lo >= offset:
            return limit_size(self.unstable.slice(lo, hi), max_size)

        cut = min(hi, offset)
        try:
            ents = list(self.storage.entries(lo, cut, max_size))
        except UnavailableError:
            self._panic("entries[%d:%d) is unavailable from storage", lo, cut)
            raise
        if hi <= offset:
            return ents
        # Storage already hit the size limit.
        if len(ents) < cut - lo:
            return ents
        size = ents_size(ents)
        if size >= max_size:
            return ents
        unstable = limit_size(self.unstable.slice(offset, hi), max_size - size)
        if len(unstable) == 1 and size + ents_size(unstable) > max_size:
            return ents
        return ents + unstable

    def check_out_of_bounds(self, lo: int, hi: int) -> None:
        """Require first_index <= lo <= hi <= last_index + 1.

        Raises CompactedError when ``lo`` is compacted and panics on other
        violations.
        """
        if lo > hi:
            self._panic("invalid slice %d > %d", lo, hi)
        fi = self.first_index()
        if lo < fi:
            raise CompactedError()
        length = self.last_index() + 1 - fi
        if hi > fi + length:
            self._panic("slice[%d,%d) out of bound [%d,%d]", lo, hi, fi, self.last_index())