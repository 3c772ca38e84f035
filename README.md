# raftlog

The log at the heart of a Raft node. It puts the entries that are already in
stable storage together with the unstable tail that has not been written yet.
It also tracks which entries are committed, which are being applied and which
have been applied.

## Installation

From a checkout of the package:

```
pip install .
```

## Modules

- `raftlog.types`: `Entry`, `EntryType`, `Snapshot` and `SnapshotMetadata`.
  It also has the size helpers `ents_size` and `limit_size`, and `NO_LIMIT`, the
  size value that means "no limit". `limit_size` always keeps the first entry,
  even when that entry alone is over the limit.
- `raftlog.unstable`: `Unstable`. It holds entries and an optional snapshot
  until they are persisted.
- `raftlog.log`: `RaftLog`, the abstract `Storage` interface that it reads from,
  and the storage errors `StorageError`, `CompactedError` and
  `UnavailableError`.
- `raftlog.logger`: `DefaultLogger` and the process-wide logger functions
  `get_logger`, `set_logger`, `reset_default_logger` and `discard_logger`. It
  also has `RaftPanic`, which is raised when an invariant of the log is broken.

## Usage

`Storage` is an abstract base class. You supply the implementation that holds
the persisted entries. Here is a minimal one that keeps a list starting at
index 1:

```python
from raftlog.log import RaftLog, Storage
from raftlog.logger import discard_logger
from raftlog.types import Entry, Snapshot, ents_size, limit_size


class ListStorage(Storage):
    def __init__(self, entries=()):
        self._entries = list(entries)

    def first_index(self):
        return 1

    def last_index(self):
        return len(self._entries)

    def term(self, i):
        return 0 if i == 0 else self._entries[i - 1].term

    def entries(self, lo, hi, max_size):
        return limit_size(self._entries[lo - 1:hi - 1], max_size)

    def snapshot(self):
        return Snapshot()


storage = ListStorage()
log = RaftLog(storage, discard_logger())

log.append([Entry(index=1, term=1), Entry(index=2, term=1)])
log.maybe_commit(2, 1)

# Persist what is new, then tell the log it is durable.
new = log.next_unstable_ents()
storage._entries.extend(new)
log.stable_to(new[-1].index, new[-1].term)

# Apply what is committed.
batch = log.next_committed_ents(allow_unstable=True)
size = ents_size(batch)
log.accept_applying(batch[-1].index, size, allow_unstable=True)
...  # apply batch to the state machine
log.applied_to(batch[-1].index, size)
```

The third argument of `RaftLog` is `max_applying_ents_size`, and it defaults to
`NO_LIMIT`. It caps the total size of entries that have been handed out for
application but not yet reported through `applied_to()`. When that cap is
reached, `next_committed_ents()` returns nothing until progress is reported.

`term()` raises `CompactedError` for an index that has been compacted away. It
raises `UnavailableError` for an index past the end of the log. `term_or_zero()`
returns 0 in both cases instead. `match_term()`, `find_conflict()`,
`find_conflict_by_term()` and `is_up_to_date()` build on these.

`maybe_append()` returns the last index of the new entries, or `None` when the
previous `(index, term)` does not match.

`scan(lo, hi, page_size)` is a generator. It yields the entries in `[lo, hi)` as
consecutive pages. Each page holds at most `page_size` bytes, except that a
page always holds at least one entry.

A broken invariant raises `RaftPanic`. Examples are committing past the last
index, appending over a committed entry, and slicing beyond the end of the
log. `slice()` and `check_out_of_bounds()` raise `CompactedError` when the low
bound has been compacted.

`restore(snapshot)` replaces the unstable tail with a snapshot and moves the
commit index to the snapshot's index.

## Logging

The log reports through the process-wide logger unless you pass one in.
`DefaultLogger` writes lines tagged `INFO`, `WARN`, `ERROR`, `FATAL` or `DEBUG`
to a stream, which is standard error by default. Debug output is off until
`enable_debug()` is called. `panic()` writes the message and raises `RaftPanic`.
`fatal()` writes the message and exits with status 1.

`discard_logger()` returns a logger that drops all output but still raises on
`panic()`. `set_logger()` replaces the process-wide logger, and
`reset_default_logger()` puts the standard-error one back.

## What it does not do

This package is only the log. It has no storage implementation of its own.
Persisting entries and snapshots is up to the `Storage` you provide.

It also has none of the following:

- leader election
- message passing or networking
- a node or state-machine driver
- membership changes

## Tests

```
pip install .[test]
pytest
```