import pytest

from raftlog.types import (
    NO_LIMIT,
    Entry,
    EntryType,
    Snapshot,
    SnapshotMetadata,
    ents_size,
    limit_size,
)


def _ents(n):
    return [Entry(index=i, term=i) for i in range(1, n + 1)]


def test_empty_entry_size():
    assert Entry().size() == 6


def test_size_grows_with_data():
    assert Entry(data=b"").size() > Entry().size()
    assert Entry(data=b"abc").size() > Entry(data=b"").size()


def test_size_grows_at_varint_boundary():
    assert Entry(term=127).size() < Entry(term=128).size()
    assert Entry(index=127).size() == Entry(index=1).size()


def test_entry_type_affects_size_only_by_value():
    assert Entry(type=EntryType.CONF_CHANGE).size() == Entry().size()


def test_ents_size_is_sum():
    ents = _ents(5) + [Entry(index=6, term=6, data=b"xyz")]
    assert ents_size(ents) == sum(e.size() for e in ents)
    assert ents_size([]) == 0


def test_limit_size_empty():
    assert limit_size([], 10) == []


def test_limit_size_keeps_at_least_one():
    ents = _ents(4)
    assert limit_size(ents, 0) == ents[:1]


def test_limit_size_no_limit_keeps_all():
    ents = _ents(4)
    assert limit_size(ents, NO_LIMIT) == ents


@pytest.mark.parametrize("count", [1, 2, 3, 4])
def test_limit_size_exact_fit(count):
    ents = _ents(4)
    assert limit_size(ents, ents_size(ents[:count])) == ents[:count]
    if count < 4:
        assert limit_size(ents, ents_size(ents[: count + 1]) - 1) == ents[:count]


def test_snapshot_defaults_and_equality():
    s = Snapshot(metadata=SnapshotMetadata(index=4, term=1))
    assert s == Snapshot(metadata=SnapshotMetadata(index=4, term=1))
    assert Snapshot().metadata == SnapshotMetadata(index=0, term=0)