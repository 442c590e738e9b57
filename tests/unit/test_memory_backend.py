from __future__ import annotations

from typing import List

import pytest

from gdprbench.backends.abstract import Backend
from gdprbench.backends.memory import MemoryBackend
from gdprbench.domain.models import KEY_PATTERN, MetadataField, Status

TABLE = "usertable"


class _FakeClock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _row(purpose: str, user: str, data: bytes = b"payload") -> dict:
    return {"PUR": purpose.encode(), "USR": user.encode(), "Data": data}


@pytest.fixture
def clock() -> _FakeClock:
    return _FakeClock()


@pytest.fixture
def backend(clock: _FakeClock) -> MemoryBackend:
    backend = MemoryBackend(log_capacity=50, clock=clock)
    backend.insert_with_expiry(TABLE, "key1", _row("purpose1", "user1"), 30)
    backend.insert_with_expiry(TABLE, "key2", _row("purpose2", "user1"), 10_000)
    backend.insert_with_expiry(TABLE, "key3", _row("purpose1", "user3"), 10_000)
    return backend


def test_memory_backend_satisfies_the_protocol() -> None:
    assert isinstance(MemoryBackend(), Backend)


def test_read_returns_requested_fields(backend: MemoryBackend) -> None:
    status, values = backend.read(TABLE, "key1", ["USR"])
    assert status is Status.OK
    assert values == {"USR": b"user1"}

    status, values = backend.read(TABLE, "key1")
    assert set(values) == {"PUR", "USR", "Data"}


def test_missing_records_are_not_found(backend: MemoryBackend) -> None:
    assert backend.read(TABLE, "nope")[0] is Status.NOT_FOUND
    assert backend.update(TABLE, "nope", {"Data": b"x"}) is Status.NOT_FOUND
    assert backend.delete(TABLE, "nope") is Status.NOT_FOUND


def test_non_positive_ttl_is_a_bad_request(backend: MemoryBackend) -> None:
    assert backend.insert_with_expiry(TABLE, "key9", _row("p", "u"), 0) is Status.BAD_REQUEST


def test_insert_overwrites_existing_record(backend: MemoryBackend) -> None:
    backend.insert_with_expiry(TABLE, "key1", _row("purpose9", "user9"), 30)
    assert backend.read(TABLE, "key1", ["PUR"])[1] == {"PUR": b"purpose9"}
    assert backend.record_count(TABLE) == 3


def test_expired_records_behave_as_missing(backend: MemoryBackend, clock: _FakeClock) -> None:
    clock.now += 31
    assert backend.read(TABLE, "key1")[0] is Status.NOT_FOUND
    assert backend.read(TABLE, "key2")[0] is Status.OK


def test_update_merges_fields(backend: MemoryBackend) -> None:
    assert backend.update(TABLE, "key2", {"Data": b"new"}) is Status.OK
    assert backend.read(TABLE, "key2")[1] == _row("purpose2", "user1", b"new")


def test_read_by_metadata_matches_value_and_pattern(backend: MemoryBackend) -> None:
    status, rows = backend.read_by_metadata(TABLE, MetadataField.PURPOSE, "purpose1", KEY_PATTERN)
    assert status is Status.OK
    assert [row["USR"] for row in rows] == [b"user1", b"user3"]

    _, rows = backend.read_by_metadata(TABLE, MetadataField.PURPOSE, "purpose1", "key3*")
    assert len(rows) == 1


def test_metadata_operations_with_no_match_are_ok(backend: MemoryBackend) -> None:
    assert backend.read_by_metadata(TABLE, MetadataField.USER, "nobody", KEY_PATTERN) == (
        Status.OK,
        [],
    )
    assert backend.delete_by_metadata(TABLE, MetadataField.USER, "nobody", KEY_PATTERN) is Status.OK


def test_invalid_metadata_position_is_a_bad_request(backend: MemoryBackend) -> None:
    assert backend.read_by_metadata(TABLE, 9, "x", KEY_PATTERN)[0] is Status.BAD_REQUEST
    assert backend.update_by_metadata(TABLE, -1, "x", KEY_PATTERN, "OBJ", b"y") is Status.BAD_REQUEST
    assert backend.delete_by_metadata(TABLE, 12, "x", KEY_PATTERN) is Status.BAD_REQUEST


def test_update_by_metadata_sets_target_field(backend: MemoryBackend) -> None:
    status = backend.update_by_metadata(
        TABLE, MetadataField.USER, "user1", KEY_PATTERN, "OBJ", b"obj7"
    )
    assert status is Status.OK
    assert backend.read(TABLE, "key1", ["OBJ"])[1] == {"OBJ": b"obj7"}
    assert backend.read(TABLE, "key2", ["OBJ"])[1] == {"OBJ": b"obj7"}
    assert backend.read(TABLE, "key3", ["OBJ"])[1] == {}


def test_delete_by_metadata_removes_matches(backend: MemoryBackend) -> None:
    assert backend.delete_by_metadata(TABLE, MetadataField.PURPOSE, "purpose1", KEY_PATTERN) is Status.OK
    assert backend.record_count(TABLE) == 1
    assert backend.read(TABLE, "key2")[0] is Status.OK


def test_scan_returns_records_in_key_order(backend: MemoryBackend) -> None:
    status, rows = backend.scan(TABLE, "key2", 10, ["PUR"])
    assert status is Status.OK
    assert rows == [{"PUR": b"purpose2"}, {"PUR": b"purpose1"}]

    assert backend.scan(TABLE, "key1", 1)[1][0]["USR"] == b"user1"
    assert backend.scan(TABLE, "key1", 0)[0] is Status.BAD_REQUEST


def test_read_log_returns_most_recent_entries(backend: MemoryBackend) -> None:
    backend.read(TABLE, "key2")
    backend.delete(TABLE, "key3")

    status, entries = backend.read_log(TABLE, 2)

    assert status is Status.OK
    assert [(entry.operation, entry.key) for entry in entries] == [("READ", "key2"), ("DELETE", "key3")]
    assert len(backend.read_log(TABLE, 100)[1]) == 5


def test_read_log_is_bounded() -> None:
    backend = MemoryBackend(log_capacity=3)
    for i in range(10):
        backend.insert_with_expiry(TABLE, f"key{i}", {"Data": b"x"}, 60)
    operations: List[str] = [entry.key for entry in backend.read_log(TABLE, 10)[1]]
    assert operations == ["key7", "key8", "key9"]


def test_compliance_check_purges_expired_sampled_records(
    backend: MemoryBackend, clock: _FakeClock
) -> None:
    clock.now += 31

    assert backend.verify_expiry_compliance(TABLE, 2) is Status.OK

    assert backend.record_count(TABLE) == 2
    assert backend.read_log(TABLE, 1)[1][0].operation == "VERIFY-TTL"


def test_compliance_check_only_looks_at_the_sample(backend: MemoryBackend, clock: _FakeClock) -> None:
    clock.now += 20_000
    backend.verify_expiry_compliance(TABLE, 1)
    assert backend.record_count(TABLE) == 2


def test_close_drops_all_tables(backend: MemoryBackend) -> None:
    backend.close()
    assert backend.record_count(TABLE) == 0
