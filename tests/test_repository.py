"""Tests for the DuckDB contract repository."""

from datetime import datetime, timedelta

import pytest

from code_retriever.core.errors import StorageError
from code_retriever.core.schemas import SourceCode
from code_retriever.storage.repository import ContractRepository

ADDRESS = "0x" + "ab" * 20
HASH = "0x" + "0" * 64


class FakeNow:
    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def now():
    return FakeNow()


@pytest.fixture
def repo(now):
    repository = ContractRepository(":memory:", clock=now)
    yield repository
    repository.close()


def _code(name: str = "Token") -> SourceCode:
    return SourceCode.model_validate({"ContractName": name, "SourceCode": f"contract {name} {{}}"})


def test_get_missing_returns_none(repo):
    assert repo.get(ADDRESS) is None


def test_upsert_then_get(repo, now):
    repo.upsert(ADDRESS, _code(), HASH)
    record = repo.get(ADDRESS)
    assert record.address == ADDRESS
    assert record.contract_name == "Token"
    assert record.source_code == _code()
    assert record.binary_hash == HASH
    assert record.created_at == now.now
    assert record.updated_at == now.now


def test_upsert_updates_existing_row(repo, now):
    created = now.now
    repo.upsert(ADDRESS, _code("Old"), HASH)
    now.now = created + timedelta(days=31)
    repo.upsert(ADDRESS, _code("New"), "0x" + "1" * 64)

    record = repo.get(ADDRESS)
    assert record.contract_name == "New"
    assert record.source_code.contract_name == "New"
    assert record.binary_hash == "0x" + "1" * 64
    assert record.created_at == created
    assert record.updated_at == created + timedelta(days=31)


def test_addresses_are_independent(repo):
    other = "0x" + "cd" * 20
    repo.upsert(ADDRESS, _code("A"), HASH)
    repo.upsert(other, _code("B"), HASH)
    assert repo.get(ADDRESS).contract_name == "A"
    assert repo.get(other).contract_name == "B"


@pytest.mark.parametrize("stored", ["[1, 2]", '"not a record"', "null"])
def test_corrupt_row_raises_storage_error(repo, now, stored):
    repo._conn.execute(
        "INSERT INTO code VALUES (?, ?, ?, ?, ?, ?)",
        [ADDRESS, "Token", stored, HASH, now.now, now.now],
    )
    with pytest.raises(StorageError, match="corrupt row"):
        repo.get(ADDRESS)


def test_file_database_persists(tmp_path, now):
    path = str(tmp_path / "code.duckdb")
    first = ContractRepository(path, clock=now)
    first.upsert(ADDRESS, _code(), HASH)
    first.close()

    second = ContractRepository(path, clock=now)
    try:
        assert second.get(ADDRESS).contract_name == "Token"
    finally:
        second.close()
