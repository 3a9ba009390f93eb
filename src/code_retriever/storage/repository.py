"""
DuckDB-backed store of fetched contract source, keyed by address.
"""

import json
from datetime import datetime, timezone
from typing import Callable, Optional

import duckdb

from code_retriever.core.errors import StorageError
from code_retriever.core.logging import get_logger
from code_retriever.core.schemas import ContractRecord, SourceCode

_LOG = get_logger(__name__)

_SCHEMA = """
    CREATE TABLE IF NOT EXISTS code (
        address VARCHAR PRIMARY KEY,
        contract_name VARCHAR,
        source_code JSON,
        binary_hash VARCHAR,
        created_at TIMESTAMP NOT NULL,
        updated_at TIMESTAMP NOT NULL
    )
"""

_UPSERT = """
    INSERT INTO code (address, contract_name, source_code, binary_hash, created_at, updated_at)
    VALUES (?, ?, ?, ?, ?, ?)
    ON CONFLICT (address) DO UPDATE
    SET contract_name = EXCLUDED.contract_name,
        source_code = EXCLUDED.source_code,
        binary_hash = EXCLUDED.binary_hash,
        updated_at = EXCLUDED.updated_at
"""

_SELECT = """
    SELECT address, contract_name, source_code, binary_hash, created_at, updated_at
    FROM code WHERE address = ?
"""


def utcnow() -> datetime:
    """Naive UTC timestamp, matching what DuckDB TIMESTAMP columns return."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ContractRepository:
    def __init__(self, dsn: str, clock: Callable[[], datetime] = utcnow):
        self.dsn = dsn
        self._clock = clock
        try:
            self._conn = duckdb.connect(dsn)
            self._conn.execute(_SCHEMA)
        except duckdb.Error as e:
            raise StorageError(f"cannot open database {dsn!r}: {e}") from e
        _LOG.info(f"repository ready dsn={dsn}")

    def upsert(self, address: str, source_code: SourceCode, binary_hash: str) -> None:
        now = self._clock()
        params = [
            address,
            source_code.contract_name,
            source_code.to_json(),
            binary_hash,
            now,
            now,
        ]
        try:
            # one cursor per call: a DuckDB connection is not shared across threads
            with self._conn.cursor() as cur:
                cur.execute(_UPSERT, params)
        except duckdb.Error as e:
            raise StorageError(f"upsert failed for {address}: {e}") from e

    def get(self, address: str) -> Optional[ContractRecord]:
        try:
            with self._conn.cursor() as cur:
                row = cur.execute(_SELECT, [address]).fetchone()
        except duckdb.Error as e:
            raise StorageError(f"query failed for {address}: {e}") from e
        if row is None:
            return None

        addr, contract_name, source_json, binary_hash, created_at, updated_at = row
        try:
            return ContractRecord(
                address=addr,
                contract_name=contract_name or "",
                source_code=SourceCode.model_validate(json.loads(source_json)),
                binary_hash=binary_hash or "",
                created_at=created_at,
                updated_at=updated_at,
            )
        except (TypeError, ValueError) as e:
            # pydantic's ValidationError and JSONDecodeError are ValueErrors
            raise StorageError(f"corrupt row for {address}: {e}") from e

    def close(self) -> None:
        self._conn.close()
