"""
Storage Primitives
Key-value storage the engine runs against, in memory or in a SQL database
"""

import copy
import logging
from contextlib import contextmanager

from sqlalchemy import text

logger = logging.getLogger(__name__)

CONTRACT_STATE_SCHEMA_SQL = """
-- ============================================
-- DICE ENGINE CONTRACT STATE
-- ============================================

-- One row per (contract, key); values are JSON records
CREATE TABLE IF NOT EXISTS contract_state (
    contract_address TEXT NOT NULL,
    state_key TEXT NOT NULL,
    state_value TEXT NOT NULL,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    PRIMARY KEY (contract_address, state_key)
);
"""


class Storage:
    """get/set/remove over string keys and string values"""

    def get(self, key):
        raise NotImplementedError

    def set(self, key, value):
        raise NotImplementedError

    def remove(self, key):
        raise NotImplementedError


class MemoryStorage(Storage):
    """Dict-backed storage with snapshot/rollback transactions"""

    def __init__(self, data=None):
        self._data = dict(data or {})

    def get(self, key):
        return self._data.get(key)

    def set(self, key, value):
        self._data[key] = value

    def remove(self, key):
        self._data.pop(key, None)

    def snapshot(self):
        return copy.deepcopy(self._data)

    @contextmanager
    def transaction(self):
        """All-or-nothing: any exception restores the state from before the block."""
        saved = self.snapshot()
        try:
            yield self
        except Exception:
            self._data = saved
            raise


class SqlStorage(Storage):
    """
    Storage bound to one open SQLAlchemy connection

    Use inside `with engine.begin() as conn:` so every write commits or
    rolls back together with the rest of the transaction.
    """

    def __init__(self, conn, contract_address):
        self.conn = conn
        self.contract_address = contract_address

    def get(self, key):
        result = self.conn.execute(text("""
            SELECT state_value FROM contract_state
            WHERE contract_address = :address AND state_key = :key
        """), {'address': self.contract_address, 'key': key})
        row = result.fetchone()
        return row[0] if row else None

    def set(self, key, value):
        self.conn.execute(text("""
            INSERT INTO contract_state (contract_address, state_key, state_value, updated_at)
            VALUES (:address, :key, :value, CURRENT_TIMESTAMP)
            ON CONFLICT (contract_address, state_key)
            DO UPDATE SET
                state_value = excluded.state_value,
                updated_at = CURRENT_TIMESTAMP
        """), {'address': self.contract_address, 'key': key, 'value': value})

    def remove(self, key):
        self.conn.execute(text("""
            DELETE FROM contract_state
            WHERE contract_address = :address AND state_key = :key
        """), {'address': self.contract_address, 'key': key})


def _schema_statements(schema_sql):
    # SQLite executes one statement at a time
    statements = []
    current_statement = []
    for line in schema_sql.split('\n'):
        stripped = line.strip()
        if not stripped or stripped.startswith('--'):
            continue
        current_statement.append(line)
        if stripped.endswith(';'):
            statements.append('\n'.join(current_statement))
            current_statement = []
    return statements


def setup_contract_database(engine):
    """
    Create the contract state table

    Args:
        engine: SQLAlchemy engine instance
    """
    logger.info("Setting up contract state schema...")
    with engine.begin() as conn:
        for statement in _schema_statements(CONTRACT_STATE_SCHEMA_SQL):
            conn.execute(text(statement))
    logger.info("✅ Contract state schema ready")


def verify_contract_schema(engine):
    """
    Check that the contract state table exists and is queryable

    Returns:
        dict: {'contract_state': True/False}
    """
    try:
        with engine.begin() as conn:
            conn.execute(text("SELECT COUNT(*) FROM contract_state"))
        return {'contract_state': True}
    except Exception as e:
        logger.error(f"Failed to verify schema: {e}")
        return {'contract_state': False}
