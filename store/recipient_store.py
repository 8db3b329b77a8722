import sqlite3
import logging
from contextlib import closing, contextmanager
from datetime import datetime
from typing import Iterator, List, Optional
from uuid import UUID

from models.recipient import RecipientRecord
from utils.time_utils import from_db, to_db

logger = logging.getLogger("gms_service")

SCHEMA = (
    "CREATE TABLE IF NOT EXISTS recipient ("
    "id TEXT PRIMARY KEY, "
    "email_address TEXT NOT NULL, "
    "expiry_date TEXT NOT NULL, "
    "created_on TEXT NOT NULL, "
    "is_deleted INTEGER NOT NULL DEFAULT 0);"
)
EXPIRY_INDEX = "CREATE INDEX IF NOT EXISTS idx_recipient_expiry ON recipient (expiry_date, is_deleted);"

COLUMNS = "id, email_address, expiry_date, created_on, is_deleted"

# is_deleted is OR-ed with the stored flag so an upsert never revives a soft-deleted row
UPSERT_RECIPIENT_QUERY = (
    f"INSERT INTO recipient ({COLUMNS}) VALUES (?, ?, ?, ?, ?) "
    "ON CONFLICT(id) DO UPDATE SET "
    "email_address = excluded.email_address, "
    "expiry_date = excluded.expiry_date, "
    "created_on = excluded.created_on, "
    "is_deleted = MAX(recipient.is_deleted, excluded.is_deleted);"
)
GET_RECIPIENT_QUERY = f"SELECT {COLUMNS} FROM recipient WHERE id = ?;"
FIND_ACTIVE_BY_EMAIL_QUERY = (
    f"SELECT {COLUMNS} FROM recipient "
    "WHERE email_address = ? AND expiry_date > ? AND is_deleted = 0 "
    "ORDER BY expiry_date DESC LIMIT 1;"
)
LIST_ACTIVE_QUERY = (
    f"SELECT {COLUMNS} FROM recipient "
    "WHERE expiry_date > ? AND is_deleted = 0 ORDER BY created_on;"
)
SOFT_DELETE_EXPIRED_QUERY = "UPDATE recipient SET is_deleted = 1 WHERE expiry_date <= ? AND is_deleted = 0;"
HARD_DELETE_QUERY = "DELETE FROM recipient WHERE expiry_date < ?;"


class StoreError(Exception):
    """A recipient store operation failed (connection, query or decoding)."""


class RecipientStore:
    """
    SQLite-backed persistence for recipient records.

    Every call opens its own connection and runs inside a transaction, so
    the store can be shared between the web app and the scheduler thread.
    """

    def __init__(self, database_path: str, timeout: float = 30.0):
        self.database_path = database_path
        self.timeout = timeout

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            with closing(sqlite3.connect(self.database_path, timeout=self.timeout)) as conn:
                conn.row_factory = sqlite3.Row
                with conn:
                    yield conn
        except sqlite3.Error as e:
            logger.error(f"Recipient store operation failed on {self.database_path}: {e}")
            raise StoreError(str(e)) from e

    def create_table(self):
        with self._connect() as conn:
            conn.execute(SCHEMA)
            conn.execute(EXPIRY_INDEX)
        logger.info(f"Recipient table ready in {self.database_path}")

    def upsert_recipient(self, record: RecipientRecord):
        with self._connect() as conn:
            conn.execute(UPSERT_RECIPIENT_QUERY, (
                str(record.id),
                record.email_address,
                to_db(record.expiry_date),
                to_db(record.created_on),
                int(record.is_deleted),
            ))

    def get_recipient(self, recipient_id: UUID) -> Optional[RecipientRecord]:
        with self._connect() as conn:
            row = conn.execute(GET_RECIPIENT_QUERY, (str(recipient_id),)).fetchone()
        return _to_record(row) if row else None

    def find_active_by_email(self, email_address: str, now: datetime) -> Optional[RecipientRecord]:
        with self._connect() as conn:
            row = conn.execute(
                FIND_ACTIVE_BY_EMAIL_QUERY, (email_address.strip().lower(), to_db(now))
            ).fetchone()
        return _to_record(row) if row else None

    def list_active(self, now: datetime) -> List[RecipientRecord]:
        """Records not soft-deleted whose expiry is strictly after `now`."""
        with self._connect() as conn:
            rows = conn.execute(LIST_ACTIVE_QUERY, (to_db(now),)).fetchall()
        return [_to_record(row) for row in rows]

    def soft_delete_expired(self, now: datetime) -> int:
        """Flags every record with expiry at or before `now`. Returns the number newly flagged."""
        with self._connect() as conn:
            cursor = conn.execute(SOFT_DELETE_EXPIRED_QUERY, (to_db(now),))
            return cursor.rowcount

    def hard_delete_older_than(self, threshold: datetime) -> int:
        """Removes every record whose expiry is strictly before `threshold`, deleted or not."""
        with self._connect() as conn:
            cursor = conn.execute(HARD_DELETE_QUERY, (to_db(threshold),))
            return cursor.rowcount


def _to_record(row: sqlite3.Row) -> RecipientRecord:
    try:
        return RecipientRecord(
            id=UUID(row["id"]),
            email_address=row["email_address"],
            expiry_date=from_db(row["expiry_date"]),
            created_on=from_db(row["created_on"]),
            is_deleted=bool(row["is_deleted"]),
        )
    except ValueError as e:
        raise StoreError(f"Corrupt recipient row {row['id']}: {e}") from e
