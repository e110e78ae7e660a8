"""Append-only message repository backed by SQLite."""

import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from chatrelay.logger import logger
from .models import MessageRecord


class MessageRepository:
    """Durable log of chat messages.

    ``append`` is the only write. Writes are serialized so that timestamp
    order always matches id order; reads open their own connection and may
    run alongside a write.
    """

    def __init__(self, db_path: str = "chat.db"):
        self.db_path = Path(db_path)
        self._write_lock = threading.Lock()
        self._init_database()

    def _init_database(self):
        """Initialize database schema."""
        if self.db_path.parent and not self.db_path.parent.exists():
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS messages (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    sender TEXT NOT NULL,
                    receiver TEXT,  -- NULL for public messages
                    content TEXT NOT NULL,
                    timestamp TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f', 'now', 'localtime'))
                )
            """)

            conn.execute("CREATE INDEX IF NOT EXISTS idx_messages_pair ON messages (sender, receiver, timestamp)")

            conn.commit()

    def append(self, sender: str, receiver: Optional[str], content: str) -> Optional[MessageRecord]:
        """Persist a message and return the stored record, or None on failure."""
        try:
            with self._write_lock:
                timestamp = datetime.now()
                with sqlite3.connect(self.db_path) as conn:
                    cursor = conn.execute(
                        "INSERT INTO messages (sender, receiver, content, timestamp) VALUES (?, ?, ?, ?)",
                        (sender, receiver, content, timestamp.isoformat(timespec="microseconds")),
                    )
                    conn.commit()
                    message_id = cursor.lastrowid

            return MessageRecord(
                id=message_id,
                sender=sender,
                receiver=receiver,
                content=content,
                timestamp=timestamp,
            )
        except Exception as e:
            logger.error(f"Failed to store message from {sender} to {receiver or 'everyone'}: {e}")
            return None

    def history(self, user_a: str, user_b: str, limit: int = 100) -> List[MessageRecord]:
        """Get the private conversation between two identities.

        Returns the most recent ``limit`` records addressed between exactly
        this pair, oldest first. Public messages are never included.
        """
        if limit <= 0:
            return []

        try:
            with sqlite3.connect(self.db_path) as conn:
                cursor = conn.execute("""
                    SELECT * FROM (
                        SELECT id, sender, receiver, content, timestamp FROM messages
                        WHERE (sender = ? AND receiver = ?) OR (sender = ? AND receiver = ?)
                        ORDER BY timestamp DESC, id DESC
                        LIMIT ?
                    ) ORDER BY timestamp ASC, id ASC
                """, (user_a, user_b, user_b, user_a, limit))

                records = []
                for row in cursor.fetchall():
                    record = self._row_to_message(row)
                    if record:
                        records.append(record)

                return records
        except Exception as e:
            logger.error(f"Failed to get history for {user_a} and {user_b}: {e}")
            return []

    def get_message(self, message_id: int) -> Optional[MessageRecord]:
        """Get message by ID."""
        try:
            with sqlite3.connect(self.db_path) as conn:
                cursor = conn.execute(
                    "SELECT id, sender, receiver, content, timestamp FROM messages WHERE id = ?",
                    (message_id,),
                )
                row = cursor.fetchone()
                if row:
                    return self._row_to_message(row)
        except Exception as e:
            logger.error(f"Failed to get message {message_id}: {e}")
        return None

    def count_messages(self) -> int:
        """Count stored messages."""
        try:
            with sqlite3.connect(self.db_path) as conn:
                cursor = conn.execute("SELECT COUNT(*) FROM messages")
                return cursor.fetchone()[0]
        except Exception as e:
            logger.error(f"Failed to count messages: {e}")
            return 0

    def _row_to_message(self, row) -> Optional[MessageRecord]:
        """Convert database row to MessageRecord."""
        try:
            (message_id, sender, receiver, content, timestamp) = row

            return MessageRecord(
                id=message_id,
                sender=sender,
                receiver=receiver,
                content=content,
                timestamp=datetime.fromisoformat(timestamp),
            )
        except Exception as e:
            logger.error(f"Failed to convert row to message: {e}")
            return None
