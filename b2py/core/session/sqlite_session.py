"""
SQLite session storage implementation.

Persists the account authorization and the bucket cache in a local
SQLite database file.
"""
import sqlite3
import threading
from pathlib import Path
from datetime import datetime
from typing import Optional, Union
from contextlib import contextmanager

from .protocols import SessionStorage
from .models import SessionData


class SQLiteSession(SessionStorage):
    """
    SQLite-based session storage.

    One row in the `session` table holds the account state; the
    `buckets` table holds the bucket-name to bucket-id map.

    Example:
        >>> session = SQLiteSession("config", base_path=Path("~/.config/b2").expanduser())
        >>> # Creates ~/.config/b2/config.session
        >>> session.save(session_data)
        >>> loaded = session.load()
    """

    EXTENSION = '.session'
    SCHEMA_VERSION = 1

    def __init__(
        self,
        session_name: Union[str, Path],
        base_path: Optional[Path] = None
    ):
        """
        Initialize SQLite session storage.

        Args:
            session_name: Session name (without extension) or full path
            base_path: Optional base directory for session files
        """
        self._lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None

        if isinstance(session_name, Path) or session_name.endswith(self.EXTENSION):
            self._path = Path(session_name)
        elif base_path:
            self._path = base_path / f"{session_name}{self.EXTENSION}"
        else:
            self._path = Path(f"{session_name}{self.EXTENSION}")

        self._path.parent.mkdir(parents=True, exist_ok=True)

        self._init_db()

    @property
    def path(self) -> Path:
        """Get session file path."""
        return self._path

    @contextmanager
    def _get_connection(self):
        """Get thread-safe database connection."""
        with self._lock:
            if self._conn is None:
                self._conn = sqlite3.connect(
                    str(self._path),
                    check_same_thread=False
                )
                self._conn.row_factory = sqlite3.Row
            yield self._conn

    def _init_db(self) -> None:
        """Initialize database schema."""
        with self._get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute('''
                CREATE TABLE IF NOT EXISTS version (
                    version INTEGER PRIMARY KEY
                )
            ''')

            cursor.execute('''
                CREATE TABLE IF NOT EXISTS session (
                    id INTEGER PRIMARY KEY,
                    key_id TEXT NOT NULL,
                    key TEXT NOT NULL,
                    api_url TEXT,
                    download_url TEXT,
                    auth_token TEXT,
                    account_id TEXT,
                    recommended_part_size INTEGER,
                    absolute_minimum_part_size INTEGER,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            ''')

            cursor.execute('''
                CREATE TABLE IF NOT EXISTS buckets (
                    name TEXT PRIMARY KEY,
                    bucket_id TEXT NOT NULL
                )
            ''')

            cursor.execute('SELECT version FROM version LIMIT 1')
            row = cursor.fetchone()
            if row is None:
                cursor.execute(
                    'INSERT INTO version (version) VALUES (?)',
                    (self.SCHEMA_VERSION,)
                )

            conn.commit()

    def load(self) -> Optional[SessionData]:
        """
        Load session data from database.

        Returns:
            SessionData if exists, None otherwise
        """
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                SELECT key_id, key, api_url, download_url, auth_token,
                       account_id, recommended_part_size,
                       absolute_minimum_part_size, created_at, updated_at
                FROM session
                LIMIT 1
            ''')

            row = cursor.fetchone()
            if row is None:
                return None

            cursor.execute('SELECT name, bucket_id FROM buckets')
            buckets = {b['name']: b['bucket_id'] for b in cursor.fetchall()}

            defaults = SessionData()
            return SessionData(
                key_id=row['key_id'],
                key=row['key'],
                api_url=row['api_url'] or '',
                download_url=row['download_url'] or '',
                auth_token=row['auth_token'] or '',
                account_id=row['account_id'] or '',
                recommended_part_size=row['recommended_part_size'] or defaults.recommended_part_size,
                absolute_minimum_part_size=(
                    row['absolute_minimum_part_size'] or defaults.absolute_minimum_part_size
                ),
                buckets=buckets,
                created_at=datetime.fromisoformat(row['created_at']),
                updated_at=datetime.fromisoformat(row['updated_at']),
            )

    def save(self, data: SessionData) -> None:
        """
        Save session data to database.

        Args:
            data: Session data to save
        """
        data.update_timestamp()

        with self._get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute('DELETE FROM session')
            cursor.execute('''
                INSERT INTO session (
                    key_id, key, api_url, download_url, auth_token,
                    account_id, recommended_part_size,
                    absolute_minimum_part_size, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ''', (
                data.key_id,
                data.key,
                data.api_url,
                data.download_url,
                data.auth_token,
                data.account_id,
                data.recommended_part_size,
                data.absolute_minimum_part_size,
                data.created_at.isoformat(),
                data.updated_at.isoformat(),
            ))

            cursor.execute('DELETE FROM buckets')
            cursor.executemany(
                'INSERT INTO buckets (name, bucket_id) VALUES (?, ?)',
                sorted(data.buckets.items())
            )

            conn.commit()

    def delete(self) -> None:
        """Delete session data and the bucket cache."""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute('DELETE FROM session')
            cursor.execute('DELETE FROM buckets')
            conn.commit()

    def exists(self) -> bool:
        """
        Check if session exists.

        Returns:
            True if session data exists
        """
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute('SELECT COUNT(*) FROM session')
            count = cursor.fetchone()[0]
            return count > 0

    def close(self) -> None:
        """Close database connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def delete_file(self) -> None:
        """Delete the session file completely."""
        self.close()
        if self._path.exists():
            self._path.unlink()

    def __enter__(self) -> 'SQLiteSession':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
