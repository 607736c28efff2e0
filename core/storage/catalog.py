"""SQLite-backed catalog of uploaded videos."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from pathlib import Path
from threading import Lock
from typing import Any, Iterator

from core.errors import DatabaseError
from core.utils.logger import get_logger

logger = get_logger("catalog")


@dataclass
class MediaAsset:
    """A catalog entry for one uploaded video."""
    id: int
    title: str
    filename: str
    thumbnail: str | None = None
    size_bytes: int = 0
    created_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class CatalogStore:
    """Record store mapping asset ids to stored files.

    Holds one connection for its whole lifetime: open at startup, close at
    shutdown.
    """

    def __init__(self, db_path: str | Path = "catalog.sqlite") -> None:
        self.db_path = str(db_path)
        self._lock = Lock()
        self._conn: sqlite3.Connection | None = None

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def open(self) -> CatalogStore:
        """Connect and create the schema if needed."""
        if self._conn is not None:
            return self
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        try:
            conn = sqlite3.connect(self.db_path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            with self._lock:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS videos (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        title TEXT NOT NULL,
                        filename TEXT NOT NULL,
                        thumbnail TEXT,
                        size_bytes INTEGER NOT NULL DEFAULT 0,
                        created_at DATETIME DEFAULT (strftime('%Y-%m-%d %H:%M:%f', 'now'))
                    )
                """)
                conn.commit()
        except sqlite3.Error as e:
            raise DatabaseError(f"Cannot open catalog at {self.db_path}", original_error=e) from e
        self._conn = conn
        logger.info(f"Catalog opened at {self.db_path}")
        return self

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
        logger.info("Catalog closed")

    def __enter__(self) -> CatalogStore:
        return self.open()

    def __exit__(self, *exc) -> None:
        self.close()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        if self._conn is None:
            raise DatabaseError("Catalog is not open")
        with self._lock:
            try:
                yield self._conn
                self._conn.commit()
            except sqlite3.Error as e:
                self._conn.rollback()
                raise DatabaseError(str(e), original_error=e) from e
            except Exception:
                self._conn.rollback()
                raise

    def add(
        self,
        title: str,
        filename: str,
        thumbnail: str | None = None,
        size_bytes: int = 0,
    ) -> MediaAsset:
        """Insert a record and return it with its new id."""
        with self._transaction() as conn:
            cursor = conn.execute(
                "INSERT INTO videos (title, filename, thumbnail, size_bytes) VALUES (?, ?, ?, ?)",
                (title, filename, thumbnail, size_bytes),
            )
            new_id = cursor.lastrowid
        asset = self.get(new_id)
        if asset is None:
            raise DatabaseError(f"Inserted video {new_id} vanished")
        logger.info(f"Added video {new_id}: {title!r}")
        return asset

    def get(self, asset_id: int) -> MediaAsset | None:
        """Get asset by ID."""
        with self._transaction() as conn:
            row = conn.execute("SELECT * FROM videos WHERE id = ?", (asset_id,)).fetchone()
        return self._row_to_asset(row) if row else None

    def list_assets(self, limit: int | None = None) -> list[MediaAsset]:
        """All assets, most recent first."""
        sql = "SELECT * FROM videos ORDER BY created_at DESC, id DESC"
        with self._transaction() as conn:
            if limit is not None:
                rows = conn.execute(f"{sql} LIMIT ?", (limit,)).fetchall()
            else:
                rows = conn.execute(sql).fetchall()
        return [self._row_to_asset(row) for row in rows]

    def update(self, asset_id: int, **kwargs: Any) -> MediaAsset | None:
        """Update asset fields; unknown fields are ignored."""
        valid_fields = {"title", "filename", "thumbnail", "size_bytes"}
        updates = []
        values = []
        for k, v in kwargs.items():
            if k in valid_fields:
                updates.append(f"{k} = ?")
                values.append(v)

        if updates:
            values.append(asset_id)
            with self._transaction() as conn:
                conn.execute(f"UPDATE videos SET {', '.join(updates)} WHERE id = ?", values)
        return self.get(asset_id)

    def delete(self, asset_id: int) -> bool:
        """Delete a record; False if it did not exist."""
        with self._transaction() as conn:
            cursor = conn.execute("DELETE FROM videos WHERE id = ?", (asset_id,))
            deleted = cursor.rowcount > 0
        return deleted

    def _row_to_asset(self, row: sqlite3.Row) -> MediaAsset:
        return MediaAsset(
            id=row["id"],
            title=row["title"],
            filename=row["filename"],
            thumbnail=row["thumbnail"],
            size_bytes=row["size_bytes"],
            created_at=row["created_at"],
        )
