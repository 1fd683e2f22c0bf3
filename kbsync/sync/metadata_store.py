"""
Metadata store for synchronized artifacts.

Remembers, per (client, filename), which remote document holds the artifact,
the signature of the content last written there and when. The store is only a
hint: the remote document may have disappeared since, which the remote client
detects and repairs on the next replace.
"""

import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional
from dataclasses import dataclass

from .logging_manager import get_logger


logger = get_logger(__name__)


@dataclass
class ArtifactMetadata:
    """Last known sync state of one artifact."""
    filename: str
    client_id: str
    remote_document_id: Optional[str]
    signature: str
    last_updated: datetime


class MetadataStore:
    """
    SQLite-backed metadata store keyed by (client_id, filename).

    Access is not locked. Callers serialize syncs of the same artifact; when two
    writes of the same key race, the last one wins.
    """

    def __init__(self, cache_directory: str = "./cache", filename: str = "file_metadata.sqlite"):
        self.cache_directory = Path(cache_directory)
        self.cache_directory.mkdir(parents=True, exist_ok=True)
        self.db_path = self.cache_directory / filename
        self._init_db()

    def _init_db(self):
        """Initialize the metadata database."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS file_metadata (
                    client_id TEXT NOT NULL,
                    filename TEXT NOT NULL,
                    file_id TEXT,
                    signature TEXT NOT NULL,
                    last_updated TEXT NOT NULL,
                    PRIMARY KEY (client_id, filename)
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_file_metadata_updated ON file_metadata(last_updated)")

    def get(self, filename: str, client_id: str) -> Optional[ArtifactMetadata]:
        """Retrieve the metadata of an artifact, or None if it was never synced."""
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute(
                "SELECT file_id, signature, last_updated FROM file_metadata WHERE client_id = ? AND filename = ?",
                (client_id, filename)
            )
            result = cursor.fetchone()

        if result:
            return ArtifactMetadata(
                filename=filename,
                client_id=client_id,
                remote_document_id=result[0],
                signature=result[1],
                last_updated=datetime.fromisoformat(result[2])
            )
        return None

    def put(self, filename: str, remote_document_id: str, signature: str,
            timestamp: Optional[datetime], client_id: str) -> None:
        """Store the metadata of an artifact, replacing any previous entry for the key."""
        timestamp = timestamp or datetime.now(timezone.utc)
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                INSERT OR REPLACE INTO file_metadata
                (client_id, filename, file_id, signature, last_updated)
                VALUES (?, ?, ?, ?, ?)
            """, (client_id, filename, remote_document_id, signature, timestamp.isoformat()))
        logger.debug(f"[{client_id}][{filename}] Stored metadata for document {remote_document_id}")

    def list(self, client_id: str) -> List[ArtifactMetadata]:
        """All artifacts known for a client, most recently updated first."""
        entries = []
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute(
                "SELECT filename, file_id, signature, last_updated FROM file_metadata "
                "WHERE client_id = ? ORDER BY last_updated DESC",
                (client_id,)
            )
            for row in cursor.fetchall():
                entries.append(ArtifactMetadata(
                    filename=row[0],
                    client_id=client_id,
                    remote_document_id=row[1],
                    signature=row[2],
                    last_updated=datetime.fromisoformat(row[3])
                ))
        return entries
