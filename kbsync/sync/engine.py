"""
Content-addressed sync engine.

For every artifact the engine decides whether it is new, unchanged or
modified by comparing a fresh content signature with the one stored for
(client, filename), and drives the create/replace protocol accordingly:

    absent            -> create   -> store metadata
    present, changed  -> replace  -> store metadata (the id may have changed)
    present, same     -> nothing

Metadata is only written after the remote write succeeded, so a failed sync
is retried from the last known-good state on the next run.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from ..csv_output import rows_to_csv
from .error_tracker import EmptyContentError
from .logging_manager import get_logger
from .metadata_store import MetadataStore
from .rate_limit import FixedIntervalGate
from .remote_client import RemoteDocumentClient
from .signature import compute_signature

logger = get_logger(__name__)


def serialize_content(content: Union[List, Dict], filename: str) -> str:
    """
    Canonical text of structured content, so equal data always gets the same signature.

    Rows (a list of dicts) become CSV for .csv filenames; anything else becomes
    JSON with sorted keys.
    """
    if not content:
        return ''
    if filename.lower().endswith('.csv') and isinstance(content, list) and all(isinstance(row, dict) for row in content):
        return rows_to_csv(content)
    return json.dumps(content, ensure_ascii=False, sort_keys=True)


@dataclass
class Artifact:
    """A named piece of content to be kept in sync."""
    content: Union[str, bytes, List, Dict]
    filename: str
    metadata: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        if isinstance(self.content, (list, dict)):
            self.content = serialize_content(self.content, self.filename)

    @classmethod
    def from_payload(cls, payload: Union[str, bytes, Dict[str, Any]], filename: str,
                     description: Optional[str] = None) -> 'Artifact':
        """
        Build an artifact from report output.

        ``payload`` is either raw content or a ``{'data': ..., 'metadata': ...}``
        dict as produced by the report builders. A description becomes the
        document metadata when no metadata is given.
        """
        if isinstance(payload, dict):
            return cls(content=payload.get('data') or '', filename=filename, metadata=payload.get('metadata'))
        metadata = {'description': description} if description else None
        return cls(content=payload, filename=filename, metadata=metadata)

    def ensure_content(self) -> None:
        """Raise EmptyContentError if there is nothing worth uploading."""
        if not self.content:
            raise EmptyContentError(f"Empty file content for {self.filename}", source_id=self.filename)
        if isinstance(self.content, (str, bytes)) and not self.content.strip():
            raise EmptyContentError(f"Blank file content for {self.filename}", source_id=self.filename)


class SyncStatus(str, Enum):
    UPLOADED = "uploaded"
    REPLACED = "replaced"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"  # empty content
    ABORTED = "aborted"  # the store returned no document id


@dataclass
class SyncResult:
    """Outcome of syncing one artifact."""
    filename: str
    client_id: str
    status: SyncStatus
    document_id: Optional[str] = None
    signature: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)


class SyncEngine:
    """
    Keeps a client's remote documents in step with local artifacts.

    Failures of the remote store propagate to the caller; the engine only logs
    them with the client and artifact they belong to.
    """

    def __init__(self, metadata_store: MetadataStore, remote_client: RemoteDocumentClient,
                 rate_limiter: Optional[FixedIntervalGate] = None):
        self.metadata_store = metadata_store
        self.remote_client = remote_client
        self.rate_limiter = rate_limiter or FixedIntervalGate()

    async def process_artifact(self, artifact: Artifact, client_id: str,
                               data_id: Optional[str] = None) -> SyncResult:
        """
        Sync one artifact for a client.

        Args:
            artifact: The artifact to sync
            client_id: Client the artifact belongs to
            data_id: Label of the job that produced the artifact, for logs

        Returns:
            SyncResult describing what happened

        Raises:
            RemoteUnavailableError: If the remote store failed; metadata is untouched
        """
        tag = f"[{client_id}][{data_id or artifact.filename}]"
        try:
            artifact.ensure_content()
        except EmptyContentError as e:
            logger.warning(f"{tag} Skipping: {e.message}")
            return SyncResult(artifact.filename, client_id, SyncStatus.SKIPPED)

        try:
            return await self._sync(artifact, client_id, tag)
        except Exception as e:
            logger.error(f"Error - {tag} Error processing file {artifact.filename}: {e}",
                         extra={'details': {'client_id': client_id, 'filename': artifact.filename, 'data_id': data_id}})
            raise
        finally:
            await self.rate_limiter.wait()

    async def _sync(self, artifact: Artifact, client_id: str, tag: str) -> SyncResult:
        previous = self.metadata_store.get(artifact.filename, client_id)
        new_signature = compute_signature(artifact.content)

        if previous is None:
            document_id = await self.remote_client.create(
                artifact.content, artifact.filename, client_id, artifact.metadata
            )
            if not document_id:
                logger.warning(f"{tag} Upload of {artifact.filename} returned no document id, metadata not saved")
                return SyncResult(artifact.filename, client_id, SyncStatus.ABORTED, signature=new_signature)
            self._save(artifact.filename, document_id, new_signature, client_id)
            logger.info(f"{tag} File uploaded: {artifact.filename} with id {document_id}")
            return SyncResult(artifact.filename, client_id, SyncStatus.UPLOADED, document_id, new_signature)

        logger.info(f"{tag} File last updated: {previous.last_updated.isoformat()}")

        if previous.signature == new_signature:
            logger.info(f"{tag} File {artifact.filename} unchanged (same signature)")
            return SyncResult(artifact.filename, client_id, SyncStatus.UNCHANGED,
                              previous.remote_document_id, new_signature)

        document_id = await self.remote_client.replace(
            previous.remote_document_id, artifact.content, artifact.filename, client_id, artifact.metadata
        )
        if not document_id:
            logger.warning(f"{tag} Replace of {artifact.filename} returned no document id, metadata not saved")
            return SyncResult(artifact.filename, client_id, SyncStatus.ABORTED, signature=new_signature)

        self._save(artifact.filename, document_id, new_signature, client_id)
        details = {}
        if document_id != previous.remote_document_id:
            details['previous_document_id'] = previous.remote_document_id
        logger.info(f"{tag} File replaced: {artifact.filename} with id {document_id} (signature changed)")
        return SyncResult(artifact.filename, client_id, SyncStatus.REPLACED, document_id, new_signature, details)

    def _save(self, filename: str, document_id: str, signature: str, client_id: str) -> None:
        self.metadata_store.put(filename, document_id, signature, datetime.now(timezone.utc), client_id)
