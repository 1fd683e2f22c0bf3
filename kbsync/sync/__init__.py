"""
Sync module for content-addressed upload of artifacts to a remote document store.

Every artifact is identified per client by its filename. A content signature
decides whether it is new, changed or unchanged; only the first two cause a
remote write, and the metadata store remembers what was written where.
"""

from .config import (
    ClientCredentials, SyncConfig, SyncJob, JobType
)

from .error_tracker import (
    ErrorTracker, ErrorSeverity, SyncException, ConfigurationError,
    EmptyContentError, MissingRequiredIdentifierError,
    RemoteError, RemoteNotFoundError, RemoteUnavailableError, CycleFailedError
)

from .signature import compute_signature
from .metadata_store import MetadataStore, ArtifactMetadata
from .remote_client import RemoteDocumentClient
from .rate_limit import FixedIntervalGate
from .engine import Artifact, SyncEngine, SyncResult, SyncStatus
from .local_files import collect_artifacts, save_to_client_directory
from .warmup import merge_warmup_messages, update_warmup_messages
from .scheduler import PeriodicRunner
from .orchestrator import SyncOrchestrator, CycleSummary

__all__ = [
    # Configuration
    'ClientCredentials',
    'SyncConfig',
    'SyncJob',
    'JobType',

    # Errors
    'ErrorTracker',
    'ErrorSeverity',
    'SyncException',
    'ConfigurationError',
    'EmptyContentError',
    'MissingRequiredIdentifierError',
    'RemoteError',
    'RemoteNotFoundError',
    'RemoteUnavailableError',
    'CycleFailedError',

    # Sync
    'compute_signature',
    'MetadataStore',
    'ArtifactMetadata',
    'RemoteDocumentClient',
    'FixedIntervalGate',
    'Artifact',
    'SyncEngine',
    'SyncResult',
    'SyncStatus',
    'PeriodicRunner',
    'SyncOrchestrator',
    'CycleSummary',

    # Local files and chat-bot settings
    'collect_artifacts',
    'save_to_client_directory',
    'merge_warmup_messages',
    'update_warmup_messages',
]
