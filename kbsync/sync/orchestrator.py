"""
Sync orchestration.

Runs the configured jobs of one deployment: each job harvests or collects its
artifacts, optionally saves generated reports locally, and hands every
artifact to the SyncEngine. One run over all enabled jobs is a sync cycle; the
PeriodicRunner repeats cycles on a timer.
"""

import json
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .config import SyncConfig, SyncJob, JobType
from .engine import Artifact, SyncEngine, SyncResult, SyncStatus
from .error_tracker import CycleFailedError, ErrorTracker, ErrorSeverity
from .local_files import collect_artifacts, save_to_client_directory
from .logging_manager import get_logger
from .metadata_store import MetadataStore
from .rate_limit import FixedIntervalGate
from .remote_client import RemoteDocumentClient
from ..harvest.activities import ActivitiesFetcher, build_activities_report, activities_report_filename
from ..harvest.schedule import PaginatedHarvester, build_schedule_report, schedule_report_filename

logger = get_logger(__name__)


@dataclass
class CycleSummary:
    """Summary of one sync cycle."""
    total_jobs: int
    successful_jobs: int
    failed_jobs: int
    results: List[SyncResult] = field(default_factory=list)
    errors: List[Dict[str, Any]] = field(default_factory=list)
    processing_time: float = 0.0

    def count(self, status: SyncStatus) -> int:
        return sum(1 for result in self.results if result.status == status)


class SyncOrchestrator:
    """
    Coordinates harvesting, local output and syncing for all configured jobs.

    Components can be injected; anything not given is built from the config.
    """

    def __init__(self, config: SyncConfig,
                 remote_client: Optional[RemoteDocumentClient] = None,
                 metadata_store: Optional[MetadataStore] = None,
                 harvester: Optional[PaginatedHarvester] = None,
                 activities_fetcher: Optional[ActivitiesFetcher] = None,
                 rate_limiter: Optional[FixedIntervalGate] = None):
        self.config = config
        self.error_tracker = ErrorTracker()
        self.remote_client = remote_client or RemoteDocumentClient()
        self.metadata_store = metadata_store or MetadataStore(cache_directory=config.cache_directory)
        self.harvester = harvester or PaginatedHarvester()
        self.activities_fetcher = activities_fetcher or ActivitiesFetcher()
        self.engine = SyncEngine(
            self.metadata_store,
            self.remote_client,
            rate_limiter or FixedIntervalGate(config.rate_limit_seconds)
        )
        logger.info(f"Sync orchestrator initialized: {config.name}",
                    extra={'details': {'jobs': len(config.jobs)}})

    async def close(self):
        await self.remote_client.close()
        await self.harvester.close()
        await self.activities_fetcher.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def run_cycle(self) -> CycleSummary:
        """
        Run every enabled job once.

        Job failures do not stop the remaining jobs; once all have run, a
        CycleFailedError is raised if any of them failed.
        """
        started = time.time()
        jobs = self.config.get_enabled_jobs()
        results: List[SyncResult] = []
        failed: List[str] = []
        errors_before = len(self.error_tracker.errors)

        logger.info(f"Starting sync cycle with {len(jobs)} jobs")
        for job in jobs:
            try:
                results.extend(await self.run_job(job))
            except Exception as e:
                failed.append(job.id)
                self.error_tracker.report_exception(e, source_id=job.id, severity=ErrorSeverity.ERROR)
                logger.error(f"Error - [{job.client_id}][{job.id}] Job failed: {e}",
                             extra={'details': {'job_id': job.id, 'client_id': job.client_id}})

        summary = CycleSummary(
            total_jobs=len(jobs),
            successful_jobs=len(jobs) - len(failed),
            failed_jobs=len(failed),
            results=results,
            errors=[e.to_dict() for e in self.error_tracker.errors[errors_before:]],
            processing_time=time.time() - started,
        )
        logger.info(
            f"Sync cycle finished: {summary.successful_jobs}/{summary.total_jobs} jobs succeeded, "
            f"{summary.count(SyncStatus.UPLOADED)} uploaded, {summary.count(SyncStatus.REPLACED)} replaced, "
            f"{summary.count(SyncStatus.UNCHANGED)} unchanged"
        )
        if failed:
            raise CycleFailedError(f"{len(failed)} of {len(jobs)} jobs failed: {', '.join(failed)}", failed_jobs=failed)
        return summary

    async def run_job(self, job: SyncJob) -> List[SyncResult]:
        """Run a single job and return the sync result of each of its artifacts."""
        if job.type == JobType.SCHEDULE:
            events = await self.harvester.harvest(job.league_id)
            report = build_schedule_report(events, job.league_name)
            artifacts = [self._report_artifact(job, report, schedule_report_filename(job.league_id))]
        elif job.type == JobType.ACTIVITIES:
            activities = await self.activities_fetcher.fetch_activities(job.park_code)
            report = build_activities_report(activities, job.park_code)
            artifacts = [self._report_artifact(job, report, activities_report_filename(job.park_code))]
        elif job.type == JobType.DIRECTORY:
            artifacts = collect_artifacts(job.path, job.metadata)
        else:
            raise ValueError(f"Unsupported job type: {job.type}")

        results = []
        for artifact in artifacts:
            results.append(await self.engine.process_artifact(artifact, job.client_id, data_id=job.id))
        return results

    def _report_artifact(self, job: SyncJob, report: Dict[str, Any], filename: str) -> Artifact:
        artifact = Artifact.from_payload(report, filename)
        if job.metadata:
            artifact.metadata = {**(artifact.metadata or {}), **job.metadata}
        if job.save_to_file:
            save_to_client_directory(report['data'], filename, job.client_id, self.config.data_directory)
            save_to_client_directory(
                report['metadata'],
                filename.rsplit('.', 1)[0] + '_metadata.json',
                job.client_id,
                self.config.data_directory
            )
        return artifact

    def get_error_report(self) -> Dict[str, Any]:
        return self.error_tracker.generate_report()

    @staticmethod
    def format_summary(summary: CycleSummary) -> str:
        return json.dumps({
            'total_jobs': summary.total_jobs,
            'successful_jobs': summary.successful_jobs,
            'failed_jobs': summary.failed_jobs,
            'processing_time': round(summary.processing_time, 2),
            'results': [
                {'filename': r.filename, 'client_id': r.client_id, 'status': r.status.value, 'document_id': r.document_id}
                for r in summary.results
            ],
        }, indent=2, ensure_ascii=False)
