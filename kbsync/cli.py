import asyncio
import json
import sys
from pathlib import Path

import click

from .config import DEFAULT_CLIENT_ID, DEFAULT_PAGE_SIZE, get_logger
from .harvest.activities import ActivitiesFetcher, build_activities_report, activities_report_filename
from .harvest.schedule import PaginatedHarvester, build_schedule_report, schedule_report_filename
from .sync.config import SyncConfig
from .sync.engine import Artifact, SyncEngine
from .sync.error_tracker import SyncException
from .sync.local_files import collect_artifacts, save_to_client_directory
from .sync.logging_manager import LoggingManager
from .sync.metadata_store import MetadataStore
from .sync.orchestrator import SyncOrchestrator
from .sync.rate_limit import FixedIntervalGate
from .sync.remote_client import RemoteDocumentClient
from .sync.scheduler import PeriodicRunner
from .sync.warmup import update_warmup_messages

logger = get_logger(__name__)


def setup_logging(log_level: str = 'INFO', log_file: str = None):
    LoggingManager.configure(log_level, log_file)


def fail(e: Exception):
    click.echo(f"Error: {str(e)}", err=True)
    if isinstance(e, SyncException) and e.recovery_suggestion:
        click.echo(f"Suggestion: {e.recovery_suggestion}", err=True)
    sys.exit(1)


async def sync_artifacts(artifacts, client_id: str, cache_dir: str, rate_limit: float):
    async with RemoteDocumentClient() as remote_client:
        engine = SyncEngine(MetadataStore(cache_directory=cache_dir), remote_client, FixedIntervalGate(rate_limit))
        return [await engine.process_artifact(artifact, client_id) for artifact in artifacts]


def echo_results(results):
    for result in results:
        click.echo(f"{result.status.value:10} {result.filename} {result.document_id or ''}".rstrip())


@click.group()
@click.option('--log-level', default='INFO', type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False))
@click.option('--log-file', type=click.Path(dir_okay=False), default=None, help='Also write JSON logs to this file')
def cli(log_level, log_file):
    """Keep chat-bot knowledge bases in sync with harvested reports and local files."""
    setup_logging(log_level, log_file)


@cli.command(name='run')
@click.option('--config', 'config_file', required=True, type=click.Path(exists=True, dir_okay=False), help='Sync configuration YAML')
@click.option('--watch', is_flag=True, default=False, help='Keep running, one cycle every interval')
@click.option('--interval', type=click.INT, default=None, help='Seconds between cycles (overrides the configuration)')
@click.option('--job', 'job_id', type=str, default=None, help='Run a single job by id')
def run(config_file, watch, interval, job_id):
    """Run the configured sync jobs once, or periodically with --watch."""
    try:
        config = SyncConfig.from_yaml(config_file)
    except Exception as e:
        fail(e)
    if config.log_file or config.log_level != 'INFO':
        setup_logging(config.log_level, config.log_file)

    if job_id:
        job = config.get_job_by_id(job_id)
        if job is None:
            fail(ValueError(f"Job '{job_id}' not found in configuration"))
        config.jobs = [job]

    async def main():
        async with SyncOrchestrator(config) as orchestrator:
            if not watch:
                summary = await orchestrator.run_cycle()
                click.echo(SyncOrchestrator.format_summary(summary))
                return
            runner = PeriodicRunner(
                orchestrator.run_cycle,
                interval_seconds=interval or config.interval_seconds,
                error_tracker=orchestrator.error_tracker,
                name=config.name,
            )
            try:
                await runner.run_forever()
            finally:
                runner.stop()

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Interrupted, stopping")
    except Exception as e:
        fail(e)


@cli.command(name='sync-file')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.option('--client-id', default=DEFAULT_CLIENT_ID, show_default=True)
@click.option('--filename', default=None, help='Remote filename (defaults to the local name)')
@click.option('--description', default=None, help='Description stored as document metadata')
@click.option('--cache-dir', default='./cache', show_default=True)
@click.option('--rate-limit', type=float, default=0.0, show_default=True)
def sync_file(path, client_id, filename, description, cache_dir, rate_limit):
    """Upload or replace a single file."""
    path = Path(path)
    raw = path.read_bytes()
    try:
        content = raw.decode('utf-8')
    except UnicodeDecodeError:
        content = raw
    artifact = Artifact.from_payload(content, filename or path.name, description)
    try:
        echo_results(asyncio.run(sync_artifacts([artifact], client_id, cache_dir, rate_limit)))
    except Exception as e:
        fail(e)


@cli.command(name='sync-dir')
@click.argument('directory', type=click.Path(exists=True, file_okay=False))
@click.option('--client-id', default=DEFAULT_CLIENT_ID, show_default=True)
@click.option('--cache-dir', default='./cache', show_default=True)
@click.option('--rate-limit', type=float, default=0.5, show_default=True)
def sync_dir(directory, client_id, cache_dir, rate_limit):
    """Upload or replace every file of a directory."""
    artifacts = collect_artifacts(directory)
    if not artifacts:
        click.echo(f"No files found in {directory}")
        return
    try:
        echo_results(asyncio.run(sync_artifacts(artifacts, client_id, cache_dir, rate_limit)))
    except Exception as e:
        fail(e)


@cli.command(name='harvest-schedule')
@click.argument('league_id')
@click.option('--league-name', default=None, help='League name used in the report description')
@click.option('--client-id', default=DEFAULT_CLIENT_ID, show_default=True)
@click.option('--data-dir', default='./data', show_default=True)
@click.option('--sync', 'do_sync', is_flag=True, default=False, help='Also sync the report to the knowledge base')
@click.option('--cache-dir', default='./cache', show_default=True)
def harvest_schedule(league_id, league_name, client_id, data_dir, do_sync, cache_dir):
    """Harvest a league schedule and write the schedule report."""
    async def main():
        async with PaginatedHarvester() as harvester:
            events = await harvester.harvest(league_id)
        return build_schedule_report(events, league_name)

    try:
        report = asyncio.run(main())
        filename = schedule_report_filename(league_id)
        path = save_to_client_directory(report['data'], filename, client_id, data_dir)
        click.echo(f"Schedule report written to {path}")
        if do_sync:
            artifact = Artifact.from_payload(report, filename)
            echo_results(asyncio.run(sync_artifacts([artifact], client_id, cache_dir, 0.0)))
    except Exception as e:
        fail(e)


@cli.command(name='fetch-activities')
@click.argument('park_code', default='yose')
@click.option('--park-name', default=None, help='Park name used in the report description')
@click.option('--client-id', default=DEFAULT_CLIENT_ID, show_default=True)
@click.option('--data-dir', default='./data', show_default=True)
@click.option('--sync', 'do_sync', is_flag=True, default=False, help='Also sync the report to the knowledge base')
@click.option('--cache-dir', default='./cache', show_default=True)
def fetch_activities(park_code, park_name, client_id, data_dir, do_sync, cache_dir):
    """Fetch park activities and write the activities report."""
    async def main():
        async with ActivitiesFetcher() as fetcher:
            activities = await fetcher.fetch_activities(park_code)
        return build_activities_report(activities, park_code, park_name)

    try:
        report = asyncio.run(main())
        filename = activities_report_filename(park_code)
        path = save_to_client_directory(report['data'], filename, client_id, data_dir)
        click.echo(f"Activities report written to {path}")
        if do_sync:
            artifact = Artifact.from_payload(report, filename)
            echo_results(asyncio.run(sync_artifacts([artifact], client_id, cache_dir, 0.0)))
    except Exception as e:
        fail(e)


@cli.command(name='list-documents')
@click.argument('client_id')
@click.option('--page', type=click.INT, default=0, show_default=True)
@click.option('--page-size', type=click.INT, default=DEFAULT_PAGE_SIZE, show_default=True)
def list_documents(client_id, page, page_size):
    """List one page of a client's remote documents."""
    async def main():
        async with RemoteDocumentClient() as remote_client:
            return await remote_client.list(client_id, page=page, page_size=page_size)

    try:
        documents = asyncio.run(main())
    except Exception as e:
        fail(e)
    click.echo(json.dumps(documents, indent=2, ensure_ascii=False))


@cli.command(name='fetch-document')
@click.argument('client_id')
@click.argument('document_id')
def fetch_document(client_id, document_id):
    """Show a single remote document."""
    async def main():
        async with RemoteDocumentClient() as remote_client:
            return await remote_client.fetch(document_id, client_id)

    try:
        document = asyncio.run(main())
    except Exception as e:
        fail(e)
    click.echo(json.dumps(document, indent=2, ensure_ascii=False))


@cli.command(name='warmup')
@click.argument('client_id')
@click.argument('messages_file', type=click.Path(exists=True, dir_okay=False))
def warmup(client_id, messages_file):
    """Merge user/assistant message pairs from a JSON file into the chat-bot warm-up messages."""
    with open(messages_file, 'r', encoding='utf-8') as f:
        messages = json.load(f)

    async def main():
        async with RemoteDocumentClient() as remote_client:
            return await update_warmup_messages(remote_client, messages, client_id)

    try:
        merged = asyncio.run(main())
    except Exception as e:
        fail(e)
    click.echo(f"Warm-up messages updated ({len(merged)} messages)")


@cli.command(name='metadata')
@click.argument('client_id')
@click.option('--cache-dir', default='./cache', show_default=True)
@click.option('--filename', default=None, help='Show a single artifact')
def metadata(client_id, cache_dir, filename):
    """Show what the metadata store knows about a client's artifacts."""
    store = MetadataStore(cache_directory=cache_dir)
    entries = [store.get(filename, client_id)] if filename else store.list(client_id)
    entries = [entry for entry in entries if entry is not None]
    if not entries:
        click.echo(f"No metadata for client {client_id}")
        return
    for entry in entries:
        click.echo(f"{entry.last_updated.isoformat()} | {entry.filename} | {entry.remote_document_id} | {entry.signature[:12]}")


def main():
    cli()


if __name__ == '__main__':
    main()
