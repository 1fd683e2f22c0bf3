"""
Tests for the kbsync command line.
"""

import pytest
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import MagicMock, AsyncMock, patch
from click.testing import CliRunner

from ..cli import cli
from ..sync.logging_manager import LoggingManager
from ..sync.metadata_store import MetadataStore


@pytest.fixture
def temp_dir():
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def runner():
    yield CliRunner()
    # handlers bound to the runner's captured stdout
    LoggingManager.reset()


def mock_remote_client(create_id='doc-1'):
    remote = MagicMock()
    remote.create = AsyncMock(return_value=create_id)
    remote.replace = AsyncMock(return_value=create_id)
    remote.__aenter__.return_value = remote
    remote.__aexit__.return_value = False
    return MagicMock(return_value=remote), remote


class TestCli:
    def test_metadata_lists_entries(self, runner, temp_dir):
        store = MetadataStore(cache_directory=str(temp_dir))
        store.put('a.csv', 'doc-1', 'abcdef0123456789', datetime(2024, 9, 25, tzinfo=timezone.utc), 'acme')

        result = runner.invoke(cli, ['metadata', 'acme', '--cache-dir', str(temp_dir)])

        assert result.exit_code == 0
        assert 'a.csv | doc-1 | abcdef012345' in result.output

    def test_metadata_unknown_client(self, runner, temp_dir):
        result = runner.invoke(cli, ['metadata', 'nobody', '--cache-dir', str(temp_dir)])
        assert result.exit_code == 0
        assert 'No metadata for client nobody' in result.output

    def test_sync_file_twice(self, runner, temp_dir):
        path = temp_dir / 'notes.txt'
        path.write_text('team notes', encoding='utf-8')
        client_class, remote = mock_remote_client()
        cache_dir = str(temp_dir / 'cache')

        with patch('kbsync.cli.RemoteDocumentClient', client_class):
            first = runner.invoke(cli, ['sync-file', str(path), '--client-id', 'acme', '--cache-dir', cache_dir,
                                        '--description', 'Team notes'])
            second = runner.invoke(cli, ['sync-file', str(path), '--client-id', 'acme', '--cache-dir', cache_dir])

        assert first.exit_code == 0, first.output
        assert 'uploaded' in first.output
        assert 'unchanged' in second.output
        remote.create.assert_awaited_once_with('team notes', 'notes.txt', 'acme', {'description': 'Team notes'})

    def test_run_with_invalid_config(self, runner, temp_dir):
        config = temp_dir / 'sync.yaml'
        config.write_text("name: broken\njobs:\n  - id: worlds\n    type: schedule\n", encoding='utf-8')

        result = runner.invoke(cli, ['run', '--config', str(config)])

        assert result.exit_code == 1
        assert 'Error:' in result.output
