"""
Tests for the content-addressed sync engine.

The metadata store is real (SQLite in a temp directory); the remote document
store is an AsyncMock so the tests can count and inspect remote writes.
"""

import pytest
import asyncio
import tempfile
from unittest.mock import Mock, AsyncMock

from ..engine import Artifact, SyncEngine, SyncStatus
from ..error_tracker import EmptyContentError, RemoteUnavailableError
from ..metadata_store import MetadataStore
from ..signature import compute_signature


@pytest.fixture
def store():
    with tempfile.TemporaryDirectory() as temp_dir:
        yield MetadataStore(cache_directory=temp_dir)


@pytest.fixture
def remote():
    remote = Mock()
    remote.create = AsyncMock(return_value='doc-1')
    remote.replace = AsyncMock(return_value='doc-1')
    return remote


@pytest.fixture
def gate():
    gate = Mock()
    gate.wait = AsyncMock(return_value=0.0)
    return gate


@pytest.fixture
def engine(store, remote, gate):
    return SyncEngine(store, remote, gate)


class TestArtifact:
    def test_from_report_payload(self):
        artifact = Artifact.from_payload({'data': 'a,b\n', 'metadata': {'query_type': 'sql'}}, 'r.csv')
        assert artifact.content == 'a,b\n'
        assert artifact.metadata == {'query_type': 'sql'}

    def test_description_becomes_metadata(self):
        artifact = Artifact.from_payload('text', 'notes.txt', description='Team notes')
        assert artifact.metadata == {'description': 'Team notes'}

    def test_no_description_no_metadata(self):
        assert Artifact.from_payload('text', 'notes.txt').metadata is None

    @pytest.mark.parametrize('content', ['', '   \n', b'', b'  \n\t ', [], {}])
    def test_empty_content_rejected(self, content):
        with pytest.raises(EmptyContentError):
            Artifact(content, 'empty.txt').ensure_content()

    def test_rows_serialized_as_csv_for_csv_names(self):
        artifact = Artifact([{'team': 'T1', 'wins': 3}], 'teams.csv')
        assert artifact.content == 'team,wins\nT1,3'

    def test_structured_content_serialized_as_sorted_json(self):
        first = Artifact({'b': 1, 'a': [2]}, 'data.json')
        second = Artifact({'a': [2], 'b': 1}, 'data.json')
        assert first.content == '{"a": [2], "b": 1}'
        assert compute_signature(first.content) == compute_signature(second.content)

    def test_structured_report_payload(self):
        artifact = Artifact.from_payload({'data': [{'a': 1}], 'metadata': None}, 'rows.json')
        assert artifact.content == '[{"a": 1}]'


class TestSyncEngine:
    @pytest.mark.asyncio
    async def test_first_sync_creates_and_stores_metadata(self, engine, store, remote):
        result = await engine.process_artifact(Artifact('hello', 'a.txt', {'k': 'v'}), 'acme')

        assert result.status == SyncStatus.UPLOADED
        assert result.document_id == 'doc-1'
        remote.create.assert_awaited_once_with('hello', 'a.txt', 'acme', {'k': 'v'})
        remote.replace.assert_not_called()

        entry = store.get('a.txt', 'acme')
        assert entry.remote_document_id == 'doc-1'
        assert entry.signature == compute_signature('hello')

    @pytest.mark.asyncio
    async def test_unchanged_content_makes_no_remote_call(self, engine, store, remote):
        await engine.process_artifact(Artifact('hello', 'a.txt'), 'acme')
        before = store.get('a.txt', 'acme')

        result = await engine.process_artifact(Artifact('hello', 'a.txt'), 'acme')

        assert result.status == SyncStatus.UNCHANGED
        assert result.document_id == 'doc-1'
        assert remote.create.await_count == 1
        remote.replace.assert_not_called()
        assert store.get('a.txt', 'acme') == before

    @pytest.mark.asyncio
    async def test_changed_content_replaces(self, engine, store, remote):
        await engine.process_artifact(Artifact('v1', 'a.txt'), 'acme')

        result = await engine.process_artifact(Artifact('v2', 'a.txt'), 'acme')

        assert result.status == SyncStatus.REPLACED
        remote.replace.assert_awaited_once_with('doc-1', 'v2', 'a.txt', 'acme', None)
        assert store.get('a.txt', 'acme').signature == compute_signature('v2')

    @pytest.mark.asyncio
    async def test_replace_with_new_id_updates_metadata(self, engine, store, remote):
        await engine.process_artifact(Artifact('v1', 'a.txt'), 'acme')
        # the store lost doc-1, the client re-created it as doc-2
        remote.replace.return_value = 'doc-2'

        result = await engine.process_artifact(Artifact('v2', 'a.txt'), 'acme')

        assert result.status == SyncStatus.REPLACED
        assert result.document_id == 'doc-2'
        assert result.details == {'previous_document_id': 'doc-1'}
        assert store.get('a.txt', 'acme').remote_document_id == 'doc-2'

    @pytest.mark.asyncio
    async def test_sequence_of_versions(self, engine, remote):
        statuses = []
        for content in ['a', 'a', 'b', 'b', 'a']:
            statuses.append((await engine.process_artifact(Artifact(content, 'x.txt'), 'acme')).status)

        assert statuses == [
            SyncStatus.UPLOADED, SyncStatus.UNCHANGED, SyncStatus.REPLACED,
            SyncStatus.UNCHANGED, SyncStatus.REPLACED,
        ]
        assert remote.create.await_count == 1
        assert remote.replace.await_count == 2

    @pytest.mark.asyncio
    async def test_empty_content_skipped(self, engine, store, remote, gate):
        result = await engine.process_artifact(Artifact('  ', 'blank.txt'), 'acme')

        assert result.status == SyncStatus.SKIPPED
        remote.create.assert_not_called()
        assert store.get('blank.txt', 'acme') is None
        gate.wait.assert_not_called()

    @pytest.mark.asyncio
    async def test_blank_bytes_skipped(self, engine, store, remote):
        result = await engine.process_artifact(Artifact(b'  \n\t ', 'blank.bin'), 'acme')

        assert result.status == SyncStatus.SKIPPED
        assert remote.create.await_count == 0
        assert store.get('blank.bin', 'acme') is None

    @pytest.mark.asyncio
    async def test_structured_content_synced_by_canonical_text(self, engine, store, remote):
        payload = {'data': [{'a': 1, 'b': 2}], 'metadata': None}
        first = await engine.process_artifact(Artifact.from_payload(payload, 'rows.json'), 'acme')
        reordered = {'data': [{'b': 2, 'a': 1}], 'metadata': None}
        second = await engine.process_artifact(Artifact.from_payload(reordered, 'rows.json'), 'acme')

        assert first.status == SyncStatus.UPLOADED
        assert second.status == SyncStatus.UNCHANGED
        remote.create.assert_awaited_once_with('[{"a": 1, "b": 2}]', 'rows.json', 'acme', None)
        assert store.get('rows.json', 'acme').signature == compute_signature('[{"a": 1, "b": 2}]')

    @pytest.mark.asyncio
    async def test_create_without_id_stores_nothing(self, engine, store, remote):
        remote.create.return_value = None

        result = await engine.process_artifact(Artifact('hello', 'a.txt'), 'acme')

        assert result.status == SyncStatus.ABORTED
        assert store.get('a.txt', 'acme') is None

    @pytest.mark.asyncio
    async def test_remote_failure_leaves_metadata_untouched(self, engine, store, remote):
        await engine.process_artifact(Artifact('v1', 'a.txt'), 'acme')
        before = store.get('a.txt', 'acme')
        remote.replace.side_effect = RemoteUnavailableError('down', status_code=503)

        with pytest.raises(RemoteUnavailableError):
            await engine.process_artifact(Artifact('v2', 'a.txt'), 'acme')

        assert store.get('a.txt', 'acme') == before

    @pytest.mark.asyncio
    async def test_recovers_on_next_run_after_failure(self, engine, store, remote):
        remote.create.side_effect = [RemoteUnavailableError('down'), 'doc-9']

        with pytest.raises(RemoteUnavailableError):
            await engine.process_artifact(Artifact('hello', 'a.txt'), 'acme')
        assert store.get('a.txt', 'acme') is None

        result = await engine.process_artifact(Artifact('hello', 'a.txt'), 'acme')
        assert result.status == SyncStatus.UPLOADED
        assert store.get('a.txt', 'acme').remote_document_id == 'doc-9'

    @pytest.mark.asyncio
    async def test_clients_are_independent(self, engine, store, remote):
        remote.create.side_effect = ['doc-a', 'doc-b']

        first = await engine.process_artifact(Artifact('same', 'a.txt'), 'alpha')
        second = await engine.process_artifact(Artifact('same', 'a.txt'), 'beta')

        assert first.status == second.status == SyncStatus.UPLOADED
        assert store.get('a.txt', 'alpha').remote_document_id == 'doc-a'
        assert store.get('a.txt', 'beta').remote_document_id == 'doc-b'

    @pytest.mark.asyncio
    async def test_gate_awaited_after_each_remote_operation(self, engine, remote, gate):
        await engine.process_artifact(Artifact('v1', 'a.txt'), 'acme')
        await engine.process_artifact(Artifact('v1', 'a.txt'), 'acme')
        remote.replace.side_effect = RemoteUnavailableError('down')
        with pytest.raises(RemoteUnavailableError):
            await engine.process_artifact(Artifact('v2', 'a.txt'), 'acme')

        assert gate.wait.await_count == 3

    @pytest.mark.asyncio
    async def test_concurrent_syncs_of_same_artifact_last_write_wins(self, engine, store, remote):
        """Unserialized syncs of one key both create; the later metadata write is kept."""
        release = asyncio.Event()
        ids = iter(['doc-1', 'doc-2'])

        async def slow_create(*args, **kwargs):
            await release.wait()
            return next(ids)

        remote.create.side_effect = slow_create

        tasks = [
            asyncio.create_task(engine.process_artifact(Artifact('hello', 'a.txt'), 'acme')),
            asyncio.create_task(engine.process_artifact(Artifact('hello', 'a.txt'), 'acme')),
        ]
        await asyncio.sleep(0)
        release.set()
        results = await asyncio.gather(*tasks)

        assert [r.status for r in results] == [SyncStatus.UPLOADED, SyncStatus.UPLOADED]
        assert remote.create.await_count == 2
        assert store.get('a.txt', 'acme').remote_document_id == 'doc-2'
