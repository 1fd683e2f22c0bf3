"""
Tests for local report output and directory collection.
"""

import pytest
import json
import tempfile
from pathlib import Path

from ..local_files import collect_artifacts, save_to_client_directory


@pytest.fixture
def temp_dir():
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


class TestSaveToClientDirectory:
    def test_text_written_under_client(self, temp_dir):
        path = save_to_client_directory('a,b\n1,2\n', 'report.csv', 'acme', temp_dir)
        assert path == temp_dir / 'acme' / 'report.csv'
        assert path.read_text(encoding='utf-8') == 'a,b\n1,2\n'

    def test_rows_written_as_csv(self, temp_dir):
        rows = [{'team': 'T1', 'wins': 3}, {'team': 'G2, Esports', 'wins': None}]
        path = save_to_client_directory(rows, 'teams.csv', 'acme', temp_dir)
        assert path.read_text(encoding='utf-8') == 'team,wins\nT1,3\n"G2, Esports",'

    def test_structured_content_written_as_json(self, temp_dir):
        path = save_to_client_directory({'query_type': 'sql'}, 'report_metadata.json', 'acme', temp_dir)
        assert json.loads(path.read_text(encoding='utf-8')) == {'query_type': 'sql'}

    def test_bytes_written_raw(self, temp_dir):
        path = save_to_client_directory(b'\x89PNG', 'logo.png', 'acme', temp_dir)
        assert path.read_bytes() == b'\x89PNG'


class TestCollectArtifacts:
    def test_collects_regular_files_sorted(self, temp_dir):
        (temp_dir / 'b.txt').write_text('second', encoding='utf-8')
        (temp_dir / 'a.md').write_text('first', encoding='utf-8')
        (temp_dir / '.hidden').write_text('skip', encoding='utf-8')
        (temp_dir / 'sub').mkdir()
        (temp_dir / 'blob.bin').write_bytes(b'\xff\xfe\x00')

        artifacts = collect_artifacts(temp_dir, {'source': 'manual'})

        assert [a.filename for a in artifacts] == ['a.md', 'b.txt', 'blob.bin']
        assert artifacts[0].content == 'first'
        assert artifacts[2].content == b'\xff\xfe\x00'
        assert all(a.metadata == {'source': 'manual'} for a in artifacts)
        assert artifacts[0].metadata is not artifacts[1].metadata

    def test_missing_directory(self, temp_dir):
        assert collect_artifacts(temp_dir / 'missing') == []
