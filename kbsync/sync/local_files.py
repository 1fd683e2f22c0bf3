"""
Local copies of generated reports and uploaded files.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..config import get_logger
from ..csv_output import rows_to_csv
from .engine import Artifact

logger = get_logger(__name__)


def save_to_client_directory(content: Union[str, bytes, List, Dict], filename: str, client_id: str,
                             data_dir: Union[str, Path] = 'data') -> Path:
    """
    Write content to ``data_dir/client_id/filename``.

    Lists of rows are written as CSV when the filename ends in .csv; other
    structured content is written as indented JSON.
    """
    directory = Path(data_dir) / client_id
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / filename

    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        if isinstance(content, (list, dict)):
            if filename.lower().endswith('.csv') and isinstance(content, list):
                content = rows_to_csv(content)
            else:
                content = json.dumps(content, indent=2, ensure_ascii=False)
        path.write_text(content, encoding='utf-8')

    logger.info(f"[{client_id}] File created successfully: {path}")
    return path


def collect_artifacts(directory: Union[str, Path], metadata: Optional[Dict[str, Any]] = None) -> List[Artifact]:
    """
    Turn the regular, non-hidden files of a directory into artifacts.

    Text files are read as UTF-8; anything else is kept as bytes.
    """
    directory = Path(directory)
    if not directory.is_dir():
        logger.warning(f"Directory not found: {directory}")
        return []

    artifacts = []
    for path in sorted(directory.iterdir()):
        if not path.is_file() or path.name.startswith('.'):
            continue
        raw = path.read_bytes()
        try:
            content = raw.decode('utf-8')
        except UnicodeDecodeError:
            content = raw
        artifacts.append(Artifact(content=content, filename=path.name, metadata=dict(metadata) if metadata else None))
    return artifacts
