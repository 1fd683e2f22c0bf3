"""Content fingerprints used to skip redundant remote writes."""

import hashlib
from typing import Union


def compute_signature(content: Union[str, bytes]) -> str:
    """Compute SHA-256 hash of content."""
    if isinstance(content, str):
        content = content.encode('utf-8')
    return hashlib.sha256(content).hexdigest()
