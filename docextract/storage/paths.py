"""
Upload path resolution.
Submissions and reference documents store paths relative to UPLOAD_ROOT;
absolute paths are accepted as-is.
"""

from pathlib import Path
from typing import Optional

from docextract.config import settings


def resolve_upload_path(storage_path: str, upload_root: Optional[str] = None) -> str:
    """Absolute path for a stored upload."""
    path = Path(storage_path)
    if path.is_absolute():
        return str(path)
    return str(Path(upload_root or settings.UPLOAD_ROOT) / path)
