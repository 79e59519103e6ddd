"""Shared helpers — hashing, timestamps, source path lookup."""

from __future__ import annotations

import hashlib
from datetime import datetime, timezone
from pathlib import Path


def sha256_file(path: Path) -> str:
    """Return the hex SHA-256 digest of *path*."""
    h = hashlib.sha256()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(8192), b""):
            h.update(chunk)
    return h.hexdigest()


def utcnow_iso() -> str:
    """Return the current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def resolve_source_path(base_dir: Path, source_path: str) -> Path | None:
    """Locate a configured ``sourcePath`` on disk.

    Relative paths are resolved against *base_dir*.  Returns ``None`` when
    nothing is configured or the file does not exist.
    """
    if not source_path.strip():
        return None
    candidate = Path(source_path.strip())
    if not candidate.is_absolute():
        candidate = Path(base_dir) / candidate
    return candidate if candidate.is_file() else None
