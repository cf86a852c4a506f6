# src/sannu/services/storage.py
"""
Public media storage on the local filesystem.

Paths are storage-relative ("products/<uuid>.jpg") and resolved under
MEDIA_ROOT; public URLs are built from MEDIA_URL.
"""
import logging
import os
from typing import List

from opentelemetry import trace

from sannu.config import get_media_root, get_media_url

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


def _resolve(path: str) -> str:
    root = os.path.abspath(get_media_root())
    full = os.path.abspath(os.path.join(root, path.lstrip("/")))
    if not full.startswith(root + os.sep):
        raise ValueError(f"Path escapes media root: {path}")
    return full


def put_bytes(path: str, data: bytes) -> str:
    """
    Write bytes to storage, creating parent directories.
    Returns the storage-relative path.
    """
    full = _resolve(path)
    with tracer.start_as_current_span("storage.put") as span:
        span.set_attribute("storage.path", path)
        span.set_attribute("file.size", len(data))
        os.makedirs(os.path.dirname(full), exist_ok=True)
        with open(full, "wb") as fh:
            fh.write(data)
    logger.info("Stored %s (%d bytes)", path, len(data))
    return path


def get_bytes(path: str) -> bytes:
    with open(_resolve(path), "rb") as fh:
        return fh.read()


def exists(path: str) -> bool:
    try:
        return os.path.isfile(_resolve(path))
    except ValueError:
        return False


def delete(path: str) -> bool:
    """Delete a stored file. Returns False when it did not exist."""
    full = _resolve(path)
    if not os.path.isfile(full):
        return False
    os.remove(full)
    logger.info("Deleted %s", path)
    return True


def local_path(path: str) -> str:
    return _resolve(path)


def url(path: str) -> str:
    return f"{get_media_url()}/{path.lstrip('/')}"


def list_files(directory: str) -> List[str]:
    """Storage-relative paths of the regular files directly inside `directory`."""
    full = _resolve(directory)
    if not os.path.isdir(full):
        return []
    return sorted(
        f"{directory.rstrip('/')}/{name}"
        for name in os.listdir(full)
        if os.path.isfile(os.path.join(full, name))
    )
