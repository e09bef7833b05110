"""Filesystem helpers shared by every repository and the media service."""
import json
import logging
import os
import tempfile
from typing import Any

_log = logging.getLogger('gamecatalog.fileutils')


def read_json(path: str, default: Any = None) -> Any:
    """Load JSON from *path*, returning *default* on a missing or corrupt file."""
    if os.path.exists(path):
        try:
            with open(path, 'r', encoding='utf-8') as fh:
                return json.load(fh)
        except (json.JSONDecodeError, UnicodeDecodeError, IOError) as exc:
            _log.warning("Could not load %s: %s", path, exc)
    return default


def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def write_json(path: str, data: Any) -> None:
    """Atomically write *data* as JSON to *path* (write-then-rename).

    The previous file content survives any failure during the write.

    Raises:
        OSError: If the write or rename fails.
    """
    dir_name = os.path.dirname(os.path.abspath(path))
    fd, tmp_path = tempfile.mkstemp(dir=dir_name, suffix='.tmp')
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as fh:
            json.dump(data, fh, indent=2, ensure_ascii=False)
        os.replace(tmp_path, path)
    except Exception:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def write_bytes(path: str, data: bytes) -> None:
    """Atomically write raw *data* to *path*."""
    dir_name = os.path.dirname(os.path.abspath(path))
    fd, tmp_path = tempfile.mkstemp(dir=dir_name, suffix='.tmp')
    try:
        with os.fdopen(fd, 'wb') as fh:
            fh.write(data)
        os.replace(tmp_path, path)
    except Exception:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def is_dir_empty(path: str) -> bool:
    """Return ``True`` if *path* is missing or holds no entries at all."""
    if not os.path.isdir(path):
        return True
    return not os.listdir(path)


def remove_dir_if_empty(path: str) -> bool:
    """Remove *path* only when it contains nothing.

    Returns:
        ``True`` if the directory was removed; ``False`` otherwise.
    """
    if not os.path.isdir(path) or not is_dir_empty(path):
        return False
    try:
        os.rmdir(path)
        return True
    except OSError as exc:
        _log.debug("Could not remove %s: %s", path, exc)
        return False
