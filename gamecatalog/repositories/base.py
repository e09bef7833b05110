"""Repository base class used by all concrete repositories."""
import logging
import os
from typing import Any

from .. import fileutils

METADATA_FILE = 'metadata.json'

# Every directory under ``<root>/content`` that holds one folder per entity.
CONTENT_TYPES = (
    'games',
    'collections',
    'categories',
    'platforms',
    'themes',
    'game-modes',
    'game-engines',
    'player-perspectives',
    'developers',
)


class BaseRepository:
    """Provides JSON-backed persistence below ``<metadata_path>/content``.

    Sub-classes call :meth:`_load` to read a descriptor from disk and
    :meth:`_save` to atomically persist one back.  The atomic write uses a
    write-then-rename strategy so a descriptor is never left in a
    partially-written state.
    """

    def __init__(self, metadata_path: str) -> None:
        self.metadata_path = metadata_path
        self._log = logging.getLogger(f'gamecatalog.repository.{type(self).__name__}')

    def content_path(self, *parts: str) -> str:
        return os.path.join(self.metadata_path, 'content', *parts)

    def _load(self, path: str, default: Any) -> Any:
        """Load JSON from *path*, returning *default* on missing/corrupt file."""
        return fileutils.read_json(path, default)

    def _save(self, path: str, data: Any) -> None:
        """Atomically write *data* as JSON to *path*, creating its directory."""
        fileutils.ensure_dir(os.path.dirname(path))
        fileutils.write_json(path, data)
