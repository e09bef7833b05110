"""Business logic for cover/background images and game launch scripts."""
import glob
import logging
import os
import re
from typing import List, Optional, Tuple

import requests

from .. import fileutils
from ..errors import ValidationError
from ..identifiers import canonical_key
from ..repositories.base import CONTENT_TYPES

ASSET_KINDS = ('cover', 'background')
IMAGE_EXTENSIONS = ('webp', 'png', 'jpg', 'jpeg', 'gif')
EXECUTABLE_EXTENSIONS = ('.sh', '.bat')
DEFAULT_EXECUTABLE_LABEL = 'script'

_UNSAFE_LABEL_CHARS = re.compile(r'[^a-zA-Z0-9_-]')
_DOWNLOAD_TIMEOUT = 30  # seconds


def sanitize_label(label: str) -> str:
    """Return *label* with every character outside ``[A-Za-z0-9_-]`` as ``_``."""
    return _UNSAFE_LABEL_CHARS.sub('_', label)


class MediaService:
    """Creates, replaces and deletes the files stored next to a descriptor.

    Rules
    -----
    * One asset per kind: ``cover.<ext>`` / ``background.<ext>``.  Saving a
      new one replaces whatever was there, whatever its extension.
    * Deleting an asset removes the resource directory once it is completely
      empty, for every resource type alike.
    * Executable labels are stored as given; only the filename is sanitised.
    """

    def __init__(self, metadata_path: str) -> None:
        self.metadata_path = metadata_path
        self.session = requests.Session()
        self._log = logging.getLogger('gamecatalog.media')

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def resource_dir(self, resource_type: str, resource_id) -> str:
        if resource_type not in CONTENT_TYPES:
            raise ValidationError(f"Invalid resource type: {resource_type}")
        key = canonical_key(resource_id)
        if key in ('', '.', '..') or '/' in key or '\\' in key:
            raise ValidationError(f"Invalid resource identifier: {resource_id!r}")
        return os.path.join(self.metadata_path, 'content', resource_type, key)

    @staticmethod
    def _check_kind(kind: str) -> None:
        if kind not in ASSET_KINDS:
            raise ValidationError(f"Invalid asset kind: {kind}")

    @staticmethod
    def _normalise_ext(ext: str) -> str:
        ext = (ext or '').lower().lstrip('.')
        if ext not in IMAGE_EXTENSIONS:
            raise ValidationError(f"File extension not allowed: {ext or '(none)'}")
        return ext

    def _existing_assets(self, resource_type: str, resource_id, kind: str) -> List[str]:
        directory = self.resource_dir(resource_type, resource_id)
        pattern = os.path.join(glob.escape(directory), f'{kind}.*')
        return sorted(p for p in glob.glob(pattern)
                      if os.path.isfile(p) and not p.endswith('.tmp'))

    # ------------------------------------------------------------------
    # Image assets
    # ------------------------------------------------------------------

    def asset_path(self, resource_type: str, resource_id, kind: str) -> Optional[str]:
        """Return the stored asset file for *kind*, or ``None``."""
        self._check_kind(kind)
        existing = self._existing_assets(resource_type, resource_id, kind)
        return existing[0] if existing else None

    def save_asset(self, resource_type: str, resource_id, kind: str,
                   data: bytes, ext: str = 'webp') -> str:
        """Write *data* as ``<kind>.<ext>``, replacing any previous asset.

        Returns:
            The path of the written file.

        Raises:
            ValidationError: For an unknown kind/resource type or a
                disallowed extension.
        """
        self._check_kind(kind)
        ext = self._normalise_ext(ext)
        directory = self.resource_dir(resource_type, resource_id)
        fileutils.ensure_dir(directory)
        target = os.path.join(directory, f'{kind}.{ext}')
        fileutils.write_bytes(target, data)
        for other in self._existing_assets(resource_type, resource_id, kind):
            if other != target:
                os.unlink(other)
        self._log.debug("Saved %s for %s/%s", kind, resource_type, resource_id)
        return target

    def delete_asset(self, resource_type: str, resource_id, kind: str) -> bool:
        """Delete the *kind* asset if present, then drop an emptied directory.

        Returns:
            ``True`` if a file was deleted; ``False`` if there was none.
        """
        self._check_kind(kind)
        existing = self._existing_assets(resource_type, resource_id, kind)
        if not existing:
            return False
        for path in existing:
            os.unlink(path)
        fileutils.remove_dir_if_empty(self.resource_dir(resource_type, resource_id))
        self._log.debug("Deleted %s for %s/%s", kind, resource_type, resource_id)
        return True

    def download_asset(self, url: Optional[str], resource_type: str,
                       resource_id, kind: str, ext: str = 'webp') -> bool:
        """Fetch *url* and store it as the *kind* asset.

        Network and HTTP failures are logged and reported as ``False``; no
        partial file is ever left behind.
        """
        if not url:
            return False
        try:
            resp = self.session.get(url, timeout=_DOWNLOAD_TIMEOUT)
            resp.raise_for_status()
        except requests.RequestException as e:
            self._log.warning("Failed to download %s for %s/%s: %s",
                              kind, resource_type, resource_id, e)
            return False
        self.save_asset(resource_type, resource_id, kind, resp.content, ext)
        return True

    # ------------------------------------------------------------------
    # Executables (games only)
    # ------------------------------------------------------------------

    def executable_files(self, game_id) -> List[str]:
        """Return script filenames, ``script.*`` first, then alphabetical."""
        directory = self.resource_dir('games', game_id)
        if not os.path.isdir(directory):
            return []
        names = [
            name for name in os.listdir(directory)
            if os.path.isfile(os.path.join(directory, name))
            and os.path.splitext(name)[1].lower() in EXECUTABLE_EXTENSIONS
        ]
        return sorted(names, key=lambda n: (not n.startswith('script.'), n))

    def save_executable(self, game_id, data: bytes, ext: str,
                        label: Optional[str] = None) -> Tuple[str, str]:
        """Store a launch script for *game_id*.

        Args:
            ext:   ``.sh`` or ``.bat`` (leading dot optional).
            label: User-visible label; defaults to ``"script"``.

        Returns:
            ``(label, filename)`` - the unsanitised label and the stored name.
        """
        ext = '.' + (ext or '').lower().lstrip('.')
        if ext not in EXECUTABLE_EXTENSIONS:
            raise ValidationError("Only .sh and .bat files are allowed")
        label = label.strip() if isinstance(label, str) and label.strip() else DEFAULT_EXECUTABLE_LABEL
        filename = sanitize_label(label) + ext
        directory = self.resource_dir('games', game_id)
        fileutils.ensure_dir(directory)
        path = os.path.join(directory, filename)
        fileutils.write_bytes(path, data)
        if ext == '.sh':
            try:
                os.chmod(path, 0o755)
            except OSError as e:
                self._log.warning("Could not set executable permissions on %s: %s", path, e)
        return label, filename

    def delete_executables(self, game_id, keep_labels: Optional[List[str]] = None) -> List[str]:
        """Delete script files whose sanitised stem is not in *keep_labels*.

        Returns:
            The deleted filenames.
        """
        keep = {sanitize_label(label) for label in (keep_labels or [])}
        directory = self.resource_dir('games', game_id)
        deleted = []
        for name in self.executable_files(game_id):
            if os.path.splitext(name)[0] in keep:
                continue
            os.unlink(os.path.join(directory, name))
            deleted.append(name)
        if deleted:
            fileutils.remove_dir_if_empty(directory)
        return deleted
