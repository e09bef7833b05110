"""Repository for directory-per-entity JSON descriptors.

Schema::

    <metadata_path>/content/<entity_type>/<id>/metadata.json   (id not stored)
    <metadata_path>/content/<entity_type>/<id>/cover.webp      (optional)
    <metadata_path>/content/<entity_type>/<id>/background.webp (optional)
"""
import os
from typing import Dict, Iterable, List, Optional

from .. import fileutils
from ..errors import Conflict, NotFound, ValidationError
from ..identifiers import canonical_key, normalize_id
from .base import METADATA_FILE, BaseRepository


class EntityRepository(BaseRepository):
    """Persists one entity type (games, collections, a tag kind, ...).

    Entities are plain dicts.  The identifier lives only in the directory
    name; it is stripped before writing and re-attached as ``id`` (int for
    all-digit names) when reading.
    """

    def __init__(self, metadata_path: str, entity_type: str,
                 human_name: Optional[str] = None) -> None:
        super().__init__(metadata_path)
        self.entity_type = entity_type
        self.human_name = human_name or entity_type.rstrip('s').capitalize()

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    @property
    def root(self) -> str:
        return self.content_path(self.entity_type)

    def directory(self, entity_id) -> str:
        key = canonical_key(entity_id)
        if not _is_safe_key(key):
            raise ValidationError(f"Invalid {self.human_name.lower()} identifier", id=entity_id)
        return os.path.join(self.root, key)

    def descriptor_path(self, entity_id) -> str:
        return os.path.join(self.directory(entity_id), METADATA_FILE)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _read(self, entity_id) -> Optional[Dict]:
        data = self._load(self.descriptor_path(entity_id), None)
        if not isinstance(data, dict):
            return None
        data['id'] = normalize_id(entity_id)
        return data

    def load_all(self) -> List[Dict]:
        """Return every entity with a parseable descriptor.

        Directories without a descriptor, or with a corrupt one, are skipped.
        """
        if not os.path.isdir(self.root):
            return []
        entities = []
        for name in sorted(os.listdir(self.root)):
            if not os.path.isdir(os.path.join(self.root, name)):
                continue
            entity = self._read(name)
            if entity is None:
                self._log.warning("Skipping %s/%s: no readable %s",
                                  self.entity_type, name, METADATA_FILE)
                continue
            entities.append(entity)
        return entities

    def find(self, entity_id) -> Optional[Dict]:
        """Return the entity for *entity_id*, or ``None`` if it doesn't exist."""
        if entity_id is None or not _is_safe_key(canonical_key(entity_id)):
            return None
        return self._read(entity_id)

    def get(self, entity_id) -> Dict:
        """Return the entity for *entity_id*.

        Raises:
            NotFound: If no readable descriptor exists.
        """
        entity = self.find(entity_id)
        if entity is None:
            raise NotFound(f"{self.human_name} not found", id=entity_id)
        return entity

    def exists(self, entity_id) -> bool:
        return self.find(entity_id) is not None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def save(self, entity: Dict) -> Dict:
        """Rewrite the descriptor of *entity* (which must carry ``id``)."""
        to_save = dict(entity)
        entity_id = to_save.pop('id')
        self._save(self.descriptor_path(entity_id), to_save)
        return entity

    def create(self, entity_id, fields: Dict) -> Dict:
        """Create the directory and descriptor for a new entity.

        A leftover directory without a descriptor is reused.

        Raises:
            Conflict: If an entity with this identifier already exists.
        """
        if self.exists(entity_id):
            raise Conflict(f"{self.human_name} already exists", id=normalize_id(entity_id))
        entity = dict(fields)
        entity['id'] = normalize_id(entity_id)
        self.save(entity)
        self._log.debug("Created %s/%s", self.entity_type, canonical_key(entity_id))
        return entity

    def update(self, entity_id, updates: Dict, allowed: Iterable[str]) -> Dict:
        """Apply the allow-listed subset of *updates* and persist.

        Unknown keys are dropped silently; stored keys that are not being
        updated are kept verbatim.

        Raises:
            NotFound: If the entity doesn't exist.
            ValidationError: If no allow-listed field remains.
        """
        filtered = filter_fields(updates, allowed)
        if not filtered:
            raise ValidationError("No valid fields to update")
        entity = self.get(entity_id)
        entity.update(filtered)
        self.save(entity)
        return entity

    def delete(self, entity_id) -> bool:
        """Delete the descriptor, then the directory if nothing else remains.

        Returns:
            ``True`` if the directory itself was removed as well.

        Raises:
            NotFound: If the entity doesn't exist.
        """
        path = self.descriptor_path(entity_id)
        if not os.path.exists(path):
            raise NotFound(f"{self.human_name} not found", id=entity_id)
        os.unlink(path)
        removed = fileutils.remove_dir_if_empty(self.directory(entity_id))
        self._log.debug("Deleted %s/%s (directory removed: %s)",
                        self.entity_type, canonical_key(entity_id), removed)
        return removed


def _is_safe_key(key: str) -> bool:
    return key not in ('', '.', '..') and '/' not in key and '\\' not in key


def filter_fields(updates: Optional[Dict], allowed: Iterable[str]) -> Dict:
    """Return the subset of *updates* whose keys are in *allowed*."""
    if not isinstance(updates, dict):
        return {}
    allowed = set(allowed)
    return {k: v for k, v in updates.items() if k in allowed}
