"""In-process read cache for loaded entities.

The :class:`Store` owns one list of entities per entity type.  Mutating
service methods accept an ``update_cache`` callback built by
:func:`create_cache_updater`; passing it keeps the cached list in step with
what was just written to disk, without re-scanning the directory.
"""
import copy
import logging
from typing import Callable, Dict, List, Optional

from .identifiers import ids_equal

_log = logging.getLogger('gamecatalog.cache')

# Passed as the change to drop an element from the cache.
REMOVE = object()

CacheUpdater = Callable[..., None]


def _find_index(items: List[Dict], entity_id) -> int:
    for i, item in enumerate(items):
        if ids_equal(item.get('id'), entity_id):
            return i
    return -1


def create_cache_updater(items: List[Dict]) -> CacheUpdater:
    """Return ``update(entity_id, change)`` bound to the list *items*.

    *change* may be:

    * a ``dict`` - merged into the cached element, or appended as a new
      element (with ``id``) when the identifier is not cached yet;
    * a callable - invoked with the cached element to mutate it in place;
    * :data:`REMOVE` - the cached element is removed.

    Identifiers are matched across ``int``/``str`` forms.
    """

    def update(entity_id, change=REMOVE) -> None:
        idx = _find_index(items, entity_id)
        if change is REMOVE:
            if idx != -1:
                del items[idx]
            return
        if callable(change):
            if idx != -1:
                change(items[idx])
            return
        values = copy.deepcopy(change)
        if idx == -1:
            values.setdefault('id', entity_id)
            items.append(values)
        else:
            items[idx].update(values)

    return update


class Store:
    """Process-wide cache: ``{entity_type: [entity, ...]}``.

    Entries are value copies of what the repositories returned; the files on
    disk stay authoritative.
    """

    def __init__(self) -> None:
        self._items: Dict[str, List[Dict]] = {}

    def load(self, entity_type: str, repository) -> List[Dict]:
        """(Re)populate *entity_type* from ``repository.load_all()``."""
        items = self._items.setdefault(entity_type, [])
        items[:] = repository.load_all()
        _log.debug("Loaded %d %s into cache", len(items), entity_type)
        return items

    def get(self, entity_type: str) -> List[Dict]:
        return self._items.setdefault(entity_type, [])

    def find(self, entity_type: str, entity_id) -> Optional[Dict]:
        items = self.get(entity_type)
        idx = _find_index(items, entity_id)
        return items[idx] if idx != -1 else None

    def updater(self, entity_type: str) -> CacheUpdater:
        return create_cache_updater(self.get(entity_type))
