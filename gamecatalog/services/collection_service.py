"""Business logic for collections and their ordered game membership."""
import logging
import os
import time
from typing import Dict, Iterable, List, Optional, Set, Tuple

from ..cache import REMOVE
from ..dates import release_sort_key
from ..errors import Conflict, ValidationError
from ..identifiers import canonical_key, normalize_id
from ..repositories.entity_repository import EntityRepository

UPDATABLE_FIELDS = ('title', 'summary')


class CollectionService:
    """Creates, manages and queries collections, delegating persistence to
    :class:`~gamecatalog.repositories.entity_repository.EntityRepository`.

    Rules
    -----
    * ``games`` never contains duplicates and is kept in ascending release
      order (year, month, day; missing parts count as 0, a missing year puts
      the game first).  Ties keep their input order.
    * Game IDs that don't resolve to a live game are dropped on every
      membership change.
    * ``gameCount`` is derived when reading and never stored.
    """

    def __init__(self, repository: EntityRepository, games: EntityRepository) -> None:
        self._repo = repository
        self._games = games
        self._log = logging.getLogger('gamecatalog.collections')

    @property
    def repository(self) -> EntityRepository:
        return self._repo

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def load(self) -> List[Dict]:
        return self._repo.load_all()

    def get(self, collection_id) -> Dict:
        return self._repo.get(collection_id)

    def live_game_ids(self) -> Set[str]:
        return {canonical_key(g['id']) for g in self._games.load_all()}

    def game_count(self, collection: Dict, live_ids: Optional[Set[str]] = None) -> int:
        """Return how many member IDs still resolve to a live game."""
        if live_ids is None:
            live_ids = self.live_game_ids()
        return sum(1 for gid in collection.get('games') or []
                   if canonical_key(gid) in live_ids)

    def summary(self, collection: Dict, live_ids: Optional[Set[str]] = None) -> Dict:
        """Return the read model of *collection* with the derived ``gameCount``."""
        return {
            'id': collection['id'],
            'title': collection.get('title'),
            'summary': collection.get('summary') or '',
            'gameCount': self.game_count(collection, live_ids),
        }

    def games_for(self, collection_id) -> List[Dict]:
        """Return the live member games of a collection, in membership order."""
        collection = self.get(collection_id)
        games = []
        for gid in collection.get('games') or []:
            game = self._games.find(gid)
            if game is not None:
                games.append(game)
        return games

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def _new_id(self) -> int:
        candidate = int(time.time() * 1000)
        while self._repo.exists(candidate):
            candidate += 1
        return candidate

    def create(self, title, summary=None, update_cache=None) -> Dict:
        """Create an empty collection.

        Raises:
            ValidationError: If *title* is missing or blank.
            Conflict: If a collection with the same title (any case) exists.
        """
        if not isinstance(title, str) or not title.strip():
            raise ValidationError("Title is required")
        title = title.strip()
        for existing in self.load():
            if str(existing.get('title', '')).lower() == title.lower():
                raise Conflict("Collection with this title already exists",
                               id=existing['id'], title=existing.get('title'))
        collection = self._repo.create(self._new_id(), {
            'title': title,
            'summary': summary.strip() if isinstance(summary, str) else '',
            'games': [],
        })
        if update_cache:
            update_cache(collection['id'], collection)
        self._log.info("Created collection %r (id %s)", title, collection['id'])
        return collection

    def update(self, collection_id, updates: Dict, update_cache=None) -> Dict:
        """Apply ``title``/``summary`` changes; other keys are ignored."""
        collection = self._repo.update(collection_id, updates, UPDATABLE_FIELDS)
        if update_cache:
            update_cache(collection['id'], {k: collection[k] for k in UPDATABLE_FIELDS
                                            if k in collection})
        return collection

    def delete(self, collection_id, update_cache=None) -> None:
        """Delete the descriptor; the directory goes only if nothing is left."""
        self._repo.delete(collection_id)
        if update_cache:
            update_cache(collection_id, REMOVE)

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    def order_members(self, game_ids: Iterable) -> List:
        """Deduplicate, drop missing games and sort by release date."""
        seen: Set[str] = set()
        members = []
        for gid in game_ids or []:
            key = canonical_key(gid)
            if gid is None or key in seen:
                continue
            seen.add(key)
            game = self._games.find(gid)
            if game is None:
                continue
            members.append((release_sort_key(game), normalize_id(gid)))
        # sorted() is stable, so equal dates keep first-occurrence order
        members = sorted(members, key=lambda m: m[0])
        return [gid for _, gid in members]

    def set_membership(self, collection_id, game_ids: Iterable,
                       update_cache=None) -> List:
        """Replace the member list of a collection.

        Returns:
            The persisted, deduplicated and date-sorted list of game IDs.
        """
        if not isinstance(game_ids, (list, tuple)):
            raise ValidationError("gameIds must be an array")
        collection = self.get(collection_id)
        members = self.order_members(game_ids)
        collection['games'] = members
        self._repo.save(collection)
        if update_cache:
            update_cache(collection['id'], {'games': list(members)})
        return members

    def add_game(self, collection_id, game_id, update_cache=None) -> List:
        collection = self.get(collection_id)
        return self.set_membership(collection_id,
                                   list(collection.get('games') or []) + [game_id],
                                   update_cache)

    def remove_game(self, collection_id, game_id, update_cache=None) -> List:
        collection = self.get(collection_id)
        key = canonical_key(game_id)
        remaining = [g for g in collection.get('games') or [] if canonical_key(g) != key]
        return self.set_membership(collection_id, remaining, update_cache)

    def remove_game_from_all(self, game_id, update_cache=None) -> int:
        """Strip *game_id* from every collection that lists it.

        Only the ID is removed; the rest of each list is left as stored.

        Returns:
            The number of collections rewritten.
        """
        key = canonical_key(game_id)
        count = 0
        for collection in self.load():
            games = collection.get('games') or []
            kept = [g for g in games if canonical_key(g) != key]
            if len(kept) == len(games):
                continue
            collection['games'] = kept
            self._repo.save(collection)
            count += 1
            if update_cache:
                update_cache(collection['id'], {'games': list(kept)})
        if count:
            self._log.info("Removed game %s from %d collection(s)", game_id, count)
        return count

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def migrate_ids(self) -> List[Tuple[str, int, str]]:
        """Rename collections stored under text IDs to fresh numeric IDs.

        Directories without a readable descriptor are left alone.

        Returns:
            ``(old_id, new_id, title)`` for every renamed collection.
        """
        migrated = []
        for collection in self.load():
            old_id = collection['id']
            if isinstance(old_id, int):
                continue
            new_id = self._new_id()
            os.rename(self._repo.directory(old_id), self._repo.directory(new_id))
            title = collection.get('title') or 'untitled'
            self._log.info("Migrated collection %r (%s) -> %s", old_id, title, new_id)
            migrated.append((old_id, new_id, title))
        return migrated
