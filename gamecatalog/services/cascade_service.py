"""Coordinated clean-up when a game leaves the library."""
import logging
from typing import Callable, Dict, List, Optional

from ..cache import REMOVE
from ..repositories.entity_repository import EntityRepository
from ..repositories.recommended_repository import RecommendedRepository
from .collection_service import CollectionService
from .tag_service import TagService, field_values


class CascadeService:
    """Deletes a game and every reference to it.

    Rules
    -----
    * The game descriptor goes first, so tag reference counts no longer see
      the departing game.
    * Collections and recommended sections are cleaned next; a step with
      nothing to do is not an error.
    * Last, each tag the game carried is deleted if nothing references it.

    The steps are separate file writes; a failure part-way leaves the
    earlier steps applied.
    """

    def __init__(self, games: EntityRepository, collections: CollectionService,
                 recommended: RecommendedRepository, tags: Dict[str, TagService]) -> None:
        self._games = games
        self._collections = collections
        self._recommended = recommended
        self._tags = tags
        self._log = logging.getLogger('gamecatalog.cascade')

    def remove_game_from_all_collections(self, game_id, update_cache=None) -> int:
        return self._collections.remove_game_from_all(game_id, update_cache)

    def remove_game_from_recommended(self, game_id) -> bool:
        return self._recommended.remove_game(game_id)

    def delete_game_cascade(self, game_id,
                            update_games_cache: Optional[Callable] = None,
                            update_collections_cache: Optional[Callable] = None,
                            tag_cache_updaters: Optional[Dict[str, Callable]] = None) -> Dict:
        """Delete a game and clean up collections, recommended sections and tags.

        Args:
            tag_cache_updaters: Optional ``{folder: update_cache}`` per tag kind.

        Returns:
            ``{'collections': int, 'recommended': bool,
            'tagsRemoved': {folder: [title, ...]}}``

        Raises:
            NotFound: If the game doesn't exist.
        """
        game = self._games.get(game_id)
        self._games.delete(game['id'])
        if update_games_cache:
            update_games_cache(game['id'], REMOVE)

        collections = self.remove_game_from_all_collections(game['id'], update_collections_cache)
        recommended = self.remove_game_from_recommended(game['id'])

        tag_cache_updaters = tag_cache_updaters or {}
        remaining = self._games.load_all()
        removed: Dict[str, List[str]] = {}
        for field, service in self._tags.items():
            folder = service.kind.folder
            for title in field_values(game, field):
                if service.delete_if_unused(title, remaining, tag_cache_updaters.get(folder)):
                    removed.setdefault(folder, []).append(title)

        self._log.info("Deleted game %s: %d collection(s), recommended %s, %d orphan tag(s)",
                       game['id'], collections, 'updated' if recommended else 'unchanged',
                       sum(len(v) for v in removed.values()))
        return {'collections': collections, 'recommended': recommended, 'tagsRemoved': removed}
