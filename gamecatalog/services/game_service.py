"""Business logic for games: adding, editing and launch scripts."""
import copy
import logging
from typing import Callable, Dict, List, Optional

from ..dates import create_release_date
from ..errors import Conflict, ValidationError
from ..identifiers import normalize_id
from ..repositories.entity_repository import EntityRepository, filter_fields
from .media_service import MediaService, sanitize_label
from .tag_service import TagService

BASE_UPDATABLE_FIELDS = ('title', 'summary', 'year', 'month', 'day', 'stars',
                         'criticratings', 'userratings', 'executables')

# Remote list fields stored as plain strings / as objects.
_STRING_LIST_FIELDS = ('screenshots', 'videos', 'publishers', 'keywords', 'alternativeNames')
_OBJECT_LIST_FIELDS = ('websites', 'ageRatings', 'similarGames')
_STRING_FIELDS = ('franchise', 'collection')


def _string_list(values) -> Optional[List[str]]:
    if not isinstance(values, list):
        return None
    filtered = [v.strip() for v in values if isinstance(v, str) and v.strip()]
    return filtered or None


def _object_list(values) -> Optional[List[Dict]]:
    if not isinstance(values, list):
        return None
    filtered = [v for v in values if isinstance(v, dict)]
    return filtered or None


def _clean_string(value) -> Optional[str]:
    return value.strip() if isinstance(value, str) and value.strip() else None


def _rating(value) -> Optional[float]:
    """Convert a 0-100 remote rating to the stored 0-10 scale."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value) / 10
    except (TypeError, ValueError):
        return None


def _replace_with(entity: Dict) -> Callable[[Dict], None]:
    snapshot = copy.deepcopy(entity)

    def apply(cached: Dict) -> None:
        cached.clear()
        cached.update(snapshot)

    return apply


class GameService:
    """Adds and edits games, delegating persistence to
    :class:`~gamecatalog.repositories.entity_repository.EntityRepository`.

    Every tag title written to a game goes through the matching
    :class:`~gamecatalog.services.tag_service.TagService` first, so the
    taxonomy always contains the tags games refer to.  Deleting a game is
    handled by :class:`~gamecatalog.services.cascade_service.CascadeService`.
    """

    def __init__(self, repository: EntityRepository, tags: Dict[str, TagService],
                 media: MediaService) -> None:
        """
        Args:
            repository: Repository of the ``games`` entity type.
            tags:       ``{game_field: TagService}`` for every tag kind.
            media:      Service owning the files next to each descriptor.
        """
        self._repo = repository
        self._tags = tags
        self._media = media
        self._log = logging.getLogger('gamecatalog.games')

    @property
    def repository(self) -> EntityRepository:
        return self._repo

    @property
    def updatable_fields(self) -> List[str]:
        return list(BASE_UPDATABLE_FIELDS) + list(self._tags)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def load(self) -> List[Dict]:
        return self._repo.load_all()

    def get(self, game_id) -> Dict:
        return self._repo.get(game_id)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def add_from_remote(self, fields: Dict, update_cache=None,
                        tag_cache_updaters: Optional[Dict[str, Callable]] = None) -> Dict:
        """Add a game from already-normalised remote catalog fields.

        Expected keys: ``igdbId`` and ``name`` (required), ``summary``,
        ``cover``, ``background``, ``releaseDate``, ``criticRating`` /
        ``userRating`` (0-100), ``genres`` and every other tag field, plus
        optional extra lists (``websites``, ``screenshots``, ...).

        Raises:
            ValidationError: If ``igdbId`` or ``name`` is missing.
            Conflict: If the game is already in the library.
        """
        fields = fields or {}
        tag_cache_updaters = tag_cache_updaters or {}
        game_id = normalize_id(fields.get('igdbId'))
        name = _clean_string(fields.get('name'))
        if not isinstance(game_id, int) or not name:
            raise ValidationError("Missing required fields: igdbId and name")
        if self._repo.exists(game_id):
            raise Conflict("Game already exists", gameId=game_id)

        release = create_release_date(fields.get('releaseDate')) or {}
        game: Dict = {
            'title': name,
            'summary': fields.get('summary') or '',
            'year': release.get('year'),
            'month': release.get('month'),
            'day': release.get('day'),
            'criticratings': _rating(fields.get('criticRating')),
            'userratings': _rating(fields.get('userRating')),
            'igdbCover': _clean_string(fields.get('cover')),
            'igdbBackground': _clean_string(fields.get('background')),
        }
        for field in _STRING_LIST_FIELDS:
            game[field] = _string_list(fields.get(field))
        for field in _OBJECT_LIST_FIELDS:
            game[field] = _object_list(fields.get(field))
        for field in _STRING_FIELDS:
            game[field] = _clean_string(fields.get(field))

        for field, service in self._tags.items():
            # remote payloads name the genre list "genres"
            raw = fields.get('genres') if field == 'genre' else fields.get(field)
            game[field] = service.ensure_many(
                _string_list(raw), tag_cache_updaters.get(service.kind.folder)) or None

        created = self._repo.create(game_id, game)
        if update_cache:
            update_cache(game_id, created)
        self._log.info("Added game %s (%s)", game_id, name)
        return created

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    def _validate_executables(self, value) -> Optional[List[str]]:
        if value is None:
            return None
        if not isinstance(value, list) or not all(isinstance(v, str) and v.strip() for v in value):
            raise ValidationError("All executables must be non-empty strings")
        return value

    def update(self, game_id, updates: Dict, update_cache=None,
               tag_cache_updaters: Optional[Dict[str, Callable]] = None) -> Dict:
        """Apply the allow-listed subset of *updates* to a game.

        * Tag fields are passed through :meth:`TagService.ensure_many`.
        * ``executables: None`` deletes every launch script; a list keeps only
          the scripts it names.

        Raises:
            NotFound: If the game doesn't exist.
            ValidationError: If nothing updatable remains or the executables
                value is malformed.
        """
        tag_cache_updaters = tag_cache_updaters or {}
        game = self.get(game_id)
        filtered = filter_fields(updates, self.updatable_fields)
        if not filtered:
            raise ValidationError("No valid fields to update")

        has_executables = 'executables' in filtered
        executables = self._validate_executables(filtered.pop('executables', None))

        for field, service in self._tags.items():
            if field in filtered:
                value = filtered[field]
                if not isinstance(value, (list, str)):
                    value = None
                filtered[field] = (service.ensure_many(value, tag_cache_updaters.get(service.kind.folder))
                                   or None) if value else None

        game.update(filtered)
        if has_executables:
            if executables is None:
                self._media.delete_executables(game['id'])
                game.pop('executables', None)
            else:
                self._media.delete_executables(game['id'], keep_labels=executables)
                stored = {f.rsplit('.', 1)[0] for f in self._media.executable_files(game['id'])}
                kept = [label for label in executables if sanitize_label(label) in stored]
                if kept:
                    game['executables'] = kept
                else:
                    game.pop('executables', None)

        self._repo.save(game)
        if update_cache:
            update_cache(game['id'], _replace_with(game))
        return game

    def save_executable(self, game_id, data: bytes, ext: str,
                        label: Optional[str] = None, update_cache=None) -> Dict:
        """Store a launch script and record its label on the game."""
        game = self.get(game_id)
        label, _ = self._media.save_executable(game['id'], data, ext, label)
        executables = list(game.get('executables') or [])
        if label not in executables:
            executables.append(label)
        game['executables'] = executables
        self._repo.save(game)
        if update_cache:
            update_cache(game['id'], {'executables': list(executables)})
        return game
