"""Business logic for controlled-vocabulary tags (genres, platforms, ...)."""
import logging
from typing import Dict, Iterable, List, NamedTuple, Optional

from ..cache import REMOVE
from ..errors import Conflict, InvalidInput, NotFound, ValidationError
from ..identifiers import derive_tag_id
from ..repositories.entity_repository import EntityRepository, filter_fields


class TagKind(NamedTuple):
    folder: str       # directory under content/
    game_field: str   # list-of-titles field on a game descriptor
    human_name: str   # used in error messages


class Tag(NamedTuple):
    id: int
    title: str


GENRE = TagKind('categories', 'genre', 'Category')
PLATFORM = TagKind('platforms', 'platforms', 'Platform')
THEME = TagKind('themes', 'themes', 'Theme')
GAME_MODE = TagKind('game-modes', 'gameModes', 'Game mode')
GAME_ENGINE = TagKind('game-engines', 'gameEngines', 'Game engine')
PLAYER_PERSPECTIVE = TagKind('player-perspectives', 'playerPerspectives', 'Player perspective')
DEVELOPER = TagKind('developers', 'developers', 'Developer')

TAG_KINDS = (GENRE, PLATFORM, THEME, GAME_MODE, GAME_ENGINE, PLAYER_PERSPECTIVE, DEVELOPER)

UPDATABLE_FIELDS = ('showTitle',)


def field_values(game: Dict, field: str) -> List[str]:
    """Return a game's tag titles for *field* as a list.

    A legacy single-string value is read as a one-element list.
    """
    values = game.get(field)
    if not values:
        return []
    if isinstance(values, list):
        return [v for v in values if isinstance(v, str)]
    return [values] if isinstance(values, str) else []


class TagService:
    """Manages one tag kind, delegating persistence to
    :class:`~gamecatalog.repositories.entity_repository.EntityRepository`.

    Rules
    -----
    * A tag's ID is :func:`~gamecatalog.identifiers.derive_tag_id` of its
      title, so titles that differ only by case/whitespace are the same tag.
    * :meth:`ensure_exists` is idempotent and never raises on bad input.
    * A tag can only be deleted while no game references it.
    """

    def __init__(self, metadata_path: str, kind: TagKind,
                 games: EntityRepository) -> None:
        self.kind = kind
        self._repo = EntityRepository(metadata_path, kind.folder, kind.human_name)
        self._games = games
        self._log = logging.getLogger(f'gamecatalog.tags.{kind.folder}')

    @property
    def repository(self) -> EntityRepository:
        return self._repo

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def load(self) -> List[Dict]:
        """Return every tag descriptor (with ``id``), sorted by title."""
        tags = [
            t for t in self._repo.load_all()
            if isinstance(t['id'], int) and isinstance(t.get('title'), str)
        ]
        return sorted(tags, key=lambda t: t['title'].casefold())

    def titles(self) -> List[str]:
        return [t['title'] for t in self.load()]

    def find(self, title) -> Optional[Tag]:
        """Return the stored tag matching *title*, or ``None``."""
        try:
            tag_id = derive_tag_id(title)
        except InvalidInput:
            return None
        entity = self._repo.find(tag_id)
        if entity is None or not isinstance(entity.get('title'), str):
            return None
        return Tag(tag_id, entity['title'])

    def get(self, title) -> Tag:
        tag = self.find(title)
        if tag is None:
            raise NotFound(f"{self.kind.human_name} not found", title=title)
        return tag

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def _write_new(self, title: str, update_cache=None) -> Tag:
        tag_id = derive_tag_id(title)
        stored = self._repo.find(tag_id)
        if stored is not None:
            # descriptor without a usable title: keep its settings, restore the title
            entity = self._repo.save({'showTitle': True, **stored, 'title': title})
            if update_cache:
                update_cache(tag_id, entity)
            self._log.warning("Repaired %s %s: descriptor had no title",
                              self.kind.human_name.lower(), tag_id)
            return Tag(tag_id, title)
        entity = self._repo.create(tag_id, {'title': title, 'showTitle': True})
        if update_cache:
            update_cache(tag_id, entity)
        self._log.info("Created %s %r (id %s)", self.kind.human_name.lower(), title, tag_id)
        return Tag(tag_id, title)

    def ensure_exists(self, title, update_cache=None) -> Optional[str]:
        """Return the stored title for *title*, creating the tag if needed.

        Returns:
            The existing title verbatim, the newly created (trimmed) title, or
            ``None`` when *title* is not a usable tag title.
        """
        try:
            derive_tag_id(title)
        except InvalidInput:
            return None
        existing = self.find(title)
        if existing is not None:
            return existing.title
        return self._write_new(title.strip(), update_cache).title

    def ensure_many(self, titles: Optional[Iterable], update_cache=None) -> List[str]:
        """Batch form of :meth:`ensure_exists`; invalid entries are skipped.

        Returns:
            Stored titles in input order, without duplicates.
        """
        if not titles:
            return []
        if isinstance(titles, str):
            titles = [titles]
        known: Dict[int, str] = {t['id']: t['title'] for t in self.load()}
        result: List[str] = []
        for raw in titles:
            try:
                tag_id = derive_tag_id(raw)
            except InvalidInput:
                continue
            if tag_id not in known:
                known[tag_id] = self._write_new(raw.strip(), update_cache).title
            if known[tag_id] not in result:
                result.append(known[tag_id])
        return result

    def create(self, title, update_cache=None) -> str:
        """Strictly create a new tag.

        Raises:
            ValidationError: If *title* is missing or blank.
            Conflict: If a tag with the same normalised title exists.
        """
        try:
            derive_tag_id(title)
        except InvalidInput:
            raise ValidationError("Title is required")
        existing = self.find(title)
        if existing is not None:
            raise Conflict(f"{self.kind.human_name} already exists", title=existing.title)
        return self._write_new(title.strip(), update_cache).title

    # ------------------------------------------------------------------
    # Updates / deletion
    # ------------------------------------------------------------------

    def update(self, title, updates: Dict, update_cache=None) -> Dict:
        """Apply display settings (``showTitle``, boolean only)."""
        tag = self.get(title)
        filtered = {k: v for k, v in filter_fields(updates, UPDATABLE_FIELDS).items()
                    if isinstance(v, bool)}
        entity = self._repo.update(tag.id, filtered, UPDATABLE_FIELDS)
        if update_cache:
            update_cache(tag.id, filtered)
        return entity

    def reference_count(self, title, games: Optional[List[Dict]] = None) -> int:
        """Count games whose tag field contains *title* (exact string match)."""
        if games is None:
            games = self._games.load_all()
        return sum(1 for g in games if title in field_values(g, self.kind.game_field))

    def delete(self, title, games: Optional[List[Dict]] = None, update_cache=None) -> None:
        """Delete an unused tag.

        Raises:
            NotFound: If the tag doesn't exist.
            Conflict: If one or more games still reference it.
        """
        tag = self.get(title)
        if self.reference_count(tag.title, games) > 0:
            raise Conflict(f"{self.kind.human_name} is still in use by one or more games",
                           title=tag.title)
        self._repo.delete(tag.id)
        if update_cache:
            update_cache(tag.id, REMOVE)
        self._log.info("Deleted %s %r", self.kind.human_name.lower(), tag.title)

    def delete_if_unused(self, title, games: Optional[List[Dict]] = None,
                         update_cache=None) -> bool:
        """Delete the tag when it exists and has no references.

        Returns:
            ``True`` if the tag was deleted.
        """
        tag = self.find(title)
        if tag is None or self.reference_count(tag.title, games) > 0:
            return False
        self.delete(tag.title, games, update_cache)
        return True

    def orphans(self, games: Optional[List[Dict]] = None) -> List[str]:
        """Return titles of tags no game references."""
        if games is None:
            games = self._games.load_all()
        return [title for title in self.titles() if self.reference_count(title, games) == 0]
