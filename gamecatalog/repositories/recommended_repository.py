"""Repository for the recommended sections file.

Two on-disk shapes are accepted and written back unchanged::

    [620, 440, ...]                                   (legacy id list)
    [{"id": "s1", "games": [620, 440]}, ...]          (section list)
"""
from typing import Any, List, Optional

from ..identifiers import ids_equal
from .base import METADATA_FILE, BaseRepository


class LegacyIdList:
    """Top-level list of raw game identifiers."""

    def __init__(self, game_ids: List) -> None:
        self.game_ids = game_ids

    def remove_game(self, game_id) -> bool:
        kept = [g for g in self.game_ids if not ids_equal(g, game_id)]
        changed = len(kept) != len(self.game_ids)
        self.game_ids = kept
        return changed

    def to_json(self) -> List:
        return self.game_ids


class SectionList:
    """Top-level list of ``{id, games: [...]}`` section objects.

    Everything except the ``games`` lists is left untouched.
    """

    def __init__(self, sections: List[dict]) -> None:
        self.sections = sections

    def remove_game(self, game_id) -> bool:
        changed = False
        for section in self.sections:
            games = section.get('games') if isinstance(section, dict) else None
            if not isinstance(games, list):
                continue
            kept = [g for g in games if not ids_equal(g, game_id)]
            if len(kept) != len(games):
                section['games'] = kept
                changed = True
        return changed

    def to_json(self) -> List:
        return self.sections


def parse_sections(data: Any):
    """Detect the shape of *data* from its top-level elements.

    Returns:
        :class:`LegacyIdList`, :class:`SectionList`, or ``None`` when *data*
        is not a list.
    """
    if not isinstance(data, list):
        return None
    if data and isinstance(data[0], dict) and 'id' in data[0]:
        return SectionList(data)
    return LegacyIdList(data)


class RecommendedRepository(BaseRepository):
    """Reads and rewrites ``content/recommended/metadata.json``."""

    @property
    def path(self) -> str:
        return self.content_path('recommended', METADATA_FILE)

    def load(self) -> Optional[Any]:
        """Return the parsed shape, or ``None`` if the file is absent/unusable."""
        data = self._load(self.path, None)
        if data is None:
            return None
        parsed = parse_sections(data)
        if parsed is None:
            self._log.warning("Ignoring %s: top level is not a list", self.path)
        return parsed

    def save(self, sections) -> None:
        self._save(self.path, sections.to_json())

    def remove_game(self, game_id) -> bool:
        """Drop *game_id* everywhere in the file, keeping its shape.

        Returns:
            ``True`` if the file was rewritten.
        """
        sections = self.load()
        if sections is None or not sections.remove_game(game_id):
            return False
        self.save(sections)
        return True
