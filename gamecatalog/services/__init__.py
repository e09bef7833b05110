"""Services package: expose all concrete services from one import."""
from .media_service import ASSET_KINDS, MediaService, sanitize_label
from .tag_service import (
    TAG_KINDS, DEVELOPER, GAME_ENGINE, GAME_MODE, GENRE, PLATFORM,
    PLAYER_PERSPECTIVE, THEME, Tag, TagKind, TagService, field_values,
)
from .collection_service import CollectionService
from .game_service import GameService
from .cascade_service import CascadeService

__all__ = [
    'ASSET_KINDS',
    'MediaService',
    'sanitize_label',
    'TAG_KINDS',
    'DEVELOPER',
    'GAME_ENGINE',
    'GAME_MODE',
    'GENRE',
    'PLATFORM',
    'PLAYER_PERSPECTIVE',
    'THEME',
    'Tag',
    'TagKind',
    'TagService',
    'field_values',
    'CollectionService',
    'GameService',
    'CascadeService',
]
