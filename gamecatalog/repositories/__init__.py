"""Repository package: expose all concrete repositories from one import."""
from .base import BaseRepository, CONTENT_TYPES, METADATA_FILE
from .entity_repository import EntityRepository, filter_fields
from .recommended_repository import (
    LegacyIdList, RecommendedRepository, SectionList, parse_sections,
)

__all__ = [
    'BaseRepository',
    'CONTENT_TYPES',
    'METADATA_FILE',
    'EntityRepository',
    'filter_fields',
    'LegacyIdList',
    'RecommendedRepository',
    'SectionList',
    'parse_sections',
]
