#!/usr/bin/env python3
"""
Game catalog - metadata store for a personal game library.
Integration point for the repositories, services and cache, plus a small
maintenance command line.
"""

import argparse
import logging
import sys
from typing import Dict, List

from colorama import init, Fore, Style

from gamecatalog.cache import Store
from gamecatalog.config import load_config
from gamecatalog.errors import CatalogError
from gamecatalog.repositories import CONTENT_TYPES, EntityRepository, RecommendedRepository
from gamecatalog.services import (
    TAG_KINDS, CascadeService, CollectionService, GameService, MediaService, TagService,
)

# Initialize colorama for cross-platform colored terminal output
init(autoreset=True)

# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

def setup_logging(level: str = 'WARNING') -> logging.Logger:
    """Configure the root catalog logger.

    Args:
        level: Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               Defaults to WARNING so normal use is quiet.

    Returns:
        Configured logger instance.
    """
    numeric = getattr(logging, str(level).upper(), logging.WARNING)
    logger = logging.getLogger('gamecatalog')
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter('[%(levelname)s] %(name)s: %(message)s'))
        logger.addHandler(handler)
    logger.setLevel(numeric)
    return logger


class Catalog:
    """Wires repositories, services and the read cache for one metadata root."""

    def __init__(self, metadata_path: str):
        self._log = logging.getLogger('gamecatalog.catalog')
        self.metadata_path = metadata_path

        self.games_repo = EntityRepository(metadata_path, 'games', 'Game')
        self.collections_repo = EntityRepository(metadata_path, 'collections', 'Collection')
        self.recommended_repo = RecommendedRepository(metadata_path)

        self.media_service = MediaService(metadata_path)
        # keyed by the game field each kind fills
        self.tag_services: Dict[str, TagService] = {
            kind.game_field: TagService(metadata_path, kind, self.games_repo)
            for kind in TAG_KINDS
        }
        self.collection_service = CollectionService(self.collections_repo, self.games_repo)
        self.game_service = GameService(self.games_repo, self.tag_services, self.media_service)
        self.cascade_service = CascadeService(
            self.games_repo, self.collection_service, self.recommended_repo, self.tag_services)

        self.store = Store()

    # ------------------------------------------------------------------
    # Lookup helpers
    # ------------------------------------------------------------------

    def tag_service_for_folder(self, folder: str) -> TagService:
        for service in self.tag_services.values():
            if service.kind.folder == folder:
                return service
        raise KeyError(folder)

    def repository_for(self, entity_type: str) -> EntityRepository:
        if entity_type == 'games':
            return self.games_repo
        if entity_type == 'collections':
            return self.collections_repo
        return self.tag_service_for_folder(entity_type).repository

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    def load_all(self) -> None:
        """Populate the read cache for every entity type."""
        for entity_type in CONTENT_TYPES:
            self.store.load(entity_type, self.repository_for(entity_type))
        self._log.debug("Cache loaded for %d entity types", len(CONTENT_TYPES))

    def updater(self, entity_type: str):
        return self.store.updater(entity_type)

    def tag_updaters(self) -> Dict:
        return {s.kind.folder: self.updater(s.kind.folder) for s in self.tag_services.values()}

    def delete_game(self, game_id) -> Dict:
        """Cascade-delete a game, keeping the cache in step."""
        return self.cascade_service.delete_game_cascade(
            game_id,
            update_games_cache=self.updater('games'),
            update_collections_cache=self.updater('collections'),
            tag_cache_updaters=self.tag_updaters(),
        )

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def stats(self) -> Dict[str, int]:
        return {t: len(self.repository_for(t).load_all()) for t in CONTENT_TYPES}

    def orphan_tags(self) -> Dict[str, List[str]]:
        """Return ``{folder: [title, ...]}`` for tags no game references."""
        games = self.games_repo.load_all()
        result = {}
        for service in self.tag_services.values():
            orphans = service.orphans(games)
            if orphans:
                result[service.kind.folder] = orphans
        return result

    def prune_orphan_tags(self) -> Dict[str, List[str]]:
        games = self.games_repo.load_all()
        removed = {}
        for service in self.tag_services.values():
            titles = [t for t in service.orphans(games) if service.delete_if_unused(t, games)]
            if titles:
                removed[service.kind.folder] = titles
        return removed


def _print_entities(catalog: Catalog, entity_type: str) -> None:
    entities = catalog.repository_for(entity_type).load_all()
    if not entities:
        print(f"{Fore.YELLOW}No {entity_type} found.")
        return
    print(f"{Fore.CYAN}{Style.BRIGHT}{entity_type} ({len(entities)})")
    for entity in entities:
        print(f"{Fore.YELLOW}{entity['id']}: {Fore.WHITE}{entity.get('title', '')}")


def _print_tag_map(tags: Dict[str, List[str]], empty_message: str) -> None:
    if not tags:
        print(f"{Fore.GREEN}{empty_message}")
        return
    for folder, titles in tags.items():
        print(f"{Fore.YELLOW}{folder}: {Fore.WHITE}{', '.join(titles)}")


def main(argv=None):
    """Main entry point"""
    parser = argparse.ArgumentParser(
        description='Game catalog maintenance',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python3 catalog.py --stats                   # Count entities per type
  python3 catalog.py --list collections        # List collections
  python3 catalog.py --orphans                 # Show tags no game uses
  python3 catalog.py --delete-game 1234        # Delete a game and its references
        """
    )
    parser.add_argument(
        '--config', '-c',
        default=None,
        help='Optional JSON config file'
    )
    parser.add_argument(
        '--metadata-path', '-m',
        help='Metadata root (overrides config and METADATA_PATH)'
    )
    parser.add_argument(
        '--list', '-l',
        choices=CONTENT_TYPES,
        metavar='TYPE',
        help=f"List entities of one type ({', '.join(CONTENT_TYPES)})"
    )
    parser.add_argument(
        '--stats', '-s',
        action='store_true',
        help='Show entity counts per type'
    )
    parser.add_argument(
        '--orphans',
        action='store_true',
        help='List tags no game references'
    )
    parser.add_argument(
        '--prune-orphans',
        action='store_true',
        help='Delete tags no game references'
    )
    parser.add_argument(
        '--delete-game',
        metavar='ID',
        help='Delete a game and remove it from collections, recommended sections and orphaned tags'
    )
    parser.add_argument(
        '--migrate-collection-ids',
        action='store_true',
        help='Rename collections stored under text IDs to numeric IDs'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Override the configured log level'
    )

    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
    except CatalogError as e:
        print(f"{Fore.RED}Error: {e}")
        return 1
    setup_logging(args.log_level or config.get('log_level', 'WARNING'))
    catalog = Catalog(args.metadata_path or config['metadata_path'])

    try:
        if args.stats:
            print(f"{Fore.CYAN}{Style.BRIGHT}Catalog at {catalog.metadata_path}")
            for entity_type, count in catalog.stats().items():
                print(f"{Fore.YELLOW}{entity_type}: {Fore.WHITE}{count}")
        if args.list:
            _print_entities(catalog, args.list)
        if args.orphans:
            _print_tag_map(catalog.orphan_tags(), "No orphaned tags.")
        if args.prune_orphans:
            removed = catalog.prune_orphan_tags()
            _print_tag_map(removed, "No orphaned tags to remove.")
        if args.delete_game:
            result = catalog.delete_game(args.delete_game)
            print(f"{Fore.GREEN}Deleted game {args.delete_game}")
            print(f"{Fore.YELLOW}Collections updated: {Fore.WHITE}{result['collections']}")
            print(f"{Fore.YELLOW}Recommended updated: {Fore.WHITE}{'yes' if result['recommended'] else 'no'}")
            _print_tag_map(result['tagsRemoved'], "No tags removed.")
        if args.migrate_collection_ids:
            migrated = catalog.collection_service.migrate_ids()
            for old_id, new_id, title in migrated:
                print(f"{Fore.YELLOW}\"{old_id}\" ({title}) -> {Fore.WHITE}{new_id}")
            print(f"{Fore.GREEN}Migrated {len(migrated)} collection(s)")
    except CatalogError as e:
        print(f"{Fore.RED}Error: {e}")
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
