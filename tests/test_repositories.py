#!/usr/bin/env python3
"""
Unit tests for the gamecatalog/repositories layer and the read cache.

Run with:
    python -m pytest tests/test_repositories.py
"""
import json
import os
import shutil
import sys
import tempfile
import unittest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from gamecatalog.cache import REMOVE, Store, create_cache_updater
from gamecatalog.errors import Conflict, NotFound, ValidationError
from gamecatalog.repositories import (
    EntityRepository, LegacyIdList, RecommendedRepository, SectionList, parse_sections,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class TmpDirMixin(unittest.TestCase):
    """Creates a fresh metadata root for each test."""

    def setUp(self):
        self.tmp = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmp, ignore_errors=True)

    def _content(self, *parts: str) -> str:
        return os.path.join(self.tmp, 'content', *parts)

    def _read_json(self, *parts: str):
        with open(self._content(*parts)) as f:
            return json.load(f)

    def _write_json(self, data, *parts: str) -> None:
        path = self._content(*parts)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, 'w') as f:
            json.dump(data, f)


# ===========================================================================
# EntityRepository
# ===========================================================================

class TestEntityRepository(TmpDirMixin):

    def _make(self, entity_type='games', human_name='Game'):
        return EntityRepository(self.tmp, entity_type, human_name)

    def test_starts_empty(self):
        self.assertEqual(self._make().load_all(), [])

    def test_create_and_get(self):
        repo = self._make()
        created = repo.create(620, {'title': 'Portal 2'})
        self.assertEqual(created['id'], 620)
        self.assertEqual(repo.get('620')['title'], 'Portal 2')

    def test_id_is_not_stored_in_descriptor(self):
        self._make().create(620, {'title': 'Portal 2', 'id': 999})
        self.assertEqual(self._read_json('games', '620', 'metadata.json'), {'title': 'Portal 2'})

    def test_text_identifier(self):
        repo = self._make('collections', 'Collection')
        repo.create('my-list', {'title': 'Mine'})
        self.assertEqual(repo.get('my-list')['id'], 'my-list')

    def test_create_duplicate_raises_conflict(self):
        repo = self._make()
        repo.create(620, {'title': 'Portal 2'})
        with self.assertRaises(Conflict) as ctx:
            repo.create('620', {'title': 'Again'})
        self.assertEqual(ctx.exception.message, 'Game already exists')

    def test_create_reuses_directory_without_descriptor(self):
        os.makedirs(self._content('games', '620'))
        with open(self._content('games', '620', 'cover.webp'), 'wb') as f:
            f.write(b'img')
        repo = self._make()
        repo.create(620, {'title': 'Portal 2'})
        self.assertTrue(os.path.exists(self._content('games', '620', 'cover.webp')))
        self.assertEqual(repo.get(620)['title'], 'Portal 2')

    def test_get_missing_raises(self):
        with self.assertRaises(NotFound) as ctx:
            self._make().get(1)
        self.assertEqual(ctx.exception.message, 'Game not found')

    def test_find_missing_returns_none(self):
        self.assertIsNone(self._make().find(1))
        self.assertIsNone(self._make().find(None))

    def test_unsafe_identifiers_are_rejected(self):
        repo = self._make()
        self.assertIsNone(repo.find('..'))
        with self.assertRaises(ValidationError):
            repo.create('../escape', {'title': 'x'})

    def test_load_all_skips_unreadable_descriptors(self):
        repo = self._make()
        repo.create(1, {'title': 'Good'})
        os.makedirs(self._content('games', '2'))
        with open(self._content('games', '2', 'metadata.json'), 'w') as f:
            f.write('{broken')
        os.makedirs(self._content('games', '3'))
        self._write_json(['not', 'an', 'object'], 'games', '4', 'metadata.json')
        with self.assertLogs('gamecatalog.repository', level='WARNING'):
            entities = repo.load_all()
        self.assertEqual([e['id'] for e in entities], [1])

    def test_update_applies_only_allowed_fields(self):
        repo = self._make()
        repo.create(1, {'title': 'Old', 'custom': {'keep': True}})
        updated = repo.update(1, {'title': 'New', 'bogus': 2}, ['title', 'summary'])
        self.assertEqual(updated['title'], 'New')
        stored = self._read_json('games', '1', 'metadata.json')
        self.assertEqual(stored, {'title': 'New', 'custom': {'keep': True}})

    def test_update_without_valid_fields_raises(self):
        repo = self._make()
        repo.create(1, {'title': 'Old'})
        with self.assertRaises(ValidationError) as ctx:
            repo.update(1, {'bogus': 2}, ['title'])
        self.assertEqual(ctx.exception.message, 'No valid fields to update')

    def test_update_missing_raises(self):
        with self.assertRaises(NotFound):
            self._make().update(1, {'title': 'x'}, ['title'])

    def test_delete_removes_empty_directory(self):
        repo = self._make()
        repo.create(1, {'title': 'Gone'})
        self.assertTrue(repo.delete(1))
        self.assertFalse(os.path.exists(self._content('games', '1')))

    def test_delete_keeps_directory_with_assets(self):
        repo = self._make()
        repo.create(1, {'title': 'Gone'})
        with open(self._content('games', '1', 'cover.webp'), 'wb') as f:
            f.write(b'img')
        self.assertFalse(repo.delete(1))
        self.assertEqual(os.listdir(self._content('games', '1')), ['cover.webp'])
        self.assertIsNone(repo.find(1))

    def test_delete_missing_raises(self):
        with self.assertRaises(NotFound):
            self._make().delete(1)


# ===========================================================================
# Recommended sections
# ===========================================================================

class TestParseSections(unittest.TestCase):

    def test_section_list(self):
        self.assertIsInstance(parse_sections([{'id': 's1', 'games': [1]}]), SectionList)

    def test_legacy_list(self):
        self.assertIsInstance(parse_sections([1, 2]), LegacyIdList)

    def test_empty_list_is_legacy(self):
        self.assertIsInstance(parse_sections([]), LegacyIdList)

    def test_not_a_list(self):
        self.assertIsNone(parse_sections({'games': [1]}))


class TestRecommendedRepository(TmpDirMixin):

    def _make(self):
        return RecommendedRepository(self.tmp)

    def test_section_shape_removal(self):
        self._write_json([{'id': 's1', 'games': [5, 9, 8]},
                          {'id': 's2', 'games': [7, 5, 6]}],
                         'recommended', 'metadata.json')
        self.assertTrue(self._make().remove_game(5))
        self.assertEqual(self._read_json('recommended', 'metadata.json'),
                         [{'id': 's1', 'games': [9, 8]},
                          {'id': 's2', 'games': [7, 6]}])

    def test_section_shape_keeps_other_content(self):
        self._write_json([{'id': 's1', 'title': 'Picks', 'games': ['5', 9]}],
                         'recommended', 'metadata.json')
        self.assertTrue(self._make().remove_game(5))
        self.assertEqual(self._read_json('recommended', 'metadata.json'),
                         [{'id': 's1', 'title': 'Picks', 'games': [9]}])

    def test_legacy_shape_removal(self):
        self._write_json([5, 9, 5, 8], 'recommended', 'metadata.json')
        self.assertTrue(self._make().remove_game(5))
        self.assertEqual(self._read_json('recommended', 'metadata.json'), [9, 8])

    def test_absent_game_leaves_file_alone(self):
        self._write_json([9, 8], 'recommended', 'metadata.json')
        self.assertFalse(self._make().remove_game(5))
        self.assertEqual(self._read_json('recommended', 'metadata.json'), [9, 8])

    def test_missing_file_is_not_created(self):
        self.assertFalse(self._make().remove_game(5))
        self.assertFalse(os.path.exists(self._content('recommended', 'metadata.json')))


# ===========================================================================
# Cache
# ===========================================================================

class TestCacheUpdater(unittest.TestCase):

    def setUp(self):
        self.items = [{'id': 1, 'title': 'A'}, {'id': 'my-list', 'title': 'B'}]
        self.update = create_cache_updater(self.items)

    def test_merge_dict(self):
        self.update('1', {'title': 'A2'})
        self.assertEqual(self.items[0], {'id': 1, 'title': 'A2'})

    def test_change_is_copied(self):
        change = {'games': [1, 2]}
        self.update(1, change)
        change['games'].append(3)
        self.assertEqual(self.items[0]['games'], [1, 2])

    def test_append_when_not_cached(self):
        self.update(2, {'title': 'C'})
        self.assertEqual(self.items[-1], {'id': 2, 'title': 'C'})

    def test_callable_change(self):
        self.update('my-list', lambda item: item.pop('title'))
        self.assertEqual(self.items[1], {'id': 'my-list'})

    def test_remove(self):
        self.update(1, REMOVE)
        self.assertEqual([i['id'] for i in self.items], ['my-list'])

    def test_remove_missing_is_noop(self):
        self.update(42)
        self.assertEqual(len(self.items), 2)


class TestStore(TmpDirMixin):

    def test_load_and_update_share_list(self):
        repo = EntityRepository(self.tmp, 'games', 'Game')
        repo.create(1, {'title': 'A'})
        store = Store()
        items = store.load('games', repo)
        store.updater('games')(1, {'title': 'B'})
        self.assertIs(store.get('games'), items)
        self.assertEqual(store.find('games', '1')['title'], 'B')
        # the file on disk is untouched by cache updates
        self.assertEqual(repo.get(1)['title'], 'A')

    def test_reload_keeps_list_identity(self):
        repo = EntityRepository(self.tmp, 'games', 'Game')
        store = Store()
        items = store.load('games', repo)
        repo.create(1, {'title': 'A'})
        store.load('games', repo)
        self.assertIs(store.get('games'), items)
        self.assertEqual(len(items), 1)


if __name__ == '__main__':
    unittest.main()
