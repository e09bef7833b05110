#!/usr/bin/env python3
"""
Tests for the maintenance command line in catalog.py.

Run with:
    python -m pytest tests/test_catalog_cli.py
"""
import contextlib
import io
import os
import shutil
import sys
import tempfile
import unittest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import catalog
from catalog import Catalog


class TestCatalogCli(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.mkdtemp()
        self.catalog = Catalog(self.tmp)

    def tearDown(self):
        shutil.rmtree(self.tmp, ignore_errors=True)

    def _run(self, *args):
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            code = catalog.main(['--metadata-path', self.tmp, *args])
        return code, out.getvalue()

    def _seed(self):
        genres = self.catalog.tag_services['genre']
        genres.ensure_many(['Puzzle', 'Unused'])
        self.catalog.tag_services['platforms'].ensure_many(['PC'])
        self.catalog.games_repo.create(620, {'title': 'Portal 2', 'year': 2011,
                                             'genre': ['Puzzle'], 'platforms': ['PC']})

    def test_stats(self):
        self._seed()
        code, out = self._run('--stats')
        self.assertEqual(code, 0)
        self.assertIn('games', out)
        self.assertIn('categories', out)

    def test_list(self):
        self._seed()
        code, out = self._run('--list', 'categories')
        self.assertEqual(code, 0)
        self.assertIn('Puzzle', out)
        self.assertIn('Unused', out)

    def test_orphans_and_prune(self):
        self._seed()
        code, out = self._run('--orphans')
        self.assertEqual(code, 0)
        self.assertIn('Unused', out)
        self.assertNotIn('Puzzle', out)

        code, _ = self._run('--prune-orphans')
        self.assertEqual(code, 0)
        self.assertEqual(self.catalog.tag_services['genre'].titles(), ['Puzzle'])
        self.assertEqual(self.catalog.orphan_tags(), {})

    def test_delete_game(self):
        self._seed()
        code, out = self._run('--delete-game', '620')
        self.assertEqual(code, 0)
        self.assertIn('Deleted game 620', out)
        self.assertIsNone(self.catalog.games_repo.find(620))
        self.assertEqual(self.catalog.tag_services['genre'].titles(), ['Unused'])
        self.assertEqual(self.catalog.tag_services['platforms'].titles(), [])

    def test_delete_missing_game(self):
        code, out = self._run('--delete-game', '404')
        self.assertEqual(code, 1)
        self.assertIn('Game not found', out)

    def test_migrate_collection_ids(self):
        self.catalog.collections_repo.create('old-style', {'title': 'Old', 'games': []})
        code, out = self._run('--migrate-collection-ids')
        self.assertEqual(code, 0)
        self.assertIn('Migrated 1 collection(s)', out)
        ids = [c['id'] for c in self.catalog.collection_service.load()]
        self.assertEqual(len(ids), 1)
        self.assertIsInstance(ids[0], int)


if __name__ == '__main__':
    unittest.main()
