#!/usr/bin/env python3
"""
Tests for tag-ID derivation, identifier normalisation, release dates and
configuration loading.

Run with:
    python -m pytest tests/test_identifiers.py
"""
import datetime
import json
import os
import shutil
import sys
import tempfile
import unittest
from unittest.mock import patch

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from gamecatalog.config import DEFAULT_METADATA_PATH, load_config
from gamecatalog.dates import create_release_date, release_sort_key
from gamecatalog.errors import InvalidInput, ValidationError
from gamecatalog.identifiers import (
    canonical_key, derive_tag_id, ids_equal, normalize_id, normalize_title,
)


# ===========================================================================
# derive_tag_id
# ===========================================================================

class TestDeriveTagId(unittest.TestCase):

    def test_single_character(self):
        self.assertEqual(derive_tag_id('a'), 97)

    def test_two_characters(self):
        self.assertEqual(derive_tag_id('ab'), 97 * 31 + 98)

    def test_negative_hash_is_made_positive(self):
        # "action" hashes to -1422950858 as a signed 32-bit value
        self.assertEqual(derive_tag_id('action'), 1422950858)

    def test_case_and_whitespace_are_ignored(self):
        self.assertEqual(derive_tag_id('  Action '), derive_tag_id('action'))
        self.assertEqual(derive_tag_id('ROLE-PLAYING (RPG)'), 1104192511)

    def test_deterministic(self):
        self.assertEqual(derive_tag_id('Single player'), derive_tag_id('Single player'))
        self.assertEqual(derive_tag_id('Single player'), 2068159929)

    def test_result_is_non_negative_int(self):
        for title in ('Indie', 'Shooter', 'Adventure', 'PC', 'x' * 200):
            tag_id = derive_tag_id(title)
            self.assertIsInstance(tag_id, int)
            self.assertGreaterEqual(tag_id, 0)
            self.assertLess(tag_id, 2 ** 31 + 1)

    def test_non_bmp_characters_use_utf16_units(self):
        # U+1F3AE is the surrogate pair D83C DFAE
        expected = ((0xD83C * 31) + 0xDFAE) & 0xFFFFFFFF
        self.assertEqual(derive_tag_id('\U0001F3AE'), expected)

    def test_invalid_titles_raise(self):
        for bad in (None, '', '   ', 42, ['Action']):
            with self.assertRaises(InvalidInput):
                derive_tag_id(bad)

    def test_invalid_input_is_a_validation_error(self):
        with self.assertRaises(ValidationError):
            normalize_title('\t')


# ===========================================================================
# Identifier normalisation
# ===========================================================================

class TestNormalizeId(unittest.TestCase):

    def test_digit_string_becomes_int(self):
        self.assertEqual(normalize_id('620'), 620)

    def test_int_stays_int(self):
        self.assertEqual(normalize_id(620), 620)

    def test_text_stays_text(self):
        self.assertEqual(normalize_id('my-collection'), 'my-collection')

    def test_none_stays_none(self):
        self.assertIsNone(normalize_id(None))

    def test_canonical_key(self):
        self.assertEqual(canonical_key(620), '620')
        self.assertEqual(canonical_key('620'), '620')

    def test_ids_equal_across_forms(self):
        self.assertTrue(ids_equal(620, '620'))
        self.assertFalse(ids_equal(620, 621))
        self.assertFalse(ids_equal(None, None))


# ===========================================================================
# Release dates
# ===========================================================================

class TestCreateReleaseDate(unittest.TestCase):

    def test_seconds_timestamp(self):
        self.assertEqual(create_release_date(1431993600),
                         {'day': 19, 'month': 5, 'year': 2015})

    def test_milliseconds_timestamp(self):
        self.assertEqual(create_release_date(1431993600000),
                         {'day': 19, 'month': 5, 'year': 2015})

    def test_bare_year(self):
        self.assertEqual(create_release_date(1998),
                         {'day': None, 'month': None, 'year': 1998})

    def test_date_object(self):
        self.assertEqual(create_release_date(datetime.date(2011, 4, 19)),
                         {'day': 19, 'month': 4, 'year': 2011})

    def test_unusable_values(self):
        for bad in (None, 'soon', True, [2015]):
            self.assertIsNone(create_release_date(bad))


class TestReleaseSortKey(unittest.TestCase):

    def test_full_date(self):
        self.assertEqual(release_sort_key({'year': 2020, 'month': 5, 'day': 3}), (2020, 5, 3))

    def test_missing_parts_are_zero(self):
        self.assertEqual(release_sort_key({'year': 2020}), (2020, 0, 0))

    def test_missing_year_sorts_first(self):
        self.assertEqual(release_sort_key({'month': 12, 'day': 31}), (0, 0, 0))
        self.assertEqual(release_sort_key(None), (0, 0, 0))


# ===========================================================================
# Configuration
# ===========================================================================

class TestLoadConfig(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.mkdtemp()
        env = {k: v for k, v in os.environ.items()
               if k not in ('METADATA_PATH', 'API_TOKEN', 'CATALOG_LOG_LEVEL')}
        self._env = patch.dict(os.environ, env, clear=True)
        self._env.start()

    def tearDown(self):
        self._env.stop()
        shutil.rmtree(self.tmp, ignore_errors=True)

    def _write(self, content: str) -> str:
        path = os.path.join(self.tmp, 'config.json')
        with open(path, 'w') as f:
            f.write(content)
        return path

    def test_defaults_without_file(self):
        config = load_config(os.path.join(self.tmp, 'missing.json'))
        self.assertEqual(config['metadata_path'], DEFAULT_METADATA_PATH)
        self.assertIsNone(config['api_token'])
        self.assertEqual(config['log_level'], 'WARNING')

    def test_file_values(self):
        config = load_config(self._write(json.dumps({'metadata_path': '/data/games',
                                                     'api_token': 'abc'})))
        self.assertEqual(config['metadata_path'], '/data/games')
        self.assertEqual(config['api_token'], 'abc')

    def test_environment_overrides_file(self):
        path = self._write(json.dumps({'metadata_path': '/data/games'}))
        os.environ['METADATA_PATH'] = '/env/games'
        os.environ['CATALOG_LOG_LEVEL'] = 'DEBUG'
        config = load_config(path)
        self.assertEqual(config['metadata_path'], '/env/games')
        self.assertEqual(config['log_level'], 'DEBUG')

    def test_corrupt_file_raises(self):
        with self.assertRaises(ValidationError):
            load_config(self._write('{not json'))

    def test_non_object_raises(self):
        with self.assertRaises(ValidationError):
            load_config(self._write('[1, 2]'))


if __name__ == '__main__':
    unittest.main()
