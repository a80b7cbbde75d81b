#!/usr/bin/env python3
"""
Test suite for cinefest/tmdb.py — title lookups and caching
"""

import json
import sys
import tempfile
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import requests

sys.path.insert(0, str(Path(__file__).parent.parent))

from cinefest.tmdb import TMDbClient


def search_response(results):
    resp = MagicMock()
    resp.json.return_value = {'results': results}
    return resp


@pytest.fixture
def client():
    return TMDbClient(api_key="key", cache_path=None)


class TestFindByTitle:

    def test_first_result_wins(self, client):
        results = [
            {'id': 2, 'title': 'La Haine', 'poster_path': '/haine.jpg'},
            {'id': 1, 'title': 'La Haine 2', 'poster_path': '/other.jpg'},
        ]
        with patch('cinefest.tmdb.requests.get', return_value=search_response(results)) as get:
            result = client.find_by_title('La Haine')

        assert result == {'image_ref': '/haine.jpg', 'tmdb_id': 2, 'tmdb_title': 'La Haine'}
        assert get.call_args.kwargs['params'] == {'api_key': 'key', 'query': 'La Haine'}

    def test_localized_title_keeps_poster(self, client):
        # Translated or reordered titles are still the search engine's best match
        results = [{'id': 3, 'title': 'Hate', 'original_title': 'Haine (La)', 'poster_path': '/hate.jpg'}]
        with patch('cinefest.tmdb.requests.get', return_value=search_response(results)):
            assert client.find_by_title('La Haine')['image_ref'] == '/hate.jpg'

    def test_later_results_ignored(self, client):
        results = [
            {'id': 5, 'title': 'Obscure', 'poster_path': None},
            {'id': 6, 'title': 'Obscure', 'poster_path': '/second.jpg'},
        ]
        with patch('cinefest.tmdb.requests.get', return_value=search_response(results)):
            assert client.find_by_title('Obscure') is None

    def test_no_results(self, client):
        with patch('cinefest.tmdb.requests.get', return_value=search_response([])):
            assert client.find_by_title('Nothing') is None

    def test_match_without_poster(self, client):
        results = [{'id': 4, 'title': 'Obscure', 'poster_path': None}]
        with patch('cinefest.tmdb.requests.get', return_value=search_response(results)):
            assert client.find_by_title('Obscure') is None

    def test_no_api_key(self):
        client = TMDbClient(api_key=None)
        with patch('cinefest.tmdb.requests.get') as get:
            assert client.find_by_title('La Haine') is None
        get.assert_not_called()

    def test_blank_title(self, client):
        with patch('cinefest.tmdb.requests.get') as get:
            assert client.find_by_title('   ') is None
        get.assert_not_called()


class TestCaching:

    def test_second_lookup_hits_cache(self, client):
        results = [{'id': 2, 'title': 'La Haine', 'poster_path': '/haine.jpg'}]
        with patch('cinefest.tmdb.requests.get', return_value=search_response(results)) as get:
            first = client.find_by_title('La Haine')
            second = client.find_by_title('la haine ')

        assert first == second
        assert get.call_count == 1
        stats = client.get_cache_stats()
        assert stats['hits'] == 1
        assert stats['misses'] == 1

    def test_empty_answer_is_cached(self, client):
        with patch('cinefest.tmdb.requests.get', return_value=search_response([])) as get:
            client.find_by_title('Nothing')
            client.find_by_title('Nothing')
        assert get.call_count == 1

    def test_failure_is_not_cached(self, client):
        with patch('cinefest.tmdb.requests.get',
                   side_effect=requests.exceptions.Timeout()) as get:
            assert client.find_by_title('Slow') is None
            assert client.find_by_title('Slow') is None
        assert get.call_count == 2
        assert client.get_cache_stats()['cache_size'] == 0

    def test_http_error_returns_none(self, client):
        resp = MagicMock()
        resp.raise_for_status.side_effect = requests.exceptions.HTTPError("401")
        with patch('cinefest.tmdb.requests.get', return_value=resp):
            assert client.find_by_title('La Haine') is None

    def test_cache_persisted(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            cache_path = Path(tmpdir) / 'nested' / 'tmdb_cache.json'
            client = TMDbClient(api_key="key", cache_path=cache_path)
            results = [{'id': 2, 'title': 'La Haine', 'poster_path': '/haine.jpg'}]
            with patch('cinefest.tmdb.requests.get', return_value=search_response(results)):
                client.find_by_title('La Haine')

            saved = json.loads(cache_path.read_text(encoding='utf-8'))
            assert saved['la haine']['image_ref'] == '/haine.jpg'

            reloaded = TMDbClient(api_key="key", cache_path=cache_path)
            with patch('cinefest.tmdb.requests.get') as get:
                assert reloaded.find_by_title('La Haine')['image_ref'] == '/haine.jpg'
            get.assert_not_called()

    def test_corrupt_cache_starts_fresh(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            cache_path = Path(tmpdir) / 'tmdb_cache.json'
            cache_path.write_text('{not json', encoding='utf-8')
            client = TMDbClient(api_key="key", cache_path=cache_path)
            assert client.cache == {}
