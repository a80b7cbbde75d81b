#!/usr/bin/env python3
"""
TMDb search client with persistent JSON caching

Used as the metadata enrichment source: one title in, zero or one poster
reference out.
"""

import json
import logging
import threading
from pathlib import Path
from typing import Optional, Dict

import requests

from cinefest.constants import TMDB_API_URL, DEFAULT_REQUEST_TIMEOUT

logger = logging.getLogger(__name__)


class TMDbClient:
    """Interface to The Movie Database search API with persistent caching"""

    def __init__(self, api_key: str, cache_path: Optional[Path] = None,
                 timeout: float = DEFAULT_REQUEST_TIMEOUT):
        self.api_key = api_key
        self.base_url = TMDB_API_URL
        self.cache_path = cache_path
        self.timeout = timeout
        self.cache = self._load_cache()
        self.cache_hits = 0
        self.cache_misses = 0
        # Lookups run on worker threads; the cache dict and file are shared
        self._lock = threading.Lock()

    def _load_cache(self) -> Dict:
        """Load cache from JSON file"""
        if self.cache_path and self.cache_path.exists():
            try:
                with open(self.cache_path, 'r', encoding='utf-8') as f:
                    cache = json.load(f)
                logger.info(f"Loaded TMDb cache with {len(cache)} entries")
                return cache
            except Exception as e:
                logger.warning(f"Could not load cache: {e}. Starting fresh.")
                return {}
        return {}

    def _save_cache(self):
        """Save cache to JSON file (caller holds the lock)"""
        if not self.cache_path:
            return
        try:
            self.cache_path.parent.mkdir(parents=True, exist_ok=True)

            with open(self.cache_path, 'w', encoding='utf-8') as f:
                json.dump(self.cache, f, indent=2, ensure_ascii=False)

            logger.debug(f"Saved TMDb cache with {len(self.cache)} entries")
        except Exception as e:
            logger.error(f"Could not save cache: {e}")

    @staticmethod
    def _make_cache_key(title: str) -> str:
        return title.strip().lower()

    def find_by_title(self, title: str) -> Optional[Dict]:
        """
        Look up a title and return its poster reference (with caching)

        Returns dict with keys: image_ref, tmdb_id, tmdb_title
        or None if nothing matched, nothing had a poster, or the API failed.
        Failures are not cached so the next run retries them.
        """
        if not self.api_key or not title or not title.strip():
            return None

        cache_key = self._make_cache_key(title)

        with self._lock:
            if cache_key in self.cache:
                self.cache_hits += 1
                logger.debug(f"Cache hit: {title}")
                return self.cache[cache_key]
            self.cache_misses += 1

        logger.debug(f"Cache miss: {title} - querying TMDb")

        try:
            result = self._query_api(title)
        except requests.exceptions.Timeout:
            logger.warning(f"TMDb API timeout for '{title}'")
            return None
        except requests.exceptions.HTTPError as e:
            logger.warning(f"TMDb API HTTP error for '{title}': {e}")
            return None
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.warning(f"TMDb API error for '{title}': {e}")
            return None

        # Cache result (even if None)
        with self._lock:
            self.cache[cache_key] = result
            self._save_cache()

        return result

    def _query_api(self, title: str) -> Optional[Dict]:
        """Make actual API request to TMDb"""
        response = requests.get(
            f"{self.base_url}/search/movie",
            params={'api_key': self.api_key, 'query': title},
            timeout=self.timeout
        )
        response.raise_for_status()
        data = response.json()

        if not data.get('results'):
            logger.debug(f"No TMDb results for '{title}'")
            return None

        # The search ranking decides: first result only
        candidate = data['results'][0]
        poster_path = candidate.get('poster_path')
        if not poster_path:
            logger.debug(f"First TMDb result for '{title}' has no poster")
            return None

        logger.info(f"TMDb: '{title}' → '{candidate.get('title')}' poster:{poster_path}")
        return {
            'image_ref': poster_path,
            'tmdb_id': candidate.get('id'),
            'tmdb_title': candidate.get('title'),
        }

    def get_cache_stats(self) -> Dict:
        """Get cache performance statistics"""
        total = self.cache_hits + self.cache_misses
        hit_rate = (self.cache_hits / total * 100) if total > 0 else 0

        return {
            'hits': self.cache_hits,
            'misses': self.cache_misses,
            'total_queries': total,
            'hit_rate': hit_rate,
            'cache_size': len(self.cache)
        }
