#!/usr/bin/env python3
"""
cinefest/enrichment.py - Catalog loading, poster enrichment and deduplication

Pipeline for one load:
1. Fetch records from the catalog source (full catalog, search, or nearest
   festivals to a coordinate). Failure here fails the load: empty list.
2. One metadata lookup per record, keyed by title. Lookups are issued
   together and awaited together, at most max_concurrent_lookups in flight,
   each bounded by lookup_timeout. Lookups run on a pool owned by the call
   that is never joined, so a stuck lookup does not delay the result.
   A timeout, an exception or an empty answer all mean "no match": the
   record passes through without image_ref.
3. Deduplicate by title. First occurrence wins, input order is kept.

Output order depends only on input order, never on lookup completion order.
"""

import asyncio
import logging
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from typing import Iterable, List, Optional

from cinefest.constants import DEFAULT_LOOKUP_TIMEOUT, DEFAULT_MAX_CONCURRENT_LOOKUPS
from cinefest.errors import BackendError
from cinefest.models import CatalogItem, Coordinate
from cinefest.session import Session

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogQuery:
    """What to ask the catalog source for"""
    mode: str
    text: Optional[str] = None
    coordinate: Optional[Coordinate] = None

    @classmethod
    def all(cls) -> 'CatalogQuery':
        return cls(mode='all')

    @classmethod
    def search(cls, text: str) -> 'CatalogQuery':
        return cls(mode='search', text=text)

    @classmethod
    def nearest(cls, coordinate: Coordinate) -> 'CatalogQuery':
        return cls(mode='nearest', coordinate=coordinate)

    @property
    def enrich_images(self) -> bool:
        # Festivals have no poster to look up
        return self.mode != 'nearest'

    def describe(self) -> str:
        if self.mode == 'search':
            return f"search '{self.text}'"
        if self.mode == 'nearest' and self.coordinate:
            return f"nearest ({self.coordinate.lat:.4f}, {self.coordinate.lon:.4f})"
        return self.mode


@dataclass
class LoadResult:
    """Items for one load; error is set when the catalog source failed"""
    items: List[CatalogItem] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def dedupe_by_title(items: Iterable[CatalogItem]) -> List[CatalogItem]:
    """Keep the first item per title, in input order"""
    seen = set()
    unique = []
    for item in items:
        if item.title in seen:
            continue
        seen.add(item.title)
        unique.append(item)
    return unique


class EnrichmentPipeline:
    """Merge catalog records with poster references from the metadata source"""

    def __init__(self, catalog_source, metadata_source=None,
                 session: Optional[Session] = None,
                 lookup_timeout: float = DEFAULT_LOOKUP_TIMEOUT,
                 max_concurrent_lookups: int = DEFAULT_MAX_CONCURRENT_LOOKUPS):
        self.catalog_source = catalog_source
        self.metadata_source = metadata_source
        self.session = session
        self.lookup_timeout = lookup_timeout
        self.max_concurrent_lookups = max(1, max_concurrent_lookups)
        self.loading = False
        self.stats = defaultdict(int)

    @staticmethod
    def _release_slot(loop: asyncio.AbstractEventLoop, semaphore: asyncio.Semaphore):
        # Runs in the worker thread once the lookup has really finished
        if not loop.is_closed():
            loop.call_soon_threadsafe(semaphore.release)

    async def _lookup(self, item: CatalogItem, semaphore: asyncio.Semaphore,
                      pool: ThreadPoolExecutor):
        """
        One bounded lookup. The slot is held until the worker thread returns,
        not until the wait times out, so a slow source cannot push the number
        of running lookups past max_concurrent_lookups.
        """
        loop = asyncio.get_running_loop()
        await semaphore.acquire()
        job = pool.submit(self.metadata_source.find_by_title, item.title)
        job.add_done_callback(lambda _: self._release_slot(loop, semaphore))
        return await asyncio.wait_for(asyncio.wrap_future(job), timeout=self.lookup_timeout)

    async def enrich(self, items: Iterable[CatalogItem]) -> List[CatalogItem]:
        """
        Attach image_ref to every item the metadata source knows, then dedupe.

        Never raises for lookup problems; those items come back unchanged.
        """
        items = list(items)
        if not items:
            return []

        if self.metadata_source is None:
            logger.debug("No metadata source configured — skipping poster lookups")
            return self._dedupe(items)

        semaphore = asyncio.Semaphore(self.max_concurrent_lookups)
        # Own pool, never joined: a timed-out lookup must not hold up the caller
        pool = ThreadPoolExecutor(max_workers=self.max_concurrent_lookups,
                                  thread_name_prefix='metadata-lookup')
        try:
            results = await asyncio.gather(
                *(self._lookup(item, semaphore, pool) for item in items),
                return_exceptions=True,
            )
        finally:
            pool.shutdown(wait=False)

        enriched = []
        for item, result in zip(items, results):
            self.stats['lookups'] += 1
            if isinstance(result, asyncio.TimeoutError):
                self.stats['timed_out'] += 1
                logger.warning(f"Metadata lookup timed out after {self.lookup_timeout}s for '{item.title}'")
            elif isinstance(result, Exception):
                self.stats['failed'] += 1
                logger.warning(f"Metadata lookup failed for '{item.title}': {result}")
            elif result and result.get('image_ref'):
                self.stats['matched'] += 1
                enriched.append(replace(item, image_ref=result['image_ref']))
                continue
            else:
                self.stats['unmatched'] += 1
                logger.debug(f"No metadata match for '{item.title}'")
            enriched.append(item)

        return self._dedupe(enriched)

    def _dedupe(self, items: List[CatalogItem]) -> List[CatalogItem]:
        unique = dedupe_by_title(items)
        dropped = len(items) - len(unique)
        if dropped:
            self.stats['duplicates_dropped'] += dropped
            logger.debug(f"Dropped {dropped} duplicate title(s)")
        return unique

    def _fetch(self, query: CatalogQuery) -> List[CatalogItem]:
        if query.mode == 'all':
            return self.catalog_source.get_catalog(session=self.session)
        if query.mode == 'search':
            return self.catalog_source.search(query.text or '', session=self.session)
        if query.mode == 'nearest':
            return self.catalog_source.get_nearest(query.coordinate, session=self.session)
        raise ValueError(f"Unknown catalog query mode: {query.mode!r}")

    async def load(self, query: CatalogQuery) -> LoadResult:
        """
        Fetch, enrich and dedupe one catalog query.

        A catalog source failure yields an empty LoadResult carrying the error;
        the loading flag is cleared either way.
        """
        self.loading = True
        try:
            try:
                items = await asyncio.to_thread(self._fetch, query)
            except BackendError as e:
                self.stats['catalog_failures'] += 1
                logger.error(f"Catalog load failed ({query.describe()}): {e}")
                return LoadResult(items=[], error=str(e))

            if query.enrich_images:
                items = await self.enrich(items)
            else:
                items = self._dedupe(items)

            logger.info(f"Loaded {len(items)} items ({query.describe()})")
            return LoadResult(items=items)
        finally:
            self.loading = False
