#!/usr/bin/env python3
"""
CatalogBrowser - wires the clients and state holders behind one surface

The session is read once from the SessionStore and handed explicitly to the
components that need it; nothing else reads stored credentials.
"""

import asyncio
import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from cinefest.backend import BackendClient
from cinefest.config import DEFAULTS
from cinefest.detail import DetailOverlay
from cinefest.enrichment import CatalogQuery, EnrichmentPipeline, LoadResult
from cinefest.errors import BackendError
from cinefest.geolocation import LocationProvider
from cinefest.membership import MembershipStore, ToggleOutcome
from cinefest.models import CatalogItem, Coordinate, MembershipKind
from cinefest.selection import SelectionSynchronizer, ViewportCommand
from cinefest.session import SessionStore
from cinefest.tmdb import TMDbClient

logger = logging.getLogger(__name__)


class CatalogBrowser:
    """Catalog loading, memberships, selection and detail state for one UI"""

    def __init__(self, config: Optional[Dict] = None,
                 session_store: Optional[SessionStore] = None,
                 viewport=None, scroll_lock=None,
                 on_auth_required: Optional[Callable[[], None]] = None,
                 on_notice: Optional[Callable[[str], None]] = None,
                 backend=None, metadata_source=None,
                 location_provider: Optional[LocationProvider] = None):
        self.config = dict(DEFAULTS)
        self.config.update(config or {})

        self.session_store = session_store or SessionStore(Path(self.config['session_path']))
        self.session = self.session_store.current_session()
        if self.session:
            logger.info(f"Session found for user {self.session.user_id}")
        else:
            logger.info("No session — browsing anonymously")

        self.backend = backend or BackendClient(
            base_url=self.config['backend_url'],
            timeout=self.config['request_timeout'],
        )

        # Poster enrichment (optional — graceful degradation)
        if metadata_source is None and self.config.get('tmdb_api_key'):
            cache_path = self.config.get('tmdb_cache_path')
            metadata_source = TMDbClient(
                api_key=self.config['tmdb_api_key'],
                cache_path=Path(cache_path) if cache_path else None,
                # HTTP timeout no longer than the pipeline will wait
                timeout=min(self.config['request_timeout'], self.config['lookup_timeout']),
            )
            logger.info("TMDb poster enrichment enabled (with caching)")
        elif metadata_source is None:
            logger.warning("TMDb poster enrichment disabled (no API key in config)")
        self.metadata_source = metadata_source

        if location_provider is None:
            override = Coordinate.from_payload(self.config.get('location'))
            location_provider = LocationProvider(override=override,
                                                 timeout=self.config['request_timeout'])
        self.location_provider = location_provider

        self.pipeline = EnrichmentPipeline(
            self.backend,
            self.metadata_source,
            session=self.session,
            lookup_timeout=self.config['lookup_timeout'],
            max_concurrent_lookups=self.config['max_concurrent_lookups'],
        )
        self.memberships = MembershipStore(
            self.backend,
            session=self.session,
            on_auth_required=on_auth_required,
            on_notice=on_notice,
        )
        self.selection = SelectionSynchronizer(viewport=viewport, zoom=self.config['map_zoom'])
        self.detail = DetailOverlay(scroll_lock=scroll_lock)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def start(self):
        """Populate membership lists before the first render"""
        await self.memberships.initialize()

    @property
    def loading(self) -> bool:
        return self.pipeline.loading

    async def load(self, query: CatalogQuery) -> LoadResult:
        """Replace the current item list with the result of query"""
        self.selection.replace_items([])
        result = await self.pipeline.load(query)
        self.selection.replace_items(result.items)
        self.selection.items_loaded()
        return result

    async def load_nearby(self) -> LoadResult:
        """Festivals nearest to the user's position, if one can be determined"""
        coordinate = await asyncio.to_thread(self.location_provider.current)
        if coordinate is None:
            logger.warning("Location unavailable — cannot load nearby festivals")
            self.selection.replace_items([])
            return LoadResult(items=[], error='location unavailable')
        return await self.load(CatalogQuery.nearest(coordinate))

    async def enrich(self, items: List[CatalogItem]) -> List[CatalogItem]:
        return await self.pipeline.enrich(items)

    # ------------------------------------------------------------------
    # Memberships
    # ------------------------------------------------------------------

    def is_member(self, kind: MembershipKind, item_id) -> bool:
        return self.memberships.contains(kind, item_id)

    async def toggle_membership(self, kind: MembershipKind, item_id) -> ToggleOutcome:
        return await self.memberships.toggle(kind, item_id)

    def rows(self) -> List[Tuple[CatalogItem, Dict[MembershipKind, bool]]]:
        """Current items with their membership flags"""
        return self.memberships.annotate(self.selection.items)

    # ------------------------------------------------------------------
    # Selection and detail
    # ------------------------------------------------------------------

    def select(self, index: int) -> Optional[ViewportCommand]:
        return self.selection.select(index)

    def open_detail(self, item: CatalogItem):
        self.detail.open(item)

    def close_detail(self):
        self.detail.close()

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    async def avatar(self) -> Optional[str]:
        if self.session is None:
            return None
        try:
            return await asyncio.to_thread(self.backend.get_avatar, self.session)
        except BackendError as e:
            logger.error(f"Could not fetch avatar: {e}")
            return None

    def logout(self):
        """Forget the stored token and every membership list"""
        self.session_store.clear()
        self.memberships.clear()
        self.pipeline.session = None
        self.session = None
        logger.info("Logged out")
