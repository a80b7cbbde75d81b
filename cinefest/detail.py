#!/usr/bin/env python3
"""Detail overlay: closed, or open on one item with background scroll suppressed."""

import logging
from typing import Optional

from cinefest.models import CatalogItem

logger = logging.getLogger(__name__)


class DetailOverlay:
    """Open/closed state for the item being inspected"""

    def __init__(self, scroll_lock=None):
        # scroll_lock: anything with suppress() / restore()
        self.scroll_lock = scroll_lock
        self.item: Optional[CatalogItem] = None

    @property
    def is_open(self) -> bool:
        return self.item is not None

    def open(self, item: CatalogItem):
        if not self.is_open and self.scroll_lock is not None:
            self.scroll_lock.suppress()
        self.item = item
        logger.debug(f"Detail opened: {item.title}")

    def close(self):
        if not self.is_open:
            return
        self.item = None
        if self.scroll_lock is not None:
            self.scroll_lock.restore()
        logger.debug("Detail closed")
