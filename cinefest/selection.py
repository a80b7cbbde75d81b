#!/usr/bin/env python3
"""
Selected item index and the map viewport that follows it

The index is the single source of truth. List activation and marker
activation both call select(), so either path yields the same state and the
same viewport command.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from cinefest.constants import DEFAULT_MAP_ZOOM
from cinefest.models import CatalogItem, Coordinate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ViewportCommand:
    """Center the map on coordinate at zoom"""
    coordinate: Coordinate
    zoom: int


class SelectionSynchronizer:
    """Owns selected_index; sole issuer of center-viewport commands"""

    def __init__(self, viewport=None, zoom: int = DEFAULT_MAP_ZOOM):
        # viewport: anything with center_on(coordinate, zoom_hint)
        self.viewport = viewport
        self.zoom = zoom
        self.items: List[CatalogItem] = []
        self.selected_index: Optional[int] = None
        self.last_command: Optional[ViewportCommand] = None
        # Last value reported by each selection widget (map, table)
        self._widget_seen: Dict[str, Optional[int]] = {}

    @property
    def selected_item(self) -> Optional[CatalogItem]:
        if self.selected_index is None:
            return None
        return self.items[self.selected_index]

    def replace_items(self, items: Sequence[CatalogItem]):
        """New list: selection resets until items_loaded() runs"""
        self.items = list(items)
        self.selected_index = None

    def items_loaded(self):
        """Select the first item when a load finishes with items and nothing selected"""
        if self.items and self.selected_index is None:
            self.select(0)

    def select(self, index: int) -> Optional[ViewportCommand]:
        if not 0 <= index < len(self.items):
            raise IndexError(f"Selection {index} out of range for {len(self.items)} items")

        self.selected_index = index
        item = self.items[index]
        if item.coordinate is None:
            self.last_command = None
            logger.debug(f"Selected '{item.title}' has no coordinate — viewport unchanged")
            return None

        command = ViewportCommand(coordinate=item.coordinate, zoom=self.zoom)
        self.last_command = command
        if self.viewport is not None:
            self.viewport.center_on(command.coordinate, command.zoom)
        return command

    def select_from_list(self, index: int) -> Optional[ViewportCommand]:
        return self.select(index)

    def select_from_marker(self, index: int) -> Optional[ViewportCommand]:
        return self.select(index)

    def select_from_widget(self, source: str, index: Optional[int]) -> bool:
        """
        Apply a widget's selection only if it changed since that widget last
        reported. Widgets keep their value across reruns; a value already seen
        is ignored. Returns True when the selection moved.
        """
        if source in self._widget_seen and self._widget_seen[source] == index:
            return False
        self._widget_seen[source] = index
        if index is None or not 0 <= index < len(self.items):
            return False
        if index == self.selected_index:
            return False
        self.select(index)
        return True

    def markers(self) -> List[tuple]:
        """(index, item) for every item the map can place"""
        return [(i, item) for i, item in enumerate(self.items) if item.coordinate is not None]
