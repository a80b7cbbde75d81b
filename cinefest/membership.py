#!/usr/bin/env python3
"""
cinefest/membership.py - Per-user favorites / watched / to-watch lists

The store owns three independent sets of item ids for one session and keeps
them in step with the backend.

Toggle lifecycle (one PendingToggle per call):
    INTENT     local set already changed, remote add/remove in flight
    CONFIRMED  remote call succeeded, local change stands
    REVERTED   remote call failed, local change undone, notice emitted

Toggles on the same (kind, id) run one at a time; each decides add vs remove
from the local state when its turn comes. Toggles are not coalesced.
Without a session every toggle is refused: no state change, one auth
redirect signal.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from cinefest.errors import BackendError
from cinefest.models import CatalogItem, MembershipKind
from cinefest.session import Session

logger = logging.getLogger(__name__)


class PendingState(Enum):
    INTENT = 'intent'
    CONFIRMED = 'confirmed'
    REVERTED = 'reverted'


class ToggleStatus(Enum):
    CONFIRMED = 'confirmed'
    REVERTED = 'reverted'
    REDIRECTED = 'redirected'


@dataclass
class PendingToggle:
    """One toggle between local intent and remote answer"""
    kind: MembershipKind
    item_id: str
    adding: bool
    state: PendingState = PendingState.INTENT

    def _settle(self, state: PendingState):
        if self.state is not PendingState.INTENT:
            raise RuntimeError(f"Toggle for {self.item_id} already {self.state.value}")
        self.state = state

    def confirm(self):
        self._settle(PendingState.CONFIRMED)

    def revert(self):
        self._settle(PendingState.REVERTED)


@dataclass(frozen=True)
class ToggleOutcome:
    """Result handed back to the UI after a toggle settles"""
    status: ToggleStatus
    kind: MembershipKind
    item_id: str
    member: bool
    error: Optional[str] = None


class MembershipStore:
    """Three membership sets for the current session, synchronized with the backend"""

    def __init__(self, backend, session: Optional[Session] = None,
                 on_auth_required: Optional[Callable[[], None]] = None,
                 on_notice: Optional[Callable[[str], None]] = None):
        self.backend = backend
        self.session = session
        self.on_auth_required = on_auth_required
        self.on_notice = on_notice
        self.sets: Dict[MembershipKind, set] = {kind: set() for kind in MembershipKind}
        self.notices: List[str] = []
        self._locks: Dict[Tuple[MembershipKind, str], asyncio.Lock] = {}
        # Toggles holding or waiting on each lock; the entry goes when it drops to 0
        self._lock_users: Dict[Tuple[MembershipKind, str], int] = {}
        self._pending: List[PendingToggle] = []

    @property
    def authenticated(self) -> bool:
        return self.session is not None

    async def initialize(self):
        """Fetch all three lists concurrently. A failed list stays empty."""
        if self.session is None:
            logger.info("No session — membership lists stay empty")
            return

        kinds = list(MembershipKind)
        results = await asyncio.gather(
            *(asyncio.to_thread(self.backend.get_membership_ids, kind, self.session)
              for kind in kinds),
            return_exceptions=True,
        )
        for kind, result in zip(kinds, results):
            if isinstance(result, Exception):
                logger.error(f"Could not fetch {kind.value} list: {result}")
                self.sets[kind] = set()
            else:
                self.sets[kind] = set(result)
        logger.info(
            "Memberships loaded: " +
            ", ".join(f"{kind.value}={len(self.sets[kind])}" for kind in kinds)
        )

    def contains(self, kind: MembershipKind, item_id) -> bool:
        return str(item_id) in self.sets[kind]

    def flags_for(self, item_id) -> Dict[MembershipKind, bool]:
        return {kind: self.contains(kind, item_id) for kind in MembershipKind}

    def annotate(self, items: Iterable[CatalogItem]) -> List[Tuple[CatalogItem, Dict[MembershipKind, bool]]]:
        """Pair each item with its membership flags for rendering"""
        return [(item, self.flags_for(item.id)) for item in items]

    def pending(self) -> List[PendingToggle]:
        """Toggles whose remote call has not settled yet"""
        return list(self._pending)

    def _apply(self, kind: MembershipKind, item_id: str, member: bool):
        if member:
            self.sets[kind].add(item_id)
        else:
            self.sets[kind].discard(item_id)

    def _notify(self, message: str):
        self.notices.append(message)
        if self.on_notice:
            self.on_notice(message)

    async def toggle(self, kind: MembershipKind, item_id) -> ToggleOutcome:
        """Flip membership of item_id in kind, locally first, then remotely"""
        item_id = str(item_id)

        if self.session is None:
            logger.info(f"Toggle {kind.value} for {item_id} refused: not authenticated")
            if self.on_auth_required:
                self.on_auth_required()
            return ToggleOutcome(ToggleStatus.REDIRECTED, kind, item_id,
                                 member=self.contains(kind, item_id))

        key = (kind, item_id)
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                return await self._toggle_locked(kind, item_id)
        finally:
            remaining = self._lock_users.get(key, 1) - 1
            if remaining:
                self._lock_users[key] = remaining
            elif self._locks.get(key) is lock:
                self._lock_users.pop(key, None)
                del self._locks[key]

    async def _toggle_locked(self, kind: MembershipKind, item_id: str) -> ToggleOutcome:
        adding = item_id not in self.sets[kind]
        pending = PendingToggle(kind=kind, item_id=item_id, adding=adding)
        self._pending.append(pending)
        self._apply(kind, item_id, adding)

        try:
            if adding:
                await asyncio.to_thread(self.backend.add_membership, kind, self.session, item_id)
            else:
                await asyncio.to_thread(self.backend.remove_membership, kind, self.session, item_id)
        except BackendError as e:
            self._apply(kind, item_id, not adding)
            pending.revert()
            action = 'add' if adding else 'remove'
            message = f"Could not {action} {item_id} {'to' if adding else 'from'} {kind.value}: {e}"
            logger.warning(message)
            self._notify(message)
            return ToggleOutcome(ToggleStatus.REVERTED, kind, item_id,
                                 member=not adding, error=str(e))
        finally:
            self._pending.remove(pending)

        pending.confirm()
        logger.debug(f"{kind.value}: {'added' if adding else 'removed'} {item_id}")
        return ToggleOutcome(ToggleStatus.CONFIRMED, kind, item_id, member=adding)

    def clear(self):
        """Drop the session and every set (logout)"""
        self.session = None
        for kind in MembershipKind:
            self.sets[kind] = set()
        self._locks.clear()
        self._lock_users.clear()
        logger.info("Membership lists cleared")
