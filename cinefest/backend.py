#!/usr/bin/env python3
"""
Backend REST client: film catalog, festival catalog, membership lists

Every failure (network, HTTP status, unexpected payload) surfaces as
BackendError so callers handle a single exception type at their boundary.
"""

import logging
from typing import Optional, List, Any

import requests

from cinefest.constants import (
    DEFAULT_BACKEND_URL, DEFAULT_REQUEST_TIMEOUT, CATALOG_PATH, SEARCH_PATH,
    NEAREST_FESTIVALS_PATH, AVATAR_PATH,
)
from cinefest.errors import BackendError
from cinefest.models import Coordinate, Film, Festival, MembershipKind
from cinefest.session import Session

logger = logging.getLogger(__name__)


class BackendClient:
    """Interface to the catalog/membership backend"""

    def __init__(self, base_url: str = DEFAULT_BACKEND_URL,
                 timeout: float = DEFAULT_REQUEST_TIMEOUT):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout

    def _request(self, method: str, path: str, session: Optional[Session] = None,
                 **kwargs) -> Any:
        """Issue one request and return the decoded JSON body (None for empty bodies)"""
        url = f"{self.base_url}{path}"
        headers = session.auth_headers() if session else {}
        try:
            response = requests.request(method, url, headers=headers,
                                        timeout=self.timeout, **kwargs)
            response.raise_for_status()
        except requests.exceptions.Timeout as e:
            raise BackendError(f"{method} {path} timed out") from e
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise BackendError(f"{method} {path} failed: HTTP {status}", status_code=status) from e
        except requests.exceptions.RequestException as e:
            raise BackendError(f"{method} {path} failed: {e}") from e

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise BackendError(f"{method} {path} returned invalid JSON") from e

    @staticmethod
    def _parse_list(payload: Any, parser, what: str) -> List:
        if not isinstance(payload, list):
            raise BackendError(f"Expected a list of {what}, got {type(payload).__name__}")
        items = []
        for entry in payload:
            if not isinstance(entry, dict):
                logger.warning(f"Skipping malformed {what} entry: {entry!r}")
                continue
            try:
                items.append(parser(entry))
            except ValueError as e:
                logger.warning(f"Skipping {what} entry: {e}")
        return items

    # ------------------------------------------------------------------
    # Catalog source
    # ------------------------------------------------------------------

    def get_catalog(self, session: Optional[Session] = None) -> List[Film]:
        """Full film catalog"""
        payload = self._request('GET', CATALOG_PATH, session=session)
        films = self._parse_list(payload, Film.from_payload, 'film')
        logger.info(f"Catalog: {len(films)} films")
        return films

    def search(self, text: str, session: Optional[Session] = None) -> List[Film]:
        """Films matching free-text search terms"""
        payload = self._request('POST', SEARCH_PATH, session=session, json={'query': text})
        films = self._parse_list(payload, Film.from_payload, 'film')
        logger.info(f"Search '{text}': {len(films)} films")
        return films

    def get_nearest(self, coordinate: Coordinate,
                    session: Optional[Session] = None) -> List[Festival]:
        """Festivals ordered by distance to coordinate (server-side ordering)"""
        path = NEAREST_FESTIVALS_PATH.format(lat=coordinate.lat, lon=coordinate.lon)
        payload = self._request('GET', path, session=session)
        festivals = self._parse_list(payload, Festival.from_payload, 'festival')
        logger.info(f"Nearest to ({coordinate.lat:.4f}, {coordinate.lon:.4f}): {len(festivals)} festivals")
        return festivals

    # ------------------------------------------------------------------
    # Memberships
    # ------------------------------------------------------------------

    def get_membership_ids(self, kind: MembershipKind, session: Session) -> List[str]:
        """Identifiers currently in the user's list of this kind"""
        endpoints = kind.endpoints
        path = endpoints['list'].format(user_id=session.user_id)
        payload = self._request('GET', path, session=session)

        if not isinstance(payload, dict):
            raise BackendError(f"Unexpected {kind.value} payload: {type(payload).__name__}")
        entries = payload.get(endpoints['list_key']) or []

        ids = []
        for entry in entries:
            # Lists come back as populated documents; accept bare ids too
            item_id = entry.get('_id') if isinstance(entry, dict) else entry
            if item_id is not None and str(item_id).strip():
                ids.append(str(item_id))
        return ids

    def add_membership(self, kind: MembershipKind, session: Session, item_id: str):
        body = {'userId': session.user_id, 'movieId': item_id}
        self._request('POST', kind.endpoints['add'], session=session, json=body)
        logger.debug(f"Added {item_id} to {kind.value}")

    def remove_membership(self, kind: MembershipKind, session: Session, item_id: str):
        path = kind.endpoints['remove'].format(user_id=session.user_id, item_id=item_id)
        self._request('DELETE', path, session=session)
        logger.debug(f"Removed {item_id} from {kind.value}")

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    def get_avatar(self, session: Session) -> Optional[str]:
        """Avatar reference for the session's user, None if the user has none"""
        payload = self._request('GET', AVATAR_PATH.format(user_id=session.user_id),
                                session=session)
        if not isinstance(payload, dict):
            return None
        avatar = payload.get('avatar')
        return str(avatar) if avatar else None
