#!/usr/bin/env python3
"""
Session credentials (opaque token + user identifier) kept in a JSON file

The file plays the role browser storage plays for a web client: something
outside the core writes it, the core only reads it through
SessionStore.current_session() and receives the result as an explicit
Session object.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Dict

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Session:
    """Authenticated session context passed to the clients that need it"""
    user_id: str
    token: str

    def auth_headers(self) -> Dict[str, str]:
        return {'Authorization': f"Bearer {self.token}"}


class SessionStore:
    """Read/write the stored token and user id"""

    def __init__(self, path: Path):
        self.path = path

    def _load(self) -> Dict:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not read session file {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def current_session(self) -> Optional[Session]:
        """Return the stored session, or None unless both token and user id are present"""
        data = self._load()
        token = str(data.get('token') or '').strip()
        user_id = str(data.get('userId') or '').strip()
        if not token or not user_id:
            return None
        return Session(user_id=user_id, token=token)

    def save(self, session: Session):
        """Store an externally issued session"""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump({'userId': session.user_id, 'token': session.token}, f, indent=2)
        logger.debug(f"Saved session for user {session.user_id}")

    def clear(self):
        """Forget the stored token (logout)"""
        data = self._load()
        if 'token' not in data:
            return
        data.pop('token')
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2)
        logger.info("Session token cleared")
