"""In-memory bearer token store."""
import secrets
import threading
from datetime import datetime, timedelta
from typing import Dict, Optional, Tuple

from config.settings import settings


class TokenStore:
    """Maps random tokens to profile ids with an expiry time.

    Tokens live in process memory only; a restart logs everyone out.
    """

    def __init__(self, ttl_hours: Optional[int] = None) -> None:
        self.ttl = timedelta(hours=ttl_hours or settings.token_ttl_hours)
        self._tokens: Dict[str, Tuple[int, datetime]] = {}
        self._lock = threading.Lock()

    def issue(self, profile_id: int) -> str:
        """Create a token for ``profile_id``; expired tokens are purged first."""
        token = secrets.token_hex(32)
        now = datetime.now()
        with self._lock:
            for stale in [t for t, (_, expires_at) in self._tokens.items() if now > expires_at]:
                del self._tokens[stale]
            self._tokens[token] = (profile_id, now + self.ttl)
        return token

    def resolve(self, token: str) -> Optional[int]:
        """Profile id of a valid token; expired tokens are dropped."""
        with self._lock:
            entry = self._tokens.get(token)
            if entry is None:
                return None
            profile_id, expires_at = entry
            if datetime.now() > expires_at:
                del self._tokens[token]
                return None
            return profile_id

    def revoke(self, token: str) -> None:
        with self._lock:
            self._tokens.pop(token, None)
