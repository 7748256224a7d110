# adega_delivery/src/infrastructure/session_store.py
from __future__ import annotations

import secrets
import time
from dataclasses import dataclass, field
from typing import Dict, Optional

from src.application.cart import Cart
from src.domain.entities import AdminUser, Preferences


@dataclass
class SessionState:
    session_id: str
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)

    cart: Cart = field(default_factory=Cart)
    # loaded from PreferencesStore on first access
    preferences: Optional[Preferences] = None
    last_order_id: Optional[str] = None


class InMemorySessionStore:
    def __init__(self, ttl_seconds: int = 7200) -> None:
        self.ttl_seconds = ttl_seconds
        self._data: Dict[str, SessionState] = {}

    def get_or_create(self, session_id: str) -> SessionState:
        self._gc()
        st = self._data.get(session_id)
        if st is None:
            st = SessionState(session_id=session_id)
            self._data[session_id] = st
        st.updated_at = time.time()
        return st

    def save(self, st: SessionState) -> None:
        st.updated_at = time.time()
        self._data[st.session_id] = st

    def drop(self, session_id: str) -> None:
        self._data.pop(session_id, None)

    def _gc(self) -> None:
        now = time.time()
        expired = [k for k, v in self._data.items() if now - v.updated_at > self.ttl_seconds]
        for k in expired:
            self._data.pop(k, None)


@dataclass
class AdminSession:
    token: str
    admin: AdminUser
    expires_at: float


class AdminSessionStore:
    """Bearer tokens for the admin console. Expired tokens are treated as logged out."""

    def __init__(self, ttl_seconds: int = 24 * 60 * 60) -> None:
        self.ttl_seconds = ttl_seconds
        self._data: Dict[str, AdminSession] = {}

    def issue(self, admin: AdminUser) -> AdminSession:
        self._gc()
        s = AdminSession(
            token=secrets.token_urlsafe(32),
            admin=admin,
            expires_at=time.time() + self.ttl_seconds,
        )
        self._data[s.token] = s
        return s

    def get(self, token: str) -> Optional[AdminSession]:
        s = self._data.get(token)
        if s is None:
            return None
        if s.expires_at < time.time():
            self._data.pop(token, None)
            return None
        return s

    def revoke(self, token: str) -> None:
        self._data.pop(token, None)

    def _gc(self) -> None:
        now = time.time()
        expired = [k for k, v in self._data.items() if v.expires_at < now]
        for k in expired:
            self._data.pop(k, None)
