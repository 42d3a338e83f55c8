"""Server-side sessions.

The browser only holds a signed, random session id; the session payload
(CSRF token, logged-in profile) stays in process memory.
"""
from __future__ import annotations

import copy
import logging
import secrets
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import itsdangerous
from itsdangerous.exc import BadSignature
from starlette.datastructures import MutableHeaders
from starlette.requests import HTTPConnection
from starlette.types import ASGIApp, Message, Receive, Scope, Send

_log = logging.getLogger(__name__)

_ROTATE_FLAG = "study_helper.session_rotate"


@dataclass
class _SessionEntry:
    data: Dict[str, Any]
    last_seen: float


class SessionStore:
    def __init__(
        self,
        *,
        max_age_sec: int = 86400,
        max_sessions: int = 10000,
        sweep_interval_sec: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_age_sec = int(max_age_sec)
        self.max_sessions = max(1, int(max_sessions))
        self.sweep_interval_sec = max(0.0, float(sweep_interval_sec))
        self._clock = clock
        self._entries: Dict[str, _SessionEntry] = {}
        self._last_sweep = clock()
        self._lock = threading.Lock()

    @staticmethod
    def new_session_id() -> str:
        return secrets.token_urlsafe(32)

    def _expired(self, entry: _SessionEntry, now: float) -> bool:
        return now - entry.last_seen > self.max_age_sec

    def _sweep_expired(self, now: float) -> int:
        stale = [sid for sid, entry in self._entries.items() if self._expired(entry, now)]
        for sid in stale:
            del self._entries[sid]
        self._last_sweep = now
        return len(stale)

    def _enforce_session_cap(self) -> None:
        if len(self._entries) <= self.max_sessions:
            return
        overflow = len(self._entries) - self.max_sessions
        oldest = sorted(self._entries.items(), key=lambda item: item[1].last_seen)[:overflow]
        for sid, _entry in oldest:
            del self._entries[sid]
        _log.warning("session cap %d reached, evicted %d idle sessions", self.max_sessions, overflow)

    def get(self, session_id: str) -> Optional[Dict[str, Any]]:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(session_id)
            if entry is None:
                return None
            if self._expired(entry, now):
                del self._entries[session_id]
                return None
            entry.last_seen = now
            return copy.deepcopy(entry.data)

    def put(self, session_id: str, data: Dict[str, Any]) -> None:
        """Store ``data``; expired entries are swept at most once per interval."""
        now = self._clock()
        with self._lock:
            if now - self._last_sweep >= self.sweep_interval_sec:
                dropped = self._sweep_expired(now)
                if dropped:
                    _log.debug("dropped %d expired sessions", dropped)
            self._entries[session_id] = _SessionEntry(data=copy.deepcopy(data), last_seen=now)
            self._enforce_session_cap()

    def delete(self, session_id: str) -> None:
        with self._lock:
            self._entries.pop(session_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def rotate_session(scope: Scope) -> None:
    """Ask the middleware to move this session to a fresh id on response."""
    scope[_ROTATE_FLAG] = True


class ServerSessionMiddleware:
    def __init__(
        self,
        app: ASGIApp,
        *,
        store: SessionStore,
        secret_key: str,
        session_cookie: str = "study_session",
        max_age: int = 86400,
        path: str = "/",
        same_site: str = "lax",
        https_only: bool = False,
    ) -> None:
        self.app = app
        self.store = store
        self.signer = itsdangerous.TimestampSigner(str(secret_key))
        self.session_cookie = session_cookie
        self.max_age = int(max_age)
        self.path = path
        self.security_flags = "httponly; samesite=" + same_site
        if https_only:
            self.security_flags += "; secure"

    def _session_id_from_cookie(self, connection: HTTPConnection) -> Optional[str]:
        raw = connection.cookies.get(self.session_cookie)
        if not raw:
            return None
        try:
            return self.signer.unsign(raw.encode("utf-8"), max_age=self.max_age).decode("utf-8")
        except BadSignature:
            _log.info("ignoring session cookie with bad signature")
            return None

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        connection = HTTPConnection(scope)
        session_id = self._session_id_from_cookie(connection)
        data = self.store.get(session_id) if session_id else None
        had_session = data is not None
        if data is None:
            session_id = None
            data = {}
        scope["session"] = data

        async def send_wrapper(message: Message) -> None:
            nonlocal session_id
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                session = scope["session"]
                if scope.get(_ROTATE_FLAG) and session_id:
                    self.store.delete(session_id)
                    session_id = None
                if session:
                    if not session_id:
                        session_id = self.store.new_session_id()
                    self.store.put(session_id, session)
                    signed = self.signer.sign(session_id.encode("utf-8")).decode("utf-8")
                    headers.append(
                        "Set-Cookie",
                        f"{self.session_cookie}={signed}; path={self.path}; "
                        f"Max-Age={self.max_age}; {self.security_flags}",
                    )
                elif had_session and session_id:
                    self.store.delete(session_id)
                    headers.append(
                        "Set-Cookie",
                        f"{self.session_cookie}=null; path={self.path}; "
                        f"expires=Thu, 01 Jan 1970 00:00:00 GMT; {self.security_flags}",
                    )
            await send(message)

        await self.app(scope, receive, send_wrapper)
