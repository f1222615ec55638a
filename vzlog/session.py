"""Keyed pool of HTTP sessions, one session per key, handed out exclusively."""

from __future__ import annotations

import logging
import threading
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from vzlog.errors import VZException

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class HttpResponse:
    """Status code and body of an HTTP response."""

    status: int
    body: bytes


class HttpSession:
    """A simple HTTP client session used to post data to a middleware."""

    def __init__(self) -> None:
        self.closed = False

    def post(
        self, url: str, body: bytes, headers: Mapping[str, str], timeout: float
    ) -> HttpResponse:
        """POST ``body`` to ``url``; HTTP error statuses are returned, not raised.

        Network failures raise OSError; a malformed URL raises ValueError.
        """
        request = urllib.request.Request(url, data=body, headers=dict(headers), method="POST")
        try:
            with urllib.request.urlopen(request, timeout=timeout) as response:
                return HttpResponse(response.status, response.read())
        except urllib.error.HTTPError as exc:
            with exc:
                return HttpResponse(exc.code, exc.read())

    def close(self) -> None:
        self.closed = True


@dataclass
class _Slot:
    session: Any
    in_use: bool


class SessionProvider:
    """Hands out one session per key; a second request for a key blocks until
    the session has been returned."""

    def __init__(
        self,
        factory: Callable[[], Any] = HttpSession,
        close_retries: int = 5,
        retry_delay: float = 1.0,
    ) -> None:
        self._factory = factory
        self._close_retries = max(1, close_retries)
        self._retry_delay = retry_delay
        self._cond = threading.Condition()
        self._slots: dict[str, _Slot] = {}
        self._closed = False

    def get_session(self, key: str, timeout: float | None = None) -> Any:
        """Return the session for ``key``, waiting while it is in use.

        A positive ``timeout`` limits the wait in seconds and raises
        TimeoutError when it runs out; otherwise the call waits indefinitely.
        """
        wait = timeout if timeout is not None and timeout > 0 else None
        with self._cond:
            if self._closed:
                raise VZException("session provider is closed")
            slot = self._slots.get(key)
            if slot is None:
                slot = _Slot(self._factory(), True)
                self._slots[key] = slot
                return slot.session
            if not self._cond.wait_for(lambda: not slot.in_use, timeout=wait):
                raise TimeoutError(f"session for {key!r} still in use")
            if self._closed:
                raise VZException("session provider is closed")
            slot.in_use = True
            return slot.session

    def return_session(self, key: str, session: Any) -> None:
        """Give back a session so that another caller can use it."""
        with self._cond:
            slot = self._slots.get(key)
            if slot is None or slot.session is not session:
                raise ValueError(f"session was not handed out for {key!r}")
            slot.in_use = False
            self._cond.notify_all()

    def in_use(self, key: str) -> bool:
        with self._cond:
            slot = self._slots.get(key)
            return slot is not None and slot.in_use

    def close(self) -> None:
        """Close all sessions, waiting a while for busy ones to be returned."""
        with self._cond:
            if self._closed:
                return
            patience = (self._close_retries - 1) * self._retry_delay
            idle = self._cond.wait_for(
                lambda: not any(slot.in_use for slot in self._slots.values()),
                timeout=patience,
            )
            if not idle:
                log.warning("closing sessions that are still in use")
            for slot in self._slots.values():
                closer = getattr(slot.session, "close", None)
                if closer is not None:
                    closer()
            self._slots.clear()
            self._closed = True
            self._cond.notify_all()

    def __enter__(self) -> SessionProvider:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()