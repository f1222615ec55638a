"""Pushing fresh readings as JSON to configured middlewares."""

from __future__ import annotations

import json
import logging
import platform
import threading
from collections import deque
from typing import Any, Iterable

from vzlog.errors import VZException
from vzlog.session import SessionProvider

log = logging.getLogger(__name__)

DataTuple = tuple[int, float]
DataMap = dict[str, deque]

_USER_AGENT = f"vzlog (Python-urllib/{platform.python_version()})"
_SEND_TIMEOUT = 30


class PushDataList:
    """Collects (time, value) tuples per uuid until a consumer takes them."""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._next: DataMap | None = None

    def add(self, uuid: str, time_ms: int, value: float) -> None:
        with self._cond:
            if self._next is None:
                self._next = {}
            self._next.setdefault(uuid, deque()).append((time_ms, value))
            self._cond.notify_all()

    def wait_for_data(self, timeout: float | None = 5.0) -> DataMap | None:
        """Take all collected data, waiting up to ``timeout`` seconds for some.

        Returns None when nothing arrived in time.
        """
        with self._cond:
            if not self._cond.wait_for(lambda: bool(self._next), timeout=timeout):
                return None
            data, self._next = self._next, None
            return data


class PushDataServer:
    """Sends data taken from a PushDataList to every configured middleware.

    ``wait_timeout`` is how long one round waits for data, in seconds.
    """

    def __init__(
        self,
        entries: Iterable[Any] | None,
        data_list: PushDataList | None = None,
        session_provider: SessionProvider | None = None,
    ) -> None:
        self.middlewares: list[str] = []
        if entries is None:
            log.error("PushDataServer created with null option")
        else:
            for entry in entries:
                if not isinstance(entry, dict):
                    raise VZException("config: push array element not an object")
                if "url" not in entry:
                    raise VZException("config: push url not found")
                url = entry["url"]
                if not isinstance(url, str):
                    raise VZException("config: push url no string")
                self.middlewares.append(url)
        self.data_list = data_list
        self.session_provider = session_provider
        self.wait_timeout = 5.0
        self.headers = {
            "Content-type": "application/json",
            "Accept": "application/json",
            "User-Agent": _USER_AGENT,
        }

    def wait_and_send_once_to_all(self) -> bool:
        """Wait for data and send it to all middlewares; True if all succeeded."""
        if self.data_list is None:
            log.error("waitAndSendOnceToAll empty pushDataList!")
            return False
        data_map = self.data_list.wait_for_data(self.wait_timeout)
        if data_map is None:
            log.debug("waitAndSendOnceToAll empty dataMap (timeout?)")
            return False

        payload = self.generate_json(data_map)
        log.debug("push: %s", payload)
        results = [self.send(middleware, payload) for middleware in self.middlewares]
        return all(results)

    @staticmethod
    def generate_json(data_map: DataMap) -> str:
        """Render the data as ``{"data": [{"uuid": ..., "tuples": [...]}]}``.

        The tuple queues are drained.
        """
        data = []
        for uuid, tuples in data_map.items():
            rows = []
            while tuples:
                time_ms, value = tuples.popleft()
                rows.append([int(time_ms), float(value)])
            data.append({"uuid": uuid, "tuples": rows})
        return json.dumps({"data": data}, separators=(",", ":"))

    def send(self, middleware: str, payload: str) -> bool:
        """POST ``payload`` to ``middleware``; True on HTTP 200."""
        if self.session_provider is None:
            log.error("send no session!")
            return False
        session = self.session_provider.get_session(middleware)
        try:
            response = session.post(
                middleware, payload.encode("utf-8"), self.headers, _SEND_TIMEOUT
            )
        except (OSError, ValueError) as exc:
            log.error("HTTP: %s %s", middleware, exc)
            log.debug("send nok to url %s", middleware)
            return False
        finally:
            self.session_provider.return_session(middleware, session)

        if response.status != 200:
            log.error(
                "HTTP Error from url %s: %d %s",
                middleware,
                response.status,
                response.body.decode("utf-8", errors="replace"),
            )
            log.debug("send nok to url %s", middleware)
            return False
        log.debug("Request to %s succeeded with code: %d", middleware, response.status)
        return True


def run_push_data(server: PushDataServer | None, stop_event: threading.Event) -> None:
    """Keep sending pushed data until ``stop_event`` is set."""
    log.debug("Start push_data_thread")
    if server is not None and server.data_list is not None:
        while not stop_event.is_set():
            server.wait_and_send_once_to_all()
    log.debug("Stopped push_data_thread")