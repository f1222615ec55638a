import json
import logging
import threading
import time
from collections import deque

import pytest

from vzlog.errors import VZException
from vzlog.pushdata import PushDataList, PushDataServer, run_push_data
from vzlog.session import HttpResponse, SessionProvider


class RecordingSession:
    def __init__(self, status=200, error=None):
        self.status = status
        self.error = error
        self.posts = []

    def post(self, url, body, headers, timeout):
        self.posts.append((url, body, dict(headers)))
        if self.error is not None:
            raise self.error
        return HttpResponse(self.status, b"")

    def close(self):
        pass


def make_provider(sessions):
    """Provider whose factory hands out the given sessions in order."""
    queue = list(sessions)
    return SessionProvider(lambda: queue.pop(0))


def make_server(entries, data_list=None, provider=None, wait_timeout=0.01):
    server = PushDataServer(entries, data_list, provider)
    server.wait_timeout = wait_timeout
    return server


def test_wait_for_data_times_out_empty():
    assert PushDataList().wait_for_data(0.01) is None


def test_add_then_wait_returns_tuples_in_order():
    data_list = PushDataList()
    data_list.add("u1", 1000, 1.5)
    data_list.add("u1", 2000, 2.5)
    data_list.add("u2", 3000, 3.0)
    data = data_list.wait_for_data(0.01)
    assert list(data["u1"]) == [(1000, 1.5), (2000, 2.5)]
    assert list(data["u2"]) == [(3000, 3.0)]
    assert data_list.wait_for_data(0.01) is None


def test_add_wakes_waiting_consumer():
    data_list = PushDataList()
    timer = threading.Timer(0.05, data_list.add, args=("u", 7, 8.0))
    timer.start()
    try:
        data = data_list.wait_for_data(5)
    finally:
        timer.join(5)
    assert list(data["u"]) == [(7, 8.0)]


def test_generate_json_layout_and_drains():
    data_map = {"u1": deque([(1000, 1.5), (2000, 2.5)])}
    text = PushDataServer.generate_json(data_map)
    assert json.loads(text) == {"data": [{"uuid": "u1", "tuples": [[1000, 1.5], [2000, 2.5]]}]}
    assert len(data_map["u1"]) == 0


def test_generate_json_empty_map():
    assert json.loads(PushDataServer.generate_json({})) == {"data": []}


@pytest.mark.parametrize(
    "entries, message",
    [
        (["http://localhost/"], "config: push array element not an object"),
        ([{"other": 1}], "config: push url not found"),
        ([{"url": 5}], "config: push url no string"),
    ],
)
def test_invalid_entries_raise(entries, message):
    with pytest.raises(VZException, match=message):
        PushDataServer(entries)


def test_entries_give_middlewares_and_headers():
    server = PushDataServer([{"url": "http://a.example.com/"}, {"url": "http://b.example.com/"}])
    assert server.middlewares == ["http://a.example.com/", "http://b.example.com/"]
    assert server.headers["Content-type"] == "application/json"
    assert server.headers["Accept"] == "application/json"


def test_none_entries_accepted():
    assert PushDataServer(None).middlewares == []


def test_default_wait_timeout():
    assert PushDataServer([]).wait_timeout == 5.0


def test_send_success_posts_payload():
    session = RecordingSession()
    provider = make_provider([session])
    server = PushDataServer([], session_provider=provider)
    assert server.send("http://a.example.com/", '{"data":[]}') is True
    url, body, headers = session.posts[0]
    assert url == "http://a.example.com/"
    assert body == b'{"data":[]}'
    assert headers["Content-type"] == "application/json"
    assert provider.in_use("http://a.example.com/") is False


def test_send_error_status_fails():
    server = PushDataServer([], session_provider=make_provider([RecordingSession(status=500)]))
    assert server.send("http://a.example.com/", "{}") is False


def test_send_network_error_fails_and_returns_session():
    provider = make_provider([RecordingSession(error=OSError("down"))])
    server = PushDataServer([], session_provider=provider)
    assert server.send("http://a.example.com/", "{}") is False
    assert provider.in_use("http://a.example.com/") is False


def test_send_without_provider_fails():
    assert PushDataServer([]).send("http://a.example.com/", "{}") is False


def test_send_once_to_all_reports_any_failure():
    ok, bad = RecordingSession(), RecordingSession(status=404)
    data_list = PushDataList()
    server = make_server(
        [{"url": "http://a.example.com/"}, {"url": "http://b.example.com/"}],
        data_list,
        make_provider([ok, bad]),
    )
    data_list.add("u", 1000, 2.0)
    assert server.wait_and_send_once_to_all() is False
    assert ok.posts[0][1] == bad.posts[0][1]
    assert json.loads(ok.posts[0][1]) == {"data": [{"uuid": "u", "tuples": [[1000, 2.0]]}]}


def test_send_once_to_all_success():
    data_list = PushDataList()
    server = make_server(
        [{"url": "http://a.example.com/"}],
        data_list,
        make_provider([RecordingSession()]),
    )
    data_list.add("u", 1, 1.0)
    assert server.wait_and_send_once_to_all() is True


def test_send_once_without_data_or_list_fails():
    assert PushDataServer([]).wait_and_send_once_to_all() is False
    server = make_server([], PushDataList())
    assert server.wait_and_send_once_to_all() is False


def test_run_push_data_sends_until_stopped():
    session = RecordingSession()
    data_list = PushDataList()
    server = make_server(
        [{"url": "http://a.example.com/"}], data_list, make_provider([session]), wait_timeout=0.02
    )
    stop = threading.Event()
    thread = threading.Thread(target=run_push_data, args=(server, stop))
    thread.start()
    data_list.add("u", 5, 6.0)
    deadline = time.monotonic() + 5
    while not session.posts and time.monotonic() < deadline:
        time.sleep(0.01)
    stop.set()
    thread.join(5)
    assert not thread.is_alive()
    assert len(session.posts) == 1


def test_run_push_data_without_server_returns(caplog):
    caplog.set_level(logging.DEBUG, logger="vzlog.pushdata")
    run_push_data(None, threading.Event())
    messages = [r.getMessage() for r in caplog.records if r.name == "vzlog.pushdata"]
    assert messages == ["Start push_data_thread", "Stopped push_data_thread"]


def test_run_push_data_without_list_returns(caplog):
    caplog.set_level(logging.DEBUG, logger="vzlog.pushdata")
    run_push_data(PushDataServer([]), threading.Event())
    messages = [r.getMessage() for r in caplog.records if r.name == "vzlog.pushdata"]
    assert messages[-1] == "Stopped push_data_thread"
    assert "waitAndSendOnceToAll empty pushDataList!" not in messages