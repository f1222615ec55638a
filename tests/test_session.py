import http.server
import threading
import time

import pytest

from vzlog.errors import VZException
from vzlog.session import HttpSession, SessionProvider


class FakeSession:
    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True


def test_new_session_is_in_use_until_returned():
    provider = SessionProvider(FakeSession)
    session = provider.get_session("a")
    assert provider.in_use("a") is True
    provider.return_session("a", session)
    assert provider.in_use("a") is False


def test_unknown_key_not_in_use():
    provider = SessionProvider(FakeSession)
    assert provider.in_use("nothing") is False


def test_same_key_reuses_session():
    provider = SessionProvider(FakeSession)
    first = provider.get_session("a")
    provider.return_session("a", first)
    second = provider.get_session("a")
    assert second is first


def test_different_keys_get_different_sessions():
    provider = SessionProvider(FakeSession)
    assert provider.get_session("a") is not provider.get_session("b")


def test_returning_foreign_session_raises():
    provider = SessionProvider(FakeSession)
    provider.get_session("a")
    with pytest.raises(ValueError):
        provider.return_session("a", FakeSession())
    with pytest.raises(ValueError):
        provider.return_session("b", FakeSession())


def test_busy_session_times_out():
    provider = SessionProvider(FakeSession)
    provider.get_session("a")
    with pytest.raises(TimeoutError):
        provider.get_session("a", timeout=0.05)


def test_waiter_gets_session_once_returned():
    provider = SessionProvider(FakeSession)
    session = provider.get_session("a")
    got = []

    def waiter():
        got.append(provider.get_session("a", timeout=5))

    thread = threading.Thread(target=waiter)
    thread.start()
    time.sleep(0.05)
    assert got == []
    provider.return_session("a", session)
    thread.join(5)
    assert got == [session]
    assert provider.in_use("a") is True


def test_close_closes_sessions_and_blocks_further_use():
    provider = SessionProvider(FakeSession)
    session = provider.get_session("a")
    provider.return_session("a", session)
    provider.close()
    assert session.closed is True
    with pytest.raises(VZException):
        provider.get_session("a")


def test_close_forces_busy_sessions_after_retries():
    provider = SessionProvider(FakeSession, close_retries=2, retry_delay=0.01)
    session = provider.get_session("a")
    provider.close()
    assert session.closed is True
    assert provider.in_use("a") is False


def test_context_manager_closes():
    with SessionProvider(FakeSession) as provider:
        session = provider.get_session("a")
        provider.return_session("a", session)
    assert session.closed is True


class _Handler(http.server.BaseHTTPRequestHandler):
    def do_POST(self):
        length = int(self.headers.get("Content-Length", 0))
        body = self.rfile.read(length)
        status = 200 if self.path == "/ok" else 404
        self.send_response(status)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, *args):
        pass


@pytest.fixture
def server_url():
    server = http.server.HTTPServer(("127.0.0.1", 0), _Handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_address[1]}"
    server.shutdown()
    server.server_close()


def test_http_session_posts_and_reads_body(server_url):
    response = HttpSession().post(
        server_url + "/ok", b'{"a":1}', {"Content-type": "application/json"}, 5
    )
    assert response.status == 200
    assert response.body == b'{"a":1}'


def test_http_session_returns_error_status(server_url):
    response = HttpSession().post(server_url + "/missing", b"x", {}, 5)
    assert response.status == 404


def test_http_session_close_marks_closed():
    session = HttpSession()
    session.close()
    assert session.closed is True