import socket

from dogflush.config import DEFAULT_ENDPOINT, Settings


def test_hostname_falls_back_to_os():
    assert Settings(hostname=None).resolved_hostname() == socket.gethostname()
    assert Settings(hostname="web-3").resolved_hostname() == "web-3"


def test_defaults_are_sane():
    s = Settings(endpoint=DEFAULT_ENDPOINT)
    assert s.endpoint.startswith("https://")
    assert s.flush_interval_s > 0
    assert s.upload_attempts >= 1
