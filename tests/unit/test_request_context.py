from starlette.requests import Request

from hostel_api.core.config import settings
from hostel_api.core.request_context import get_client_ip


def make_request(peer="10.0.0.5", forwarded_for=None):
    headers = []
    if forwarded_for is not None:
        headers.append((b"x-forwarded-for", forwarded_for.encode()))
    return Request({"type": "http", "method": "GET", "path": "/", "headers": headers, "client": (peer, 5000)})


class TestGetClientIp:
    def test_socket_peer_without_header(self):
        assert get_client_ip(make_request()) == "10.0.0.5"

    def test_header_ignored_from_untrusted_peer(self, monkeypatch):
        monkeypatch.setattr(settings, "TRUSTED_PROXIES", [])
        assert get_client_ip(make_request(forwarded_for="198.51.100.7")) == "10.0.0.5"

    def test_header_read_from_trusted_proxy(self, monkeypatch):
        monkeypatch.setattr(settings, "TRUSTED_PROXIES", ["10.0.0.5"])
        assert get_client_ip(make_request(forwarded_for="203.0.113.4")) == "203.0.113.4"

    def test_spoofed_leading_hops_are_skipped(self, monkeypatch):
        monkeypatch.setattr(settings, "TRUSTED_PROXIES", ["10.0.0.5", "10.0.0.6"])
        request = make_request(forwarded_for="1.2.3.4, 203.0.113.4, 10.0.0.6")
        assert get_client_ip(request) == "203.0.113.4"

    def test_missing_client(self):
        request = Request({"type": "http", "method": "GET", "path": "/", "headers": [], "client": None})
        assert get_client_ip(request) == "unknown"
