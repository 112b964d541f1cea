import io
import json
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Callable, Tuple

import pytest
from PIL import Image

from xmasmagic.config import ARK_URL, DEFAULT_MODEL, settings


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path):
    """Pin settings so a developer's .env or environment never leaks into tests."""
    monkeypatch.setattr(settings, "api_key", None)
    monkeypatch.setattr(settings, "endpoint", ARK_URL)
    monkeypatch.setattr(settings, "default_model", DEFAULT_MODEL)
    monkeypatch.setattr(settings, "output_dir", str(tmp_path / "generated"))
    monkeypatch.setattr(settings, "request_timeout", None)
    monkeypatch.setattr(settings, "max_concurrency", None)
    yield settings


@pytest.fixture
def make_image() -> Callable[..., bytes]:
    def _make(
        size: Tuple[int, int] = (64, 48),
        color=(200, 30, 30),
        mode: str = "RGB",
        fmt: str = "PNG",
    ) -> bytes:
        buffer = io.BytesIO()
        Image.new(mode, size, color).save(buffer, format=fmt)
        return buffer.getvalue()

    return _make


class _KeepAliveArk(BaseHTTPRequestHandler):
    """Minimal Ark stand-in that keeps HTTP/1.1 connections open."""

    protocol_version = "HTTP/1.1"

    def do_POST(self):
        self.rfile.read(int(self.headers.get("Content-Length", 0)))
        body = json.dumps(
            {"data": [{"url": "https://cdn.example.com/local.jpeg"}]}
        ).encode()
        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        pass


@pytest.fixture
def local_ark(monkeypatch: pytest.MonkeyPatch):
    """URL of a local keep-alive server answering like the Ark endpoint."""
    for name in ("HTTP_PROXY", "HTTPS_PROXY", "ALL_PROXY", "http_proxy", "https_proxy", "all_proxy"):
        monkeypatch.delenv(name, raising=False)
    server = ThreadingHTTPServer(("127.0.0.1", 0), _KeepAliveArk)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_address[1]}/api/v3/images/generations"
    finally:
        server.shutdown()
        server.server_close()
