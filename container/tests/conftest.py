# conftest.py
import json
import socket
import threading
import time
from collections import namedtuple
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from unittest.mock import MagicMock

import pytest
import requests

from main import create_app
from settings import Settings

# Same shape as psutil's snicaddr
Addr = namedtuple("Addr", ["family", "address", "netmask", "broadcast", "ptp"])

IDENTITY_VARS = ["POD_NAME", "NODE_NAME", "POD_NAMESPACE", "HOST_INTERFACE", "PROXY_URL",
                 "PROXY_CONFIG", "PORT", "HTTP_PROXY", "HOST_IP", "POD_IP"]


def inet(address):
    return Addr(socket.AF_INET, address, "255.255.255.0", None, None)


def inet6(address):
    return Addr(socket.AF_INET6, address, "ffff:ffff:ffff:ffff::", None, None)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in IDENTITY_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        pod_name="demo-7d9f",
        node_name="worker-1",
        namespace="tenant-a",
        proxy_url="http://egress.tenant-a:3128",
        static_dir=str(tmp_path),
    )


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def client(settings, session):
    app = create_app(settings, session=session)
    app.config["TESTING"] = True
    return app.test_client()


def upstream_response(body, status_code=200):
    """Fake requests.Response holding ``body`` (bytes)."""
    resp = requests.Response()
    resp.status_code = status_code
    resp._content = body
    resp._content_consumed = True
    resp.encoding = "utf-8"
    return resp


class UpstreamHandler(BaseHTTPRequestHandler):
    """Stand-in upstream on localhost.

    /cookie  sets ``tenant=a`` and echoes the Cookie header it received
    /slow    sends a 14 byte JSON body one byte every 0.3s
    """

    def do_GET(self):
        if self.path == "/cookie":
            body = json.dumps({"cookie": self.headers.get("Cookie")}).encode()
            self.send_response(200)
            self.send_header("Set-Cookie", "tenant=a; Path=/")
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)
        elif self.path == "/slow":
            body = b'{"slow": true}'
            self.send_response(200)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            try:
                for i in range(len(body)):
                    self.wfile.write(body[i:i + 1])
                    self.wfile.flush()
                    time.sleep(0.3)
            except OSError:
                pass
        else:
            self.send_error(404)

    def log_message(self, format, *args):
        pass


@pytest.fixture
def upstream_url():
    server = ThreadingHTTPServer(("127.0.0.1", 0), UpstreamHandler)
    server.daemon_threads = True
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_address[1]}"
    server.shutdown()
    server.server_close()
