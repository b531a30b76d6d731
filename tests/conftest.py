"""
Shared fixtures for the DNS Bench test suite.
"""

import os
import socket
import sys

import pytest

# Ensure 'src' is on sys.path so 'dnsbench' is importable without installing
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
SRC_DIR = os.path.join(ROOT, "src")
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from dns_stub import StubResolver  # noqa: E402


@pytest.fixture
def stub_resolver():
    """Factory fixture: stub_resolver(handler, label) -> started StubResolver."""
    stubs = []

    def make(handler, label="stub"):
        stub = StubResolver(handler, label=label).start()
        stubs.append(stub)
        return stub

    yield make

    for stub in stubs:
        stub.close()


@pytest.fixture
def unused_udp_address():
    """An address on 127.0.0.1 with nothing listening."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    address = sock.getsockname()
    sock.close()
    return address
