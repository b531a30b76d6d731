"""
In-process UDP stub resolvers with scripted replies.

Each stub runs a real UDP socket on 127.0.0.1 in a daemon thread. A
handler receives the parsed query and returns a list of (delay_seconds,
payload_bytes) replies; delayed replies are sent from timers so slow
answers do not serialise the stub.
"""

import socket
import threading
import time

import dns.message
import dns.rcode
import dns.rrset

from dnsbench.models import ResolverTarget


def make_answer(query, rcode=dns.rcode.NOERROR, a_records=("192.0.2.1",), txid=None):
    """Build a response to query with optional A answers and rcode."""
    response = dns.message.make_response(query)
    response.set_rcode(rcode)
    if a_records:
        qname = query.question[0].name
        response.answer.append(
            dns.rrset.from_text_list(qname, 60, "IN", "A", list(a_records))
        )
    if txid is not None:
        response.id = txid
    return response.to_wire()


def answer(delay=0.0, rcode=dns.rcode.NOERROR, honest=True):
    """Handler: answer every query after delay seconds.

    With honest set, names under .invalid get NXDOMAIN instead.
    """
    def handler(query, data):
        if honest and query.question[0].name.to_text().endswith(".invalid."):
            return [(delay, make_answer(query, rcode=dns.rcode.NXDOMAIN, a_records=()))]
        records = ("192.0.2.1",) if rcode == dns.rcode.NOERROR else ()
        return [(delay, make_answer(query, rcode=rcode, a_records=records))]
    return handler


def nxdomain():
    """Handler: honest NXDOMAIN for everything."""
    return answer(rcode=dns.rcode.NXDOMAIN)


def fabricate():
    """Handler: NOERROR with an A record for every name, even .invalid."""
    def handler(query, data):
        return [(0.0, make_answer(query, a_records=("198.51.100.7",)))]
    return handler


def silent():
    """Handler: never reply."""
    def handler(query, data):
        return []
    return handler


def echo():
    """Handler: reflect the query bytes (QR bit still clear)."""
    def handler(query, data):
        return [(0.0, data)]
    return handler


def decoys_then_answer(decoys=1, gap=0.01):
    """Handler: wrong-txid replies first, then the real answer."""
    def handler(query, data):
        replies = []
        for i in range(decoys):
            replies.append((gap * i, make_answer(query, txid=(query.id + 1 + i) & 0xFFFF)))
        replies.append((gap * decoys, make_answer(query)))
        return replies
    return handler


def decoys_only(count=1):
    """Handler: only wrong-txid replies."""
    def handler(query, data):
        return [
            (0.0, make_answer(query, txid=(query.id + 1 + i) & 0xFFFF))
            for i in range(count)
        ]
    return handler


class StubResolver:
    """UDP DNS stub bound to an ephemeral port on 127.0.0.1."""

    def __init__(self, handler, label="stub"):
        self.handler = handler
        self.label = label
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.sock.bind(("127.0.0.1", 0))
        self.host, self.port = self.sock.getsockname()
        self.queries = []
        self._lock = threading.Lock()
        self._stop = False
        self._timers = []
        self.thread = threading.Thread(target=self._loop, daemon=True)

    @property
    def address(self):
        return (self.host, self.port)

    def target(self, label=None):
        return ResolverTarget(label=label or self.label, host=self.host, port=self.port)

    def start(self):
        self.thread.start()
        time.sleep(0.02)
        return self

    def _send(self, payload, peer):
        try:
            self.sock.sendto(payload, peer)
        except OSError:
            pass

    def _loop(self):
        self.sock.settimeout(0.1)
        while not self._stop:
            try:
                data, peer = self.sock.recvfrom(4096)
            except OSError:
                continue
            try:
                query = dns.message.from_wire(data)
            except Exception:
                continue
            with self._lock:
                self.queries.append(query)
            for delay, payload in self.handler(query, data):
                if delay > 0:
                    timer = threading.Timer(delay, self._send, args=(payload, peer))
                    timer.daemon = True
                    self._timers.append(timer)
                    timer.start()
                else:
                    self._send(payload, peer)

    def close(self):
        self._stop = True
        for timer in self._timers:
            timer.cancel()
        self.thread.join(timeout=1.0)
        self.sock.close()
