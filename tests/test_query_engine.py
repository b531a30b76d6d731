"""
Brief: Tests for dnsbench.query_engine against in-process UDP stub resolvers.

Inputs:
  - stub_resolver fixture

Outputs:
  - None
"""

import asyncio

import dns.flags
import dns.rcode

from dnsbench import query_engine
from dnsbench.codec import build_query
from dnsbench.models import QueryTask, QueryType, ResolverTarget, SetName
from dnsbench.query_engine import DNSQueryEngine, exchange, execute_query
from dnsbench.transports import UDPTransport

from dns_stub import answer, decoys_only, decoys_then_answer, echo, nxdomain, silent


def _run_query(address, domain="example.com", txid=1234, timeout=1.0):
    wire = build_query(domain, QueryType.A, txid)
    return asyncio.run(
        execute_query(address, wire, timeout, txid, domain, QueryType.A)
    )


def test_execute_query_success(stub_resolver):
    stub = stub_resolver(answer())
    outcome = _run_query(stub.address)

    assert outcome.success is True
    assert outcome.timeout is False
    assert outcome.rcode == "NOERROR"
    assert outcome.latency_ms > 0
    assert outcome.resolver == f"127.0.0.1:{stub.port}"
    assert outcome.domain == "example.com"


def test_execute_query_measures_delay(stub_resolver):
    stub = stub_resolver(answer(delay=0.05))
    outcome = _run_query(stub.address)

    assert outcome.success is True
    assert outcome.latency_ms >= 45


def test_execute_query_nxdomain_is_not_timeout(stub_resolver):
    stub = stub_resolver(nxdomain())
    outcome = _run_query(stub.address, domain="missing.example")

    assert outcome.success is False
    assert outcome.timeout is False
    assert outcome.rcode == "NXDOMAIN"


def test_execute_query_servfail(stub_resolver):
    stub = stub_resolver(answer(rcode=dns.rcode.SERVFAIL))
    outcome = _run_query(stub.address)

    assert outcome.success is False
    assert outcome.timeout is False
    assert outcome.rcode == "SERVFAIL"


def test_execute_query_silence_times_out(stub_resolver):
    stub = stub_resolver(silent())
    outcome = _run_query(stub.address, timeout=0.2)

    assert outcome.success is False
    assert outcome.timeout is True
    assert outcome.rcode is None
    assert outcome.latency_ms >= 190


def test_execute_query_skips_wrong_txid_decoy(stub_resolver):
    stub = stub_resolver(decoys_then_answer(decoys=1))
    outcome = _run_query(stub.address)

    assert outcome.success is True
    assert outcome.rcode == "NOERROR"


def test_execute_query_decoy_only_times_out(stub_resolver):
    stub = stub_resolver(decoys_only(count=1))
    outcome = _run_query(stub.address, timeout=0.3)

    assert outcome.timeout is True
    assert outcome.success is False


def test_execute_query_gives_up_after_receive_budget(stub_resolver):
    stub = stub_resolver(decoys_then_answer(decoys=query_engine.MAX_RECEIVE_ATTEMPTS, gap=0.05))
    outcome = _run_query(stub.address, timeout=2.0)

    # the genuine answer arrives after the budget is spent
    assert outcome.timeout is True
    assert outcome.latency_ms < 1000


def test_execute_query_ignores_reflected_query(stub_resolver):
    stub = stub_resolver(echo())
    outcome = _run_query(stub.address, timeout=0.3)

    assert outcome.timeout is True
    assert outcome.rcode is None


def test_exchange_send_failure_charges_full_timeout(monkeypatch, stub_resolver):
    stub = stub_resolver(answer())

    async def failing_send(self, data, address):
        raise OSError("network unreachable")

    monkeypatch.setattr(UDPTransport, "send", failing_send)
    wire = build_query("example.com", QueryType.A, 1)
    result = asyncio.run(exchange(stub.address, wire, 0.75, 1))

    assert not result.answered
    assert result.latency_ms == 750.0


def test_exchange_bind_failure_charges_full_timeout(monkeypatch):
    async def failing_open(self):
        raise OSError("no free ports")

    monkeypatch.setattr(UDPTransport, "open", failing_open)
    wire = build_query("example.com", QueryType.A, 1)
    result = asyncio.run(exchange(("127.0.0.1", 53), wire, 0.5, 1))

    assert not result.answered
    assert result.latency_ms == 500.0


def test_engine_query_uses_resolver_key(stub_resolver):
    stub = stub_resolver(answer())
    target = stub.target("Local")
    task = QueryTask(target, "example.com", QueryType.AAAA, SetName.COLD)

    outcome = asyncio.run(DNSQueryEngine(timeout=1.0).query(task, txid=77))

    assert outcome.resolver == target.key
    assert outcome.query_type == QueryType.AAAA
    assert outcome.success is True


def test_engine_query_sets_do_bit_when_dnssec(stub_resolver):
    stub = stub_resolver(answer())
    task = QueryTask(stub.target(), "example.com", QueryType.A, SetName.WARM)

    asyncio.run(DNSQueryEngine(timeout=1.0, use_dnssec=True).query(task, txid=5))

    assert len(stub.queries) == 1
    assert stub.queries[0].ednsflags & dns.flags.DO
    assert stub.queries[0].id == 5


def test_engine_query_invalid_domain_is_degenerate():
    target = ResolverTarget(label="nowhere", host="127.0.0.1", port=9)
    task = QueryTask(target, "a" * 70 + ".example", QueryType.A, SetName.WARM)

    outcome = asyncio.run(DNSQueryEngine(timeout=1.0).query(task, txid=1))

    assert outcome.success is False
    assert outcome.timeout is False
    assert outcome.rcode is None
    assert outcome.latency_ms == 0.0


def test_engine_timeout_override(stub_resolver):
    stub = stub_resolver(answer(delay=0.3))
    task = QueryTask(stub.target(), "example.com", QueryType.A, SetName.WARM)

    outcome = asyncio.run(DNSQueryEngine(timeout=2.0).query(task, txid=9, timeout=0.1))

    assert outcome.timeout is True


def test_concurrent_queries_are_isolated(stub_resolver):
    stub = stub_resolver(answer(delay=0.02))
    engine = DNSQueryEngine(timeout=2.0)
    target = stub.target()

    async def main():
        tasks = [
            QueryTask(target, f"host{i}.example", QueryType.A, SetName.COLD)
            for i in range(40)
        ]
        return await asyncio.gather(
            *(engine.query(task, txid=i) for i, task in enumerate(tasks))
        )

    outcomes = asyncio.run(main())

    assert all(o.success for o in outcomes)
    assert [o.domain for o in outcomes] == [f"host{i}.example" for i in range(40)]
