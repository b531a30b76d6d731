"""
Brief: Tests for dnsbench.characterization NXDOMAIN interception probes.

Inputs:
  - stub_resolver fixture

Outputs:
  - None
"""

import asyncio
import random

from dnsbench.characterization import characterize_resolvers, probe_nxdomain_interception
from dnsbench.workload import NXDOMAIN_PROBE_DOMAIN

from dns_stub import answer, fabricate, make_answer, nxdomain, silent


def test_probe_detects_fabricated_answer(stub_resolver):
    stub = stub_resolver(fabricate())
    assert asyncio.run(probe_nxdomain_interception(stub.address, 1.0)) is True
    assert stub.queries[0].question[0].name.to_text() == NXDOMAIN_PROBE_DOMAIN + "."


def test_probe_honest_nxdomain(stub_resolver):
    stub = stub_resolver(nxdomain())
    assert asyncio.run(probe_nxdomain_interception(stub.address, 1.0)) is False


def test_probe_noerror_without_records(stub_resolver):
    def handler(query, data):
        return [(0.0, make_answer(query, a_records=()))]

    stub = stub_resolver(handler)
    assert asyncio.run(probe_nxdomain_interception(stub.address, 1.0)) is False


def test_probe_silence_is_not_interception(stub_resolver):
    stub = stub_resolver(silent())
    assert asyncio.run(probe_nxdomain_interception(stub.address, 0.2)) is False


def test_probe_sends_single_query_with_seeded_txid(stub_resolver):
    stub = stub_resolver(nxdomain())
    asyncio.run(probe_nxdomain_interception(stub.address, 1.0, rng=random.Random(3)))

    assert len(stub.queries) == 1
    assert stub.queries[0].id == random.Random(3).getrandbits(16)


def test_characterize_sets_flags(stub_resolver):
    honest = stub_resolver(nxdomain(), label="honest")
    hijacker = stub_resolver(fabricate(), label="hijacker")
    normal = stub_resolver(answer(), label="normal")
    targets = [honest.target(), hijacker.target(), normal.target()]
    targets[0].intercepts_nxdomain = True

    results = asyncio.run(characterize_resolvers(targets, timeout=1.0, concurrency=2))

    assert [r.intercepts_nxdomain for r in targets] == [False, True, False]
    assert [r.label for r in results] == ["honest", "hijacker", "normal"]
    assert results[1].address == targets[1].key
