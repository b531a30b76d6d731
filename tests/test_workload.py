"""
Brief: Tests for dnsbench.workload domain sets and task expansion.

Inputs:
  - tmp_path fixture

Outputs:
  - None
"""

import pytest

from dnsbench.models import QueryType, ResolverTarget, SetName
from dnsbench.workload import (
    DEFAULT_COLD_DOMAINS,
    DEFAULT_TLD_DOMAINS,
    DEFAULT_WARM_DOMAINS,
    NXDOMAIN_PROBE_DOMAIN,
    DomainSets,
    build_tasks,
    read_domain_file,
)


def test_default_sets_populated():
    sets = DomainSets()
    assert sets.warm == DEFAULT_WARM_DOMAINS
    assert sets.cold == DEFAULT_COLD_DOMAINS
    assert sets.tld == DEFAULT_TLD_DOMAINS
    # defaults are copies
    sets.warm.append("extra.example")
    assert "extra.example" not in DEFAULT_WARM_DOMAINS


def test_probe_domain_is_reserved():
    assert NXDOMAIN_PROBE_DOMAIN.endswith(".invalid")


def test_read_domain_file(tmp_path):
    path = tmp_path / "warm.txt"
    path.write_text("# popular\nexample.com\n\n  example.org \n#example.net\n")
    assert read_domain_file(path) == ["example.com", "example.org"]


def test_read_domain_file_missing(tmp_path):
    with pytest.raises(ValueError, match="failed to read domain file"):
        read_domain_file(tmp_path / "missing.txt")


def test_load_overrides_only_given_sets(tmp_path):
    cold = tmp_path / "cold.txt"
    cold.write_text("rare.example\n")

    sets = DomainSets.load(cold_path=cold)

    assert sets.cold == ["rare.example"]
    assert sets.warm == DEFAULT_WARM_DOMAINS
    assert sets.tld == DEFAULT_TLD_DOMAINS


def test_enabled_sets():
    sets = DomainSets(warm=["w"], cold=["c"], tld=["t"])
    assert [name for name, _ in sets.enabled(True)] == [SetName.WARM, SetName.COLD, SetName.TLD]
    assert [name for name, _ in sets.enabled(False)] == [SetName.WARM, SetName.COLD]


def test_build_tasks_cross_product():
    resolvers = [
        ResolverTarget(label="a", host="192.0.2.1"),
        ResolverTarget(label="b", host="192.0.2.2"),
    ]
    sets = DomainSets(warm=["w1", "w2"], cold=["c1"], tld=["t1"])

    tasks = build_tasks(resolvers, sets, [QueryType.A, QueryType.AAAA], query_tld=True)

    assert len(tasks) == 2 * (2 + 1 + 1) * 2
    first = tasks[0]
    assert (first.resolver.label, first.domain, first.query_type, first.set_name) == (
        "a", "w1", QueryType.A, SetName.WARM,
    )
    assert {t.set_name for t in tasks if t.domain == "t1"} == {SetName.TLD}


def test_build_tasks_without_tld():
    resolvers = [ResolverTarget(label="a", host="192.0.2.1")]
    sets = DomainSets(warm=["w1"], cold=["c1"], tld=["t1", "t2"])

    tasks = build_tasks(resolvers, sets, [QueryType.A], query_tld=False)

    assert [t.domain for t in tasks] == ["w1", "c1"]
