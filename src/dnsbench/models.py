"""
Data models for DNS Bench.

Defines structured types for resolver targets, query tasks and outcomes,
per-set statistics, ranked results and the benchmark configuration.
"""

import ipaddress
import random
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class QueryType(Enum):
    """DNS record types the benchmark queries."""
    A = "A"
    AAAA = "AAAA"


class SetName(Enum):
    """Named domain sets a query task belongs to."""
    WARM = "warm"
    COLD = "cold"
    TLD = "tld"


@dataclass
class ResolverTarget:
    """One resolver under test."""
    label: str
    host: str
    port: int = 53
    # Set once by the NXDOMAIN characterization probe
    intercepts_nxdomain: bool = False

    @property
    def address(self) -> tuple[str, int]:
        """Socket address tuple for sendto()."""
        return (self.host, self.port)

    @property
    def is_ipv6(self) -> bool:
        return ipaddress.ip_address(self.host).version == 6

    @property
    def key(self) -> str:
        """Stable identity used to group outcomes (ip:port)."""
        if self.is_ipv6:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"


@dataclass(frozen=True)
class QueryTask:
    """A single unit of work: resolver x domain x query type x set."""
    resolver: ResolverTarget
    domain: str
    query_type: QueryType
    set_name: SetName


@dataclass
class QueryOutcome:
    """Result of executing one QueryTask."""
    resolver: str
    domain: str
    query_type: QueryType
    rcode: Optional[str]
    latency_ms: float
    success: bool
    timeout: bool

    @classmethod
    def timed_out(
        cls,
        resolver: str,
        domain: str,
        query_type: QueryType,
        latency_ms: float,
    ) -> "QueryOutcome":
        """Build an outcome for a query that never got a valid answer."""
        return cls(
            resolver=resolver,
            domain=domain,
            query_type=query_type,
            rcode=None,
            latency_ms=latency_ms,
            success=False,
            timeout=True,
        )


@dataclass
class SetStatistics:
    """Aggregate statistics for one domain set of one resolver."""
    p50_ms: float = 0.0
    p95_ms: float = 0.0
    mean_ms: float = 0.0
    stddev_ms: float = 0.0
    success_count: int = 0
    timeout_count: int = 0
    total_count: int = 0
    score: float = 0.0

    @property
    def success_rate(self) -> float:
        """Percentage of successful queries in this set."""
        if self.total_count == 0:
            return 0.0
        return (self.success_count / self.total_count) * 100


@dataclass
class ResolverProfile:
    """Per-resolver aggregate across all domain sets."""
    label: str
    address: str
    warm: SetStatistics
    cold: SetStatistics
    tld: Optional[SetStatistics] = None
    overall_score: float = 0.0
    success_rate: float = 0.0
    intercepts_nxdomain: bool = False
    # MAD-based half-width over warm + cold successful latencies
    uncertainty_ms: float = 0.0


@dataclass
class RankedResolver:
    """A resolver profile with its position in the final ordering."""
    rank: int
    profile: ResolverProfile
    tie_group: Optional[str] = None

    @property
    def display_rank(self) -> str:
        """Rank as shown to users: the tie label when grouped."""
        return self.tie_group or str(self.rank)


@dataclass
class CharacterizationResult:
    """Outcome of the NXDOMAIN interception probe for one resolver."""
    label: str
    address: str
    intercepts_nxdomain: bool


class Randomness:
    """
    Source of randomness for one benchmark run.

    Either seeded (reproducible shuffles) or entropy-seeded. Each round
    gets its own generator so the order of transaction-id draws inside
    concurrent tasks cannot perturb the next round's shuffle.
    """

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self._entropy = random.Random() if seed is None else None

    @classmethod
    def seeded(cls, seed: int) -> "Randomness":
        return cls(seed)

    @classmethod
    def entropy(cls) -> "Randomness":
        return cls(None)

    @property
    def is_seeded(self) -> bool:
        return self.seed is not None

    def round_rng(self, round_index: int) -> random.Random:
        """Return the generator for the given zero-based round."""
        if self.seed is None:
            return random.Random(self._entropy.getrandbits(64))
        return random.Random(f"{self.seed}:{round_index}")

    @staticmethod
    def txid(rng: random.Random) -> int:
        """Draw a 16-bit DNS transaction id."""
        return rng.getrandbits(16)


@dataclass
class BenchmarkConfig:
    """Benchmark options recognised by the measurement core."""
    rounds: int = 3
    timeout: float = 2.0                # seconds
    max_inflight: int = 64
    inter_query_spacing: float = 0.005  # seconds
    query_aaaa: bool = False
    dnssec: bool = False
    query_tld: bool = True
    discover: bool = False
    top_n: int = 50
    max_resolver_ms: float = 1000.0
    seed: Optional[int] = None

    def __post_init__(self):
        if self.rounds < 1:
            raise ValueError(f"rounds must be >= 1, got {self.rounds}")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be > 0, got {self.timeout}")
        if self.max_inflight < 1:
            raise ValueError(f"max_inflight must be >= 1, got {self.max_inflight}")
        if self.inter_query_spacing < 0:
            raise ValueError(
                f"inter_query_spacing must be >= 0, got {self.inter_query_spacing}"
            )
        if self.top_n < 1:
            raise ValueError(f"top_n must be >= 1, got {self.top_n}")
        if self.max_resolver_ms <= 0:
            raise ValueError(f"max_resolver_ms must be > 0, got {self.max_resolver_ms}")

    @property
    def timeout_penalty_ms(self) -> float:
        """Timeout penalty unit for the composite score."""
        return self.timeout * 1000

    @property
    def query_types(self) -> list[QueryType]:
        if self.query_aaaa:
            return [QueryType.A, QueryType.AAAA]
        return [QueryType.A]

    def randomness(self) -> Randomness:
        """Build the run's randomness source from the configured seed."""
        if self.seed is None:
            return Randomness.entropy()
        return Randomness.seeded(self.seed)


# Resolver lists above this size trigger the discovery prefilter
AUTO_DISCOVER_THRESHOLD = 20

# Standard DNS port
DNS_PORT = 53
