"""
DNS Bench - DNS resolver benchmarking and ranking tool.

Measures resolver latency and reliability over UDP and ranks resolvers,
grouping the ones whose results are statistically indistinguishable.
"""

__version__ = "1.0.0"

from .models import (
    BenchmarkConfig,
    QueryOutcome,
    RankedResolver,
    ResolverProfile,
    ResolverTarget,
    SetStatistics,
)
from .query_engine import DNSQueryEngine
from .runner import BenchmarkRunner

__all__ = [
    "__version__",
    "BenchmarkConfig",
    "QueryOutcome",
    "RankedResolver",
    "ResolverProfile",
    "ResolverTarget",
    "SetStatistics",
    "DNSQueryEngine",
    "BenchmarkRunner",
]
