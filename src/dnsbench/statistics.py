"""
Statistical analysis engine for DNS benchmark results.

Calculates:
- Nearest-rank percentiles (p50, p95)
- Mean and population standard deviation
- A composite score per domain set (lower is better)
- A MAD-based uncertainty used for tie detection
"""

import math
from typing import Optional, Sequence

import numpy as np

from .models import SetStatistics

# Scales the median absolute deviation to a standard-deviation estimate
# under normality
MAD_SCALE = 1.4826

# Weight of the tail spread (p95 - p50) in the composite score
TAIL_WEIGHT = 0.5


class StatisticsEngine:
    """Calculates per-set statistics, scores and uncertainties."""

    @staticmethod
    def percentile(sorted_values: Sequence[float], p: float) -> Optional[float]:
        """
        Nearest-rank percentile of an already sorted sample.

        Args:
            sorted_values: Values in ascending order
            p: Percentile between 0 and 100

        Returns:
            None for an empty sample, otherwise the value at 1-based rank
            clamp(ceil(p/100 * n), 1, n)
        """
        n = len(sorted_values)
        if n == 0:
            return None
        rank = math.ceil(p * n / 100)
        rank = min(max(rank, 1), n)
        return float(sorted_values[rank - 1])

    @staticmethod
    def set_score(
        p50_ms: float,
        p95_ms: float,
        timeout_count: int,
        total_count: int,
        timeout_penalty_ms: float,
    ) -> float:
        """
        Composite score: p50 + 0.5 * (p95 - p50) + penalty * timeout rate.

        The penalty unit is the full query timeout, so a resolver that
        times out often scores worse than any resolver that answers.
        """
        timeout_rate = timeout_count / total_count if total_count > 0 else 0.0
        return p50_ms + TAIL_WEIGHT * (p95_ms - p50_ms) + timeout_penalty_ms * timeout_rate

    @staticmethod
    def compute_set_statistics(
        latencies_ms: Sequence[float],
        success_count: int,
        timeout_count: int,
        total_count: int,
        timeout_penalty_ms: float,
    ) -> SetStatistics:
        """
        Build SetStatistics from successful-query latencies and counters.

        Args:
            latencies_ms: Latencies of successful queries only
            success_count: Successful queries in the set
            timeout_count: Timed-out queries in the set
            total_count: All attempted queries in the set
            timeout_penalty_ms: Query timeout in milliseconds

        Returns:
            SetStatistics with the composite score filled in. An empty
            sample yields zero for every latency field.
        """
        if len(latencies_ms) > 0:
            sample = np.sort(np.asarray(latencies_ms, dtype=float))
            p50 = StatisticsEngine.percentile(sample, 50)
            p95 = StatisticsEngine.percentile(sample, 95)
            mean = float(np.mean(sample))
            stddev = float(np.std(sample))
        else:
            p50 = p95 = mean = stddev = 0.0

        return SetStatistics(
            p50_ms=p50,
            p95_ms=p95,
            mean_ms=mean,
            stddev_ms=stddev,
            success_count=success_count,
            timeout_count=timeout_count,
            total_count=total_count,
            score=StatisticsEngine.set_score(
                p50, p95, timeout_count, total_count, timeout_penalty_ms,
            ),
        )

    @staticmethod
    def compute_uncertainty(latencies_ms: Sequence[float]) -> float:
        """
        Uncertainty half-width of a latency sample, in milliseconds.

        1.4826 * median(|x - median(x)|); zero for fewer than two values.
        """
        if len(latencies_ms) < 2:
            return 0.0
        sample = np.asarray(latencies_ms, dtype=float)
        median = np.median(sample)
        mad = np.median(np.abs(sample - median))
        return float(MAD_SCALE * mad)
