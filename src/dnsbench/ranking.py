"""
Ranking and tie detection.

Resolvers are ordered by overall score (lower is better). Neighbours in
that order whose score difference is smaller than the sum of their
uncertainties are treated as statistically tied, and runs of tied
neighbours share a group label such as "2-4".

Only rank-adjacent pairs are compared. If A ties with B and B ties with C,
all three land in one group even when A and C on their own would not
pass the test.
"""

from typing import Optional, Sequence

from .models import RankedResolver, ResolverProfile


def rank_resolvers(profiles: Sequence[ResolverProfile]) -> list[RankedResolver]:
    """
    Sort profiles by overall score ascending and assign ranks 1..n.

    Equal scores keep their input order; ties are expressed through
    detect_ties(), not through a secondary sort key.
    """
    ordered = sorted(profiles, key=lambda p: p.overall_score)
    return [
        RankedResolver(rank=i + 1, profile=profile)
        for i, profile in enumerate(ordered)
    ]


def _is_tied(a: float, b: float, ua: float, ub: float) -> bool:
    return abs(a - b) < ua + ub


def detect_ties(
    ranked: list[RankedResolver],
    uncertainties: Optional[Sequence[float]] = None,
) -> list[RankedResolver]:
    """
    Label contiguous runs of statistically indistinguishable resolvers.

    Args:
        ranked: Resolvers in rank order
        uncertainties: Per-resolver uncertainty, aligned with ranked.
            Defaults to each profile's stored uncertainty_ms.

    Returns:
        The same list, with tie_group set on members of groups of two or
        more and cleared on everyone else
    """
    if uncertainties is None:
        uncertainties = [r.profile.uncertainty_ms for r in ranked]
    if len(uncertainties) != len(ranked):
        raise ValueError(
            f"expected {len(ranked)} uncertainties, got {len(uncertainties)}"
        )

    n = len(ranked)
    start = 0
    for i in range(1, n + 1):
        if i < n and _is_tied(
            ranked[i - 1].profile.overall_score,
            ranked[i].profile.overall_score,
            uncertainties[i - 1],
            uncertainties[i],
        ):
            continue

        # Close the run [start, i - 1]
        group = ranked[start:i]
        if len(group) >= 2:
            label = f"{group[0].rank}-{group[-1].rank}"
            for member in group:
                member.tie_group = label
        else:
            for member in group:
                member.tie_group = None
        start = i

    return ranked


def apply_latency_ceiling(
    ranked: list[RankedResolver],
    max_resolver_ms: float,
) -> tuple[list[RankedResolver], int]:
    """
    Drop resolvers whose warm p50 exceeds max_resolver_ms.

    Survivors are renumbered 1..n and their tie groups recomputed.

    Returns:
        (survivors, number dropped)
    """
    survivors = [r for r in ranked if r.profile.warm.p50_ms <= max_resolver_ms]
    dropped = len(ranked) - len(survivors)

    for i, resolver in enumerate(survivors):
        resolver.rank = i + 1
        resolver.tie_group = None

    detect_ties(survivors)
    return survivors, dropped
