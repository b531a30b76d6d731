"""
Benchmark runner for DNS resolvers.

Orchestrates a full benchmark:
- Optional discovery prefilter for large candidate lists
- NXDOMAIN interception characterization
- Multiple shuffled rounds of warm/cold/TLD queries under a global
  concurrency limit
- Aggregation into per-resolver profiles, ranking and tie detection
"""

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Callable, Optional

from .characterization import characterize_resolvers
from .models import (
    BenchmarkConfig,
    CharacterizationResult,
    QueryOutcome,
    QueryTask,
    QueryType,
    RankedResolver,
    Randomness,
    ResolverProfile,
    ResolverTarget,
    SetName,
)
from .query_engine import DNSQueryEngine
from .ranking import detect_ties, rank_resolvers
from .statistics import StatisticsEngine
from .workload import DomainSets, build_tasks

logger = logging.getLogger(__name__)


# Type for progress callback
ProgressCallback = Callable[[str, int, int], None]

# Reachability screen deadline in seconds
DISCOVERY_SCREEN_TIMEOUT = 0.5

# Used for the screen when no warm domains are configured
FALLBACK_SCREEN_DOMAIN = "google.com"

# Generator slots for the discovery phases, kept apart from benchmark rounds
DISCOVERY_SCREEN_SLOT = -1
DISCOVERY_RANKING_SLOT = -2


@dataclass
class SetAccumulator:
    """Raw counters for one domain set of one resolver."""
    latencies: list[float] = field(default_factory=list)
    success: int = 0
    timeout: int = 0
    total: int = 0

    def add(self, outcome: QueryOutcome) -> None:
        self.total += 1
        if outcome.success:
            self.success += 1
            self.latencies.append(outcome.latency_ms)
        if outcome.timeout:
            self.timeout += 1

    def statistics(self, timeout_penalty_ms: float):
        return StatisticsEngine.compute_set_statistics(
            self.latencies,
            self.success,
            self.timeout,
            self.total,
            timeout_penalty_ms,
        )


class BenchmarkRunner:
    """
    Runs DNS benchmarks against a set of resolvers.

    Every query gets its own UDP socket. Rounds are strictly sequential;
    inside a round, all tasks run concurrently up to max_inflight.
    """

    def __init__(
        self,
        config: Optional[BenchmarkConfig] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ):
        """
        Initialize the runner.

        Args:
            config: Benchmark options (defaults if None)
            progress_callback: Called as (message, current, total)
        """
        self.config = config or BenchmarkConfig()
        self.progress_callback = progress_callback
        self.engine = DNSQueryEngine(
            timeout=self.config.timeout,
            use_dnssec=self.config.dnssec,
        )
        self.randomness = self.config.randomness()

    def _progress(self, message: str, current: int, total: int) -> None:
        if self.progress_callback:
            self.progress_callback(message, current, total)

    async def _execute(
        self,
        task: QueryTask,
        rng: random.Random,
        semaphore: asyncio.Semaphore,
        timeout: Optional[float] = None,
        spacing: Optional[float] = None,
    ) -> tuple[QueryTask, QueryOutcome]:
        """Run one task once admitted by the concurrency gate."""
        if spacing is None:
            spacing = self.config.inter_query_spacing
        async with semaphore:
            if spacing > 0:
                await asyncio.sleep(spacing)
            txid = Randomness.txid(rng)
            outcome = await self.engine.query(task, txid, timeout=timeout)
        return task, outcome

    async def _gather(
        self,
        tasks: list[QueryTask],
        rng: random.Random,
        semaphore: asyncio.Semaphore,
        timeout: Optional[float] = None,
        spacing: Optional[float] = None,
    ) -> list[tuple[QueryTask, QueryOutcome]]:
        """
        Run tasks concurrently and wait for all of them.

        timeout and spacing default to the configured values. A task whose
        coroutine fails outright is logged and left out.
        """
        results = await asyncio.gather(
            *(self._execute(task, rng, semaphore, timeout, spacing) for task in tasks),
            return_exceptions=True,
        )

        completed = []
        for task, result in zip(tasks, results):
            if isinstance(result, BaseException):
                logger.warning(
                    "Task failed: %s %s via %s: %r",
                    task.domain, task.query_type.value, task.resolver.key, result,
                )
                continue
            completed.append(result)
        return completed

    async def run_round(
        self,
        tasks: list[QueryTask],
        round_index: int,
        semaphore: asyncio.Semaphore,
    ) -> list[tuple[QueryTask, QueryOutcome]]:
        """
        Shuffle a copy of the task list and execute every task.

        Returns only after every task of the round has finished.
        """
        rng = self.randomness.round_rng(round_index)
        round_tasks = list(tasks)
        rng.shuffle(round_tasks)
        return await self._gather(round_tasks, rng, semaphore)

    async def run_characterization(
        self,
        resolvers: list[ResolverTarget],
    ) -> list[CharacterizationResult]:
        """Probe every resolver for NXDOMAIN interception."""
        logger.info("Checking NXDOMAIN interception (%d resolvers)...", len(resolvers))
        return await characterize_resolvers(
            resolvers,
            self.config.timeout,
            concurrency=self.config.max_inflight,
        )

    async def run_discovery(
        self,
        candidates: list[ResolverTarget],
        warm_domains: list[str],
    ) -> list[ResolverTarget]:
        """
        Reduce a large candidate list to at most top_n resolvers.

        Phase 1 drops every candidate that cannot answer one A query for
        the first warm domain within 500 ms. Phase 2, only needed when more
        than top_n survive, queries every warm domain once per survivor and
        keeps the top_n by warm-set score. Neither phase applies the
        inter-query spacing.

        Returns:
            Retained resolvers in their original order
        """
        top_n = self.config.top_n
        semaphore = asyncio.Semaphore(self.config.max_inflight)
        logger.info("Discovery mode: screening %d resolvers...", len(candidates))

        # Phase 1: reachability screen
        screen_domain = warm_domains[0] if warm_domains else FALLBACK_SCREEN_DOMAIN
        screen_tasks = [
            QueryTask(r, screen_domain, QueryType.A, SetName.WARM)
            for r in candidates
        ]
        screened = await self._gather(
            screen_tasks,
            self.randomness.round_rng(DISCOVERY_SCREEN_SLOT),
            semaphore,
            timeout=DISCOVERY_SCREEN_TIMEOUT,
            spacing=0.0,
        )
        reachable = {task.resolver.key for task, outcome in screened if outcome.success}
        survivors = [r for r in candidates if r.key in reachable]
        self._progress("Discovery screen", 1, 2)

        logger.info(
            "Screen: %d/%d resolvers reachable (%d unreachable, dropped)",
            len(survivors), len(candidates), len(candidates) - len(survivors),
        )

        if len(survivors) <= top_n:
            logger.info("Keeping all %d survivors (top_n=%d)", len(survivors), top_n)
            self._progress("Discovery ranking", 2, 2)
            return survivors

        # Phase 2: quick warm-only ranking
        logger.info("Quick benchmark on %d survivors...", len(survivors))
        ranking_tasks = [
            QueryTask(r, domain, QueryType.A, SetName.WARM)
            for r in survivors
            for domain in warm_domains
        ]
        ranked = await self._gather(
            ranking_tasks,
            self.randomness.round_rng(DISCOVERY_RANKING_SLOT),
            semaphore,
            spacing=0.0,
        )

        accumulators: dict[str, SetAccumulator] = {}
        for task, outcome in ranked:
            accumulators.setdefault(task.resolver.key, SetAccumulator()).add(outcome)

        penalty = self.config.timeout_penalty_ms
        scored = [
            (r.key, accumulators[r.key].statistics(penalty).score)
            for r in survivors
            if r.key in accumulators and accumulators[r.key].success > 0
        ]
        scored.sort(key=lambda item: item[1])
        keep = {key for key, _ in scored[:top_n]}

        retained = [r for r in survivors if r.key in keep]
        self._progress("Discovery ranking", 2, 2)
        logger.info("Kept top %d resolvers for full benchmark", len(retained))
        return retained

    async def run_benchmark(
        self,
        resolvers: list[ResolverTarget],
        domain_sets: DomainSets,
    ) -> list[ResolverProfile]:
        """
        Run every round and aggregate the outcomes per resolver.

        Args:
            resolvers: Targets to benchmark (interception flags already set)
            domain_sets: Warm, cold and TLD domains

        Returns:
            One ResolverProfile per resolver that produced any outcome, in
            input order
        """
        config = self.config
        tasks = build_tasks(resolvers, domain_sets, config.query_types, config.query_tld)
        logger.info(
            "%d queries across %d resolvers, %d rounds",
            len(tasks) * config.rounds, len(resolvers), config.rounds,
        )

        semaphore = asyncio.Semaphore(config.max_inflight)
        results: list[tuple[QueryTask, QueryOutcome]] = []

        for round_index in range(config.rounds):
            logger.info("Round %d/%d", round_index + 1, config.rounds)
            results.extend(await self.run_round(tasks, round_index, semaphore))
            self._progress(
                f"Round {round_index + 1}/{config.rounds}",
                round_index + 1,
                config.rounds,
            )

        return self.build_profiles(resolvers, results)

    def build_profiles(
        self,
        resolvers: list[ResolverTarget],
        results: list[tuple[QueryTask, QueryOutcome]],
    ) -> list[ResolverProfile]:
        """Reduce (task, outcome) pairs to per-resolver profiles."""
        per_resolver: dict[str, dict[SetName, SetAccumulator]] = {}
        for task, outcome in results:
            sets = per_resolver.setdefault(outcome.resolver, {})
            sets.setdefault(task.set_name, SetAccumulator()).add(outcome)

        penalty = self.config.timeout_penalty_ms
        profiles = []
        for resolver in resolvers:
            sets = per_resolver.get(resolver.key)
            if sets is None:
                continue

            warm = sets.get(SetName.WARM, SetAccumulator())
            cold = sets.get(SetName.COLD, SetAccumulator())
            tld = sets.get(SetName.TLD)

            warm_stats = warm.statistics(penalty)
            cold_stats = cold.statistics(penalty)
            tld_stats = None
            if self.config.query_tld and tld is not None and tld.total > 0:
                tld_stats = tld.statistics(penalty)

            total = sum(acc.total for acc in sets.values())
            successes = sum(acc.success for acc in sets.values())
            success_rate = (successes / total) * 100 if total > 0 else 0.0

            profiles.append(ResolverProfile(
                label=resolver.label,
                address=resolver.key,
                warm=warm_stats,
                cold=cold_stats,
                tld=tld_stats,
                overall_score=(warm_stats.score + cold_stats.score) / 2,
                success_rate=success_rate,
                intercepts_nxdomain=resolver.intercepts_nxdomain,
                uncertainty_ms=StatisticsEngine.compute_uncertainty(
                    warm.latencies + cold.latencies
                ),
            ))

        return profiles

    async def run(
        self,
        resolvers: list[ResolverTarget],
        domain_sets: DomainSets,
    ) -> list[RankedResolver]:
        """
        Full pipeline: discovery, characterization, benchmark, ranking.

        Discovery runs first so resolvers about to be dropped are never
        characterized.
        """
        targets = list(resolvers)
        if self.config.discover:
            targets = await self.run_discovery(targets, domain_sets.warm)
            if not targets:
                logger.warning("Discovery left no reachable resolvers")
                return []

        await self.run_characterization(targets)

        logger.info("Running benchmark...")
        profiles = await self.run_benchmark(targets, domain_sets)
        ranked = rank_resolvers(profiles)
        return detect_ties(ranked)
