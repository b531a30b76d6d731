"""
NXDOMAIN interception detection.

Asks each resolver for a name under the reserved .invalid TLD. An honest
resolver answers NXDOMAIN (or nothing at all); a resolver that returns
NOERROR with an A record has fabricated an answer for a name that cannot
exist.
"""

import asyncio
import logging
import random
from typing import Optional

from .codec import CodecError, build_query
from .models import CharacterizationResult, QueryType, ResolverTarget
from .query_engine import exchange
from .workload import NXDOMAIN_PROBE_DOMAIN

logger = logging.getLogger(__name__)


async def probe_nxdomain_interception(
    address: tuple[str, int],
    timeout: float,
    domain: str = NXDOMAIN_PROBE_DOMAIN,
    rng: Optional[random.Random] = None,
) -> bool:
    """
    Probe one resolver for NXDOMAIN interception.

    Args:
        address: Resolver (host, port)
        timeout: Deadline in seconds
        domain: Name guaranteed not to exist
        rng: Generator for the transaction id

    Returns:
        True if the resolver answered NOERROR with at least one A record
    """
    txid = (rng or random).getrandbits(16)
    try:
        wire = build_query(domain, QueryType.A, txid, dnssec=False)
    except CodecError as e:
        logger.warning("Cannot build NXDOMAIN probe for %s: %s", domain, e)
        return False

    result = await exchange(address, wire, timeout, txid, max_attempts=1)
    if not result.answered:
        return False
    return result.response.is_noerror and result.response.has_a_record


async def characterize_resolvers(
    resolvers: list[ResolverTarget],
    timeout: float,
    concurrency: int = 32,
    domain: str = NXDOMAIN_PROBE_DOMAIN,
) -> list[CharacterizationResult]:
    """
    Probe every resolver once and record the verdict on each target.

    Probes run concurrently under a shared limit. A probe whose task fails
    outright is logged and leaves the target's flag untouched.

    Returns:
        One CharacterizationResult per successfully probed resolver
    """
    semaphore = asyncio.Semaphore(concurrency)

    async def limited_probe(resolver: ResolverTarget) -> bool:
        async with semaphore:
            return await probe_nxdomain_interception(resolver.address, timeout, domain)

    verdicts = await asyncio.gather(
        *(limited_probe(r) for r in resolvers),
        return_exceptions=True,
    )

    results = []
    for resolver, verdict in zip(resolvers, verdicts):
        if isinstance(verdict, BaseException):
            logger.warning("Characterization of %s failed: %r", resolver.key, verdict)
            continue

        resolver.intercepts_nxdomain = verdict
        status = "INTERCEPTS NXDOMAIN" if verdict else "OK"
        logger.info("  %s (%s): %s", resolver.label, resolver.key, status)
        results.append(CharacterizationResult(
            label=resolver.label,
            address=resolver.key,
            intercepts_nxdomain=verdict,
        ))

    return results
