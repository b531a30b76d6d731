"""
Core DNS query engine.

Sends one query over a dedicated UDP transport, waits for the matching
response and turns the exchange into a QueryOutcome. Datagrams that fail
validation (wrong transaction id, malformed bytes, a query instead of a
response) are treated as noise: the engine keeps listening without
re-sending until its receive budget or the deadline runs out.
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional

import dns.exception

from .codec import CodecError, DecodedResponse, build_query, parse_response
from .models import QueryOutcome, QueryTask, QueryType
from .transports import UDPTransport

logger = logging.getLogger(__name__)

# Receive attempts per query before giving up on stray datagrams
MAX_RECEIVE_ATTEMPTS = 3


@dataclass
class Exchange:
    """Raw result of one send/receive cycle."""
    response: Optional[DecodedResponse]
    latency_ms: float

    @property
    def answered(self) -> bool:
        return self.response is not None


def _elapsed_ms(start_ns: int) -> float:
    return (time.perf_counter_ns() - start_ns) / 1_000_000


async def exchange(
    address: tuple[str, int],
    query: bytes,
    timeout: float,
    expected_txid: int,
    max_attempts: int = MAX_RECEIVE_ATTEMPTS,
) -> Exchange:
    """
    Send a query and wait for a response carrying the expected txid.

    Args:
        address: Resolver (host, port)
        query: Serialized DNS query
        timeout: Overall deadline in seconds, measured from the send
        expected_txid: Transaction id the response must carry
        max_attempts: How many datagrams to inspect before giving up

    Returns:
        Exchange with the decoded response, or None if nothing valid
        arrived. Latency is the time of the valid receipt, the elapsed time
        on deadline/budget exhaustion, or the full timeout when the
        transport could not be set up at all.
    """
    host, port = address
    try:
        async with UDPTransport.for_host(host) as transport:
            start = time.perf_counter_ns()
            try:
                await transport.send(query, address)
            except OSError as e:
                logger.debug("Send to %s:%s failed: %s", host, port, e)
                return Exchange(response=None, latency_ms=timeout * 1000)

            for _ in range(max_attempts):
                remaining = timeout - _elapsed_ms(start) / 1000
                if remaining <= 0:
                    break

                try:
                    data = await transport.receive(remaining)
                except (dns.exception.Timeout, OSError):
                    break

                latency_ms = _elapsed_ms(start)
                try:
                    response = parse_response(data, expected_txid)
                except CodecError as e:
                    logger.debug("Discarding datagram from %s:%s: %s", host, port, e)
                    continue

                return Exchange(response=response, latency_ms=latency_ms)

            return Exchange(response=None, latency_ms=_elapsed_ms(start))

    except OSError as e:
        logger.debug("Could not open UDP transport for %s:%s: %s", host, port, e)
        return Exchange(response=None, latency_ms=timeout * 1000)


async def execute_query(
    address: tuple[str, int],
    query: bytes,
    timeout: float,
    expected_txid: int,
    domain: str,
    query_type: QueryType,
    resolver_key: Optional[str] = None,
) -> QueryOutcome:
    """
    Execute one DNS query and classify the result.

    success is True only for a validated NOERROR response; anything that
    never produced a validated response is a timeout.
    """
    resolver = resolver_key or f"{address[0]}:{address[1]}"
    result = await exchange(address, query, timeout, expected_txid)

    if not result.answered:
        return QueryOutcome.timed_out(resolver, domain, query_type, result.latency_ms)

    return QueryOutcome(
        resolver=resolver,
        domain=domain,
        query_type=query_type,
        rcode=result.response.rcode_text,
        latency_ms=result.latency_ms,
        success=result.response.is_noerror,
        timeout=False,
    )


class DNSQueryEngine:
    """
    Turns QueryTasks into QueryOutcomes.

    Encodes the query with a caller-supplied transaction id and runs it
    through execute_query(). Holds no sockets between calls.
    """

    def __init__(self, timeout: float = 2.0, use_dnssec: bool = False):
        """
        Initialize the query engine.

        Args:
            timeout: Per-query deadline in seconds
            use_dnssec: Whether to set the DNSSEC OK bit
        """
        self.timeout = timeout
        self.use_dnssec = use_dnssec

    async def query(
        self,
        task: QueryTask,
        txid: int,
        timeout: Optional[float] = None,
    ) -> QueryOutcome:
        """
        Execute a single query task.

        Args:
            task: What to query and where
            txid: Transaction id for this query
            timeout: Overrides the engine's deadline for this call

        An unencodable domain name short-circuits to a non-success,
        non-timeout outcome with zero latency.
        """
        resolver = task.resolver
        try:
            wire = build_query(task.domain, task.query_type, txid, self.use_dnssec)
        except CodecError as e:
            logger.debug("Skipping %s %s: %s", task.domain, task.query_type.value, e)
            return QueryOutcome(
                resolver=resolver.key,
                domain=task.domain,
                query_type=task.query_type,
                rcode=None,
                latency_ms=0.0,
                success=False,
                timeout=False,
            )

        return await execute_query(
            resolver.address,
            wire,
            self.timeout if timeout is None else timeout,
            txid,
            task.domain,
            task.query_type,
            resolver_key=resolver.key,
        )
