"""
DNS wire codec.

Builds minimal recursive queries and decodes responses, validating the
transaction id and message direction before anything else is trusted.
"""

from dataclasses import dataclass

import dns.exception
import dns.flags
import dns.message
import dns.rcode
import dns.rdatatype

from .models import QueryType

# Smallest possible DNS message: the fixed 12-byte header
HEADER_LENGTH = 12


class CodecError(ValueError):
    """Raised when a query cannot be encoded or a response cannot be trusted."""


@dataclass
class DecodedResponse:
    """Fields of a validated DNS response needed by the benchmark."""
    txid: int
    rcode: int
    rcode_text: str
    answer_count: int
    has_a_record: bool

    @property
    def is_noerror(self) -> bool:
        return self.rcode == dns.rcode.NOERROR


def build_query(
    domain: str,
    query_type: QueryType,
    txid: int,
    dnssec: bool = False,
) -> bytes:
    """
    Build a serialized DNS query.

    Args:
        domain: Name to query
        query_type: A or AAAA
        txid: 16-bit transaction id
        dnssec: Attach an EDNS OPT record with the DO bit set

    Returns:
        Wire-format query bytes with recursion desired

    Raises:
        CodecError: If the domain name cannot be encoded
    """
    rdtype = dns.rdatatype.from_text(query_type.value)
    try:
        message = dns.message.make_query(domain, rdtype, want_dnssec=dnssec)
    except (dns.exception.DNSException, UnicodeError) as e:
        raise CodecError(f"invalid domain name '{domain}': {e}") from e

    message.id = txid & 0xFFFF
    message.flags |= dns.flags.RD

    try:
        return message.to_wire()
    except dns.exception.DNSException as e:
        raise CodecError(f"failed to serialize query for '{domain}': {e}") from e


def parse_response(data: bytes, expected_txid: int) -> DecodedResponse:
    """
    Decode and validate a DNS response.

    Args:
        data: Raw datagram payload
        expected_txid: Transaction id of the query we sent

    Returns:
        DecodedResponse with rcode and answer summary

    Raises:
        CodecError: If the bytes are not a DNS message, the id does not
            match, or the message is a query rather than a response
    """
    if len(data) < HEADER_LENGTH:
        raise CodecError(f"malformed message: {len(data)} bytes is shorter than a header")

    try:
        message = dns.message.from_wire(data)
    except Exception as e:
        raise CodecError(f"malformed message: {e}") from e

    if message.id != expected_txid:
        raise CodecError(
            f"txid mismatch: expected {expected_txid}, got {message.id}"
        )

    if not message.flags & dns.flags.QR:
        raise CodecError("not a response: QR bit is clear")

    rcode = message.rcode()
    answer_count = sum(len(rrset) for rrset in message.answer)
    has_a_record = any(
        rrset.rdtype == dns.rdatatype.A and len(rrset) > 0
        for rrset in message.answer
    )

    return DecodedResponse(
        txid=message.id,
        rcode=rcode,
        rcode_text=dns.rcode.to_text(rcode),
        answer_count=answer_count,
        has_a_record=has_a_record,
    )
