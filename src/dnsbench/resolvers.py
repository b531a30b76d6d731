"""
Resolver targets.

Built-in profiles for popular public resolvers, plus parsing of
user-supplied addresses, resolver files and the system's resolv.conf.
"""

import ipaddress
import logging
import re
from pathlib import Path
from typing import Optional, Union

from .models import DNS_PORT, ResolverTarget

logger = logging.getLogger(__name__)

RESOLV_CONF = "/etc/resolv.conf"

_BRACKETED = re.compile(r"^\[(?P<host>[^\]]+)\](?::(?P<port>\d+))?$")


# Pre-configured resolver profiles
RESOLVERS: dict[str, ResolverTarget] = {
    "cloudflare": ResolverTarget(label="Cloudflare", host="1.1.1.1"),
    "cloudflare-secondary": ResolverTarget(label="Cloudflare Secondary", host="1.0.0.1"),
    "google": ResolverTarget(label="Google", host="8.8.8.8"),
    "google-secondary": ResolverTarget(label="Google Secondary", host="8.8.4.4"),
    "quad9": ResolverTarget(label="Quad9", host="9.9.9.9"),
    "quad9-unsecured": ResolverTarget(label="Quad9 Unsecured", host="9.9.9.10"),
    "opendns": ResolverTarget(label="OpenDNS", host="208.67.222.222"),
    "adguard": ResolverTarget(label="AdGuard", host="94.140.14.14"),
    "controld": ResolverTarget(label="Control D", host="76.76.2.0"),
    "cleanbrowsing": ResolverTarget(label="CleanBrowsing Security", host="185.228.168.9"),
}

# Default resolvers for quick comparison
DEFAULT_RESOLVERS = ["cloudflare", "google", "quad9", "opendns"]


def _copy(target: ResolverTarget) -> ResolverTarget:
    # Targets are mutated by characterization; never hand out the shared ones
    return ResolverTarget(label=target.label, host=target.host, port=target.port)


def get_resolver(name: str) -> ResolverTarget:
    """Get a built-in resolver by name (case-insensitive)."""
    key = name.lower()
    if key in RESOLVERS:
        return _copy(RESOLVERS[key])
    raise ValueError(f"Unknown resolver: {name}. Available: {list(RESOLVERS.keys())}")


def list_resolvers() -> list[str]:
    """List all built-in resolver names."""
    return list(RESOLVERS.keys())


def default_resolvers() -> list[ResolverTarget]:
    """Fresh copies of the default resolver set."""
    return [get_resolver(name) for name in DEFAULT_RESOLVERS]


def _parse_port(text: str, original: str) -> int:
    port = int(text)
    if not 0 < port < 65536:
        raise ValueError(f"invalid port in resolver address '{original}'")
    return port


def _parse_ip(text: str, original: str) -> str:
    try:
        return str(ipaddress.ip_address(text))
    except ValueError:
        raise ValueError(f"invalid IP address '{original}'") from None


def parse_resolver(text: str, label: Optional[str] = None) -> ResolverTarget:
    """
    Parse a resolver address into a ResolverTarget.

    Supported forms:
        1.1.1.1                 IPv4, port 53
        1.1.1.1:5353            IPv4 with port
        2606:4700::1111         bare IPv6, port 53
        [2606:4700::1111]:53    bracketed IPv6, optional port
        Cloudflare=1.1.1.1      any of the above with a display label

    Raises:
        ValueError: If the address cannot be parsed
    """
    original = text
    text = text.strip()
    if "=" in text:
        name, _, text = text.partition("=")
        label = label or name.strip() or None
        text = text.strip()

    if not text:
        raise ValueError(f"empty resolver address '{original}'")

    port = DNS_PORT
    bracketed = _BRACKETED.match(text)
    if bracketed:
        host = _parse_ip(bracketed.group("host"), original)
        if bracketed.group("port"):
            port = _parse_port(bracketed.group("port"), original)
    elif text.count(":") > 1:
        host = _parse_ip(text, original)
    elif ":" in text:
        host_text, _, port_text = text.rpartition(":")
        if not port_text.isdigit():
            raise ValueError(f"invalid port in resolver address '{original}'")
        host = _parse_ip(host_text, original)
        port = _parse_port(port_text, original)
    else:
        host = _parse_ip(text, original)

    return ResolverTarget(label=label or host, host=host, port=port)


def read_resolver_file(path: Union[str, Path]) -> list[ResolverTarget]:
    """
    Read resolver addresses from a file, one per line.

    Blank lines and lines starting with '#' are skipped.

    Raises:
        ValueError: If the file cannot be read or a line is not an address
    """
    try:
        with open(path, "r") as f:
            lines = f.readlines()
    except OSError as e:
        raise ValueError(f"failed to read resolver file '{path}': {e}") from e

    resolvers = []
    for line in lines:
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        resolvers.append(parse_resolver(stripped))
    return resolvers


def system_resolvers(path: Union[str, Path] = RESOLV_CONF) -> list[ResolverTarget]:
    """
    Resolvers from the system's resolv.conf.

    Returns an empty list if the file cannot be read; unparsable
    nameserver lines are skipped.
    """
    try:
        with open(path, "r") as f:
            lines = f.readlines()
    except OSError:
        return []

    resolvers = []
    for line in lines:
        parts = line.split()
        if len(parts) < 2 or parts[0] != "nameserver":
            continue
        # Strip an IPv6 zone index (fe80::1%eth0)
        address = parts[1].split("%", 1)[0]
        try:
            resolvers.append(parse_resolver(address))
        except ValueError as e:
            logger.debug("Skipping nameserver line %r: %s", line.strip(), e)
    return resolvers
