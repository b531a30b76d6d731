"""
Workload definition for DNS benchmarking.

Holds the three named domain sets:
- warm: popular names most resolvers already have cached
- cold: real but obscure names that force uncached resolution
- tld: one real name per top-level domain, for authoritative diversity

and expands them into the full list of query tasks.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional, Union

from .models import QueryTask, QueryType, ResolverTarget, SetName


# Popular domains likely to be cached by any busy resolver
DEFAULT_WARM_DOMAINS = [
    "google.com",
    "youtube.com",
    "facebook.com",
    "amazon.com",
    "wikipedia.org",
    "twitter.com",
    "reddit.com",
    "netflix.com",
    "microsoft.com",
    "apple.com",
]

# Real, resolvable domains unlikely to be in a resolver's cache. They must
# resolve, otherwise we would be measuring negative caching instead.
DEFAULT_COLD_DOMAINS = [
    # Government and institutional
    "archives.gov",
    "usgs.gov",
    "noaa.gov",
    "energy.gov",
    "census.gov",
    "si.edu",
    "caltech.edu",
    "mit.edu",
    "stanford.edu",
    "cornell.edu",
    # International research
    "cern.ch",
    "csiro.au",
    "keio.ac.jp",
    "ethz.ch",
    "mpg.de",
    "cnrs.fr",
    "nrc.ca",
    "anu.edu.au",
    "cam.ac.uk",
    "tudelft.nl",
    # Country-code variety
    "ibge.gov.br",
    "kb.se",
    "onb.ac.at",
    "nationaalarchief.nl",
    "riksarkivet.no",
    "arkisto.fi",
    "nla.gov.au",
    "ndl.go.jp",
    "snu.ac.kr",
    "natlib.govt.nz",
    # Less common gTLDs
    "pkg.dev",
    "fonts.google.com",
    "crates.io",
    "httpbin.org",
    "lobste.rs",
    "arxiv.org",
    "jstor.org",
    "archive.org",
    "gutenberg.org",
    "openlibrary.org",
    # Regional broadcasters
    "rtve.es",
    "yle.fi",
    "dr.dk",
    "nrk.no",
    "svt.se",
    "rtp.pt",
    "rte.ie",
    "srf.ch",
    "orf.at",
    "vrt.be",
]

# One real domain per TLD
DEFAULT_TLD_DOMAINS = [
    # Generic TLDs
    "icann.org",
    "iana.org",
    "ietf.org",
    "example.net",
    "verisign.com",
    "pkg.dev",
    "web.app",
    "dart.dev",
    "nist.gov",
    "loc.gov",
    "mit.edu",
    # European ccTLDs
    "ox.ac.uk",
    "tu-berlin.de",
    "inria.fr",
    "uva.nl",
    "kth.se",
    "lu.ch",
    "tuwien.at",
    "kuleuven.be",
    "tcd.ie",
    "ulisboa.pt",
    "uio.no",
    "oulu.fi",
    "ku.dk",
    # Asia-Pacific ccTLDs
    "keio.ac.jp",
    "snu.ac.kr",
    "iitb.ac.in",
    "uq.edu.au",
    "auckland.ac.nz",
    # Americas and Africa
    "ubc.ca",
    "unam.mx",
    "usp.br",
    "uct.ac.za",
]

# RFC 2606 reserves .invalid, so this name can never legitimately resolve
NXDOMAIN_PROBE_DOMAIN = "dns-benchmark-nxdomain-probe.invalid"


def read_domain_file(path: Union[str, Path]) -> list[str]:
    """
    Read domains from a file, one per line.

    Blank lines and lines starting with '#' are skipped.

    Raises:
        ValueError: If the file cannot be read
    """
    try:
        with open(path, "r") as f:
            return [
                line.strip()
                for line in f
                if line.strip() and not line.strip().startswith("#")
            ]
    except OSError as e:
        raise ValueError(f"failed to read domain file '{path}': {e}") from e


@dataclass
class DomainSets:
    """The warm, cold and TLD domain lists for one benchmark."""
    warm: list[str] = field(default_factory=lambda: list(DEFAULT_WARM_DOMAINS))
    cold: list[str] = field(default_factory=lambda: list(DEFAULT_COLD_DOMAINS))
    tld: list[str] = field(default_factory=lambda: list(DEFAULT_TLD_DOMAINS))

    @classmethod
    def load(
        cls,
        warm_path: Optional[Union[str, Path]] = None,
        cold_path: Optional[Union[str, Path]] = None,
        tld_path: Optional[Union[str, Path]] = None,
    ) -> "DomainSets":
        """Load each set from a file when given, otherwise use the defaults."""
        sets = cls()
        if warm_path:
            sets.warm = read_domain_file(warm_path)
        if cold_path:
            sets.cold = read_domain_file(cold_path)
        if tld_path:
            sets.tld = read_domain_file(tld_path)
        return sets

    def enabled(self, query_tld: bool) -> Iterator[tuple[SetName, list[str]]]:
        """Yield (set name, domains) for every set that should be queried."""
        yield SetName.WARM, self.warm
        yield SetName.COLD, self.cold
        if query_tld:
            yield SetName.TLD, self.tld


def build_tasks(
    resolvers: list[ResolverTarget],
    domain_sets: DomainSets,
    query_types: list[QueryType],
    query_tld: bool = True,
) -> list[QueryTask]:
    """
    Expand resolvers x domains x query types x sets into query tasks.

    The order is deterministic; the runner shuffles a copy each round.
    """
    tasks = []
    for resolver in resolvers:
        for set_name, domains in domain_sets.enabled(query_tld):
            for domain in domains:
                for query_type in query_types:
                    tasks.append(QueryTask(
                        resolver=resolver,
                        domain=domain,
                        query_type=query_type,
                        set_name=set_name,
                    ))
    return tasks
