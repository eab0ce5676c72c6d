"""DNS testing module for deployed domains."""

import time
from typing import List, Optional
from dataclasses import dataclass, field
import dns.resolver
import dns.exception

from ..utils import get_logger

logger = get_logger(__name__)


@dataclass
class DNSLookupResult:
    """Result of a DNS lookup."""
    query: str
    query_type: str
    success: bool
    answers: List[str] = field(default_factory=list)
    response_time_ms: Optional[float] = None
    error: Optional[str] = None
    nameserver: Optional[str] = None


@dataclass
class DomainResolution:
    """A and CNAME records for one domain."""
    domain: str
    a_lookup: DNSLookupResult
    cname_lookup: Optional[DNSLookupResult] = None

    @property
    def resolved(self) -> bool:
        return self.a_lookup.success and bool(self.a_lookup.answers)

    @property
    def has_cname(self) -> bool:
        return bool(self.cname_lookup and self.cname_lookup.success
                    and self.cname_lookup.answers)


class DNSTester:
    """
    Tests DNS resolution of public domains.
    """

    def __init__(self, timeout: float = 5.0, nameserver: Optional[str] = None):
        self.timeout = timeout
        self.nameserver = nameserver

    def _resolver(self, nameserver: Optional[str] = None) -> dns.resolver.Resolver:
        resolver = dns.resolver.Resolver()
        resolver.timeout = self.timeout
        resolver.lifetime = self.timeout

        nameserver = nameserver or self.nameserver
        if nameserver:
            resolver.nameservers = [nameserver]

        return resolver

    def forward_lookup(
        self,
        hostname: str,
        record_type: str = 'A',
        nameserver: Optional[str] = None
    ) -> DNSLookupResult:
        """
        Perform a forward DNS lookup.

        Args:
            hostname: Hostname to resolve
            record_type: DNS record type (A, AAAA, CNAME, etc.)
            nameserver: Optional specific nameserver to use

        Returns:
            DNSLookupResult
        """
        logger.info(f"Forward DNS lookup: {hostname} ({record_type})")

        result = DNSLookupResult(
            query=hostname,
            query_type=record_type,
            success=False,
            nameserver=nameserver or self.nameserver
        )

        try:
            resolver = self._resolver(nameserver)

            start = time.perf_counter()
            answers = resolver.resolve(hostname, record_type)
            elapsed = (time.perf_counter() - start) * 1000

            result.success = True
            result.response_time_ms = elapsed
            result.answers = [str(rdata).rstrip('.') for rdata in answers]

            logger.info(f"DNS resolved: {hostname} -> {result.answers}")

        except dns.resolver.NXDOMAIN:
            result.error = "Domain does not exist (NXDOMAIN)"
            logger.warning(f"DNS NXDOMAIN: {hostname}")
        except dns.resolver.NoAnswer:
            result.error = f"No {record_type} record found"
            logger.info(f"DNS no {record_type} answer: {hostname}")
        except dns.resolver.NoNameservers:
            result.error = "No nameservers available"
            logger.error(f"DNS no nameservers for: {hostname}")
        except dns.exception.Timeout:
            result.error = "DNS query timeout"
            logger.warning(f"DNS timeout: {hostname}")
        except dns.exception.DNSException as e:
            result.error = str(e)
            logger.error(f"DNS error: {hostname} - {e}")

        return result

    def resolve_domain(self, domain: str) -> DomainResolution:
        """
        Resolve A records and, when they exist, look for CNAME records.

        Returns:
            DomainResolution
        """
        resolution = DomainResolution(
            domain=domain,
            a_lookup=self.forward_lookup(domain, 'A')
        )

        if resolution.resolved:
            resolution.cname_lookup = self.forward_lookup(domain, 'CNAME')

        return resolution
