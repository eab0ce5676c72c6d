"""Network testing modules."""

from .dns import DNSTester, DNSLookupResult, DomainResolution
from .http import HTTPTester, HTTPEndpointResult, TLSCheckResult, PublicIPResult, VPCCIDRResult

__all__ = [
    "DNSTester",
    "DNSLookupResult",
    "DomainResolution",
    "HTTPTester",
    "HTTPEndpointResult",
    "TLSCheckResult",
    "PublicIPResult",
    "VPCCIDRResult",
]
