"""HTTP endpoint testing for deployed APIs."""

import ipaddress
import json
import re
import time
import warnings
from typing import Any, Dict, Optional
from dataclasses import dataclass, field
import requests
from requests.exceptions import RequestException
from urllib3.exceptions import InsecureRequestWarning

from ..utils import get_logger

logger = get_logger(__name__)

NO_BODY = object()


@dataclass
class HTTPEndpointResult:
    """Result of an HTTP endpoint test."""
    url: str
    method: str
    is_accessible: bool
    status_code: Optional[int] = None
    response_time_ms: Optional[float] = None
    content_type: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)
    text: str = ""
    location: Optional[str] = None
    title: Optional[str] = None
    error: Optional[str] = None
    ssl_error: bool = False

    @property
    def ok(self) -> bool:
        return self.status_code is not None and 200 <= self.status_code < 300

    def body_preview(self, limit: int = 200) -> str:
        """First ``limit`` characters of the body, marked when truncated."""
        if len(self.text) <= limit:
            return self.text
        return self.text[:limit] + "..."

    def json(self) -> Any:
        """Decode the body as JSON. Raises ValueError if it is not JSON."""
        return json.loads(self.text)


@dataclass
class TLSCheckResult:
    """Result of a TLS reachability test."""
    hostname: str
    port: int
    verified: bool = False
    reachable: bool = False
    status_code: Optional[int] = None
    error: Optional[str] = None


@dataclass
class PublicIPResult:
    """Result of a public IP lookup."""
    source_url: str
    ip_address: Optional[str] = None
    status_code: Optional[int] = None
    error: Optional[str] = None


@dataclass
class VPCCIDRResult:
    """Result of a VPC CIDR lookup through instance metadata."""
    metadata_url: str
    mac: Optional[str] = None
    cidr_block: Optional[str] = None
    error: Optional[str] = None


class HTTPTester:
    """
    Issues single HTTP requests against API endpoints.
    """

    def __init__(self, timeout: float = 10.0):
        self.timeout = timeout

    def request(
        self,
        url: str,
        method: str = "GET",
        headers: Optional[Dict[str, str]] = None,
        json_body: Any = NO_BODY,
        allow_redirects: bool = True,
        verify: bool = True,
        timeout: Optional[float] = None
    ) -> HTTPEndpointResult:
        """
        Send one HTTP request and record the response.

        Transport errors are stored on the result, never raised.

        Args:
            url: Full URL
            method: HTTP method
            headers: Optional request headers
            json_body: Optional JSON body (``None`` is sent as JSON null)
            allow_redirects: Follow redirects
            verify: Verify TLS certificates
            timeout: Override the tester timeout

        Returns:
            HTTPEndpointResult
        """
        method = method.upper()
        logger.info(f"Testing HTTP endpoint: {method} {url}")

        result = HTTPEndpointResult(url=url, method=method, is_accessible=False)

        kwargs = {
            'headers': headers or {},
            'timeout': timeout or self.timeout,
            'allow_redirects': allow_redirects,
            'verify': verify,
        }
        if json_body is not NO_BODY:
            kwargs['json'] = json_body

        try:
            start = time.perf_counter()
            response = requests.request(method, url, **kwargs)
            elapsed = (time.perf_counter() - start) * 1000

            result.is_accessible = True
            result.status_code = response.status_code
            result.response_time_ms = elapsed
            result.headers = dict(response.headers)
            result.content_type = response.headers.get('Content-Type')
            result.location = response.headers.get('Location')
            result.text = response.text

            # Error pages from load balancers are usually HTML
            if 'text/html' in (result.content_type or ''):
                title_match = re.search(r'<title>(.*?)</title>', result.text, re.IGNORECASE)
                if title_match:
                    result.title = title_match.group(1).strip()

            logger.info(f"HTTP {result.status_code}: {url} ({elapsed:.1f}ms)")

        except requests.exceptions.SSLError as e:
            result.error = f"SSL error: {e}"
            result.ssl_error = True
            logger.warning(f"HTTP SSL error: {url}")
        except requests.exceptions.Timeout:
            result.error = "Connection timeout"
            logger.warning(f"HTTP timeout: {url}")
        except requests.exceptions.ConnectionError as e:
            result.error = f"Connection error: {e}"
            logger.warning(f"HTTP connection error: {url}")
        except RequestException as e:
            result.error = f"Request error: {e}"
            logger.error(f"HTTP request error: {url} - {e}")

        return result

    def check_tls(
        self,
        hostname: str,
        path: str = "/",
        port: int = 443
    ) -> TLSCheckResult:
        """
        Check that a host answers over HTTPS.

        A verified connection is tried first. If that fails with a certificate
        error, the request is repeated without verification so that a bad
        certificate can be told apart from an unreachable host.

        Returns:
            TLSCheckResult
        """
        port_str = "" if port == 443 else f":{port}"
        url = f"https://{hostname}{port_str}{path}"

        result = TLSCheckResult(hostname=hostname, port=port)

        verified = self.request(url, verify=True)
        if verified.is_accessible:
            result.verified = True
            result.reachable = True
            result.status_code = verified.status_code
            return result

        result.error = verified.error

        if verified.ssl_error:
            with warnings.catch_warnings():
                warnings.simplefilter("ignore", InsecureRequestWarning)
                unverified = self.request(url, verify=False)
            if unverified.is_accessible:
                result.reachable = True
                result.status_code = unverified.status_code
                logger.warning(f"TLS certificate for {hostname} failed verification")

        return result

    def fetch_public_ip(
        self,
        url: str,
        json_key: Optional[str] = None,
        timeout: Optional[float] = None
    ) -> PublicIPResult:
        """
        Ask an IP echo service (or instance metadata) for the public address.

        Args:
            url: Service URL
            json_key: Key holding the address when the service returns JSON
            timeout: Override the tester timeout

        Returns:
            PublicIPResult
        """
        result = PublicIPResult(source_url=url)

        response = self.request(url, timeout=timeout)
        result.status_code = response.status_code

        if not response.is_accessible:
            result.error = response.error
            return result

        if not response.ok:
            result.error = f"HTTP {response.status_code}"
            return result

        try:
            if json_key:
                candidate = str(response.json()[json_key])
            else:
                candidate = response.text.strip()
            result.ip_address = str(ipaddress.ip_address(candidate))
        except (ValueError, KeyError, TypeError) as e:
            result.error = f"Unexpected response: {e}"
            logger.warning(f"Could not read public IP from {url}: {e}")

        return result

    def fetch_vpc_cidr(
        self,
        metadata_url: str,
        timeout: Optional[float] = None
    ) -> VPCCIDRResult:
        """
        Read the VPC IPv4 CIDR block of the first network interface.

        Args:
            metadata_url: Instance metadata URL listing interface MACs
            timeout: Override the tester timeout

        Returns:
            VPCCIDRResult
        """
        base = metadata_url.rstrip('/') + '/'
        result = VPCCIDRResult(metadata_url=base)

        macs = self.request(base, timeout=timeout)
        if not macs.is_accessible:
            result.error = macs.error
            return result
        if not macs.ok:
            result.error = f"HTTP {macs.status_code} listing interfaces"
            return result

        entries = [line.strip().rstrip('/') for line in macs.text.splitlines() if line.strip()]
        if not entries:
            result.error = "No network interfaces listed"
            return result
        result.mac = entries[0]

        cidr = self.request(f"{base}{result.mac}/vpc-ipv4-cidr-block", timeout=timeout)
        if not cidr.is_accessible:
            result.error = cidr.error
            return result
        if not cidr.ok:
            result.error = f"HTTP {cidr.status_code} reading CIDR block"
            return result

        candidate = cidr.text.strip()
        try:
            result.cidr_block = str(ipaddress.ip_network(candidate, strict=False))
        except ValueError as e:
            result.error = f"Unexpected response: {e}"
            logger.warning(f"Could not read VPC CIDR from {base}: {e}")

        return result
