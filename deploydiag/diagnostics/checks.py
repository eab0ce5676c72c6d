"""
Check factories.

Each factory binds a collaborator (DNS resolver, HTTP client, configuration
reader, package inspector) and a target into a ``Check`` whose probe turns
the collaborator's result into a ``Result``. The mapping from raw outcome to
SUCCESS / FAILURE / INCONCLUSIVE lives here, per probe, and never in the
runner.
"""

from dataclasses import asdict, replace
from datetime import datetime, timezone
from typing import (
    Any, Callable, Collection, Dict, List, Mapping, NamedTuple, Optional, Pattern, Sequence,
    Tuple, Union
)

from ..local import EnvironmentTester, PackageTester
from ..local.env import EMAIL_PATTERN, SENDGRID_KEY_MIN_LENGTH, SENDGRID_KEY_PREFIX
from ..network import DNSTester, HTTPTester, HTTPEndpointResult
from ..network.http import NO_BODY
from .runner import Check, CheckStatus, Result


def _http_detail(response: HTTPEndpointResult, preview: int = 200) -> Dict[str, Any]:
    """Reduce an HTTP result to the fields worth showing in a report."""
    detail = {
        'url': response.url,
        'method': response.method,
        'status_code': response.status_code,
        'response_time_ms': response.response_time_ms,
        'headers': response.headers,
        'body': response.body_preview(preview),
    }
    if response.location:
        detail['location'] = response.location
    if response.title:
        detail['title'] = response.title
    if response.error:
        detail['error'] = response.error
    return detail


# DNS

def dns_check(
    domain: str,
    tester: Optional[DNSTester] = None,
    require_cname: bool = False
) -> Check:
    """A records must resolve; a missing CNAME only matters when required."""
    tester = tester or DNSTester()

    def probe() -> Result:
        resolution = tester.resolve_domain(domain)
        detail = {
            'domain': domain,
            'a_records': resolution.a_lookup.answers,
            'cname_records': resolution.cname_lookup.answers if resolution.has_cname else [],
            'response_time_ms': resolution.a_lookup.response_time_ms,
        }

        if not resolution.resolved:
            detail['error'] = resolution.a_lookup.error
            return Result.failure(
                f"DNS resolution failed: {resolution.a_lookup.error}",
                detail,
                recommendations=["Check the domain configuration at the DNS provider"]
            )

        addresses = ", ".join(resolution.a_lookup.answers)
        if resolution.has_cname:
            return Result.success(
                f"Resolved to {addresses} via {', '.join(detail['cname_records'])}", detail
            )

        if require_cname:
            return Result.inconclusive(
                f"Resolved to {addresses} but no CNAME record found", detail,
                recommendations=["Add the CNAME record pointing at the application host"]
            )

        return Result.success(f"Resolved to {addresses} (no CNAME records)", detail)

    return Check(name=f"DNS {domain}", probe=probe,
                 description=f"Resolve A and CNAME records for {domain}")


# HTTP

class BodyPattern(NamedTuple):
    """Literal text that, when found in a response body, decides the result."""
    text: str
    status: CheckStatus
    message: str
    recommendations: Tuple[str, ...] = ()


def http_check(
    name: str,
    url: str,
    tester: Optional[HTTPTester] = None,
    method: str = "GET",
    headers: Optional[Dict[str, str]] = None,
    json_body: Any = NO_BODY,
    expected_statuses: Optional[Collection[int]] = None,
    inconclusive_statuses: Collection[int] = (),
    expect_json: bool = False,
    json_check: Optional[Callable[[Any], Optional[Result]]] = None,
    location_contains: Optional[str] = None,
    body_patterns: Sequence[BodyPattern] = (),
    status_advice: Optional[Mapping[int, List[str]]] = None,
    allow_redirects: bool = True,
    body_preview: int = 200,
    recommendations: Optional[List[str]] = None
) -> Check:
    """
    Build a check around one HTTP request.

    Args:
        name: Check name
        url: Full URL to request
        tester: HTTP client wrapper
        method: HTTP method
        headers: Request headers
        json_body: JSON body to send
        expected_statuses: Status codes meaning success (default: any 2xx)
        inconclusive_statuses: Status codes reported as inconclusive
        expect_json: A successful response must carry a JSON body
        json_check: Called with the decoded body of a successful response;
            a returned Result replaces the success (implies expect_json)
        location_contains: A successful response must redirect to a
            Location containing this text
        body_patterns: Checked in order against the body of any response;
            the first pattern found decides the result
        status_advice: Recommendations for specific status codes, used
            instead of ``recommendations``
        allow_redirects: Follow redirects
        body_preview: Number of body characters kept in the detail
        recommendations: Advice attached to non-successful results

    Returns:
        Check
    """
    tester = tester or HTTPTester()
    advice = list(recommendations or [])
    status_advice = status_advice or {}

    def probe() -> Result:
        response = tester.request(
            url,
            method=method,
            headers=headers,
            json_body=json_body,
            allow_redirects=allow_redirects
        )
        detail = _http_detail(response, body_preview)

        if not response.is_accessible:
            return Result.failure(f"Network error: {response.error}", detail, advice)

        status = response.status_code

        for pattern in body_patterns:
            if pattern.text in response.text:
                detail['matched'] = pattern.text
                return Result(pattern.status, detail=detail, message=pattern.message,
                              recommendations=list(pattern.recommendations))

        if expected_statuses is None:
            expected = response.ok
        else:
            expected = status in expected_statuses

        if expected:
            if expect_json or json_check:
                try:
                    detail['json'] = response.json()
                except ValueError:
                    return Result.failure(f"HTTP {status} but body is not JSON", detail, advice)

            if json_check:
                verdict = json_check(detail['json'])
                if verdict is not None:
                    if verdict.detail is None:
                        verdict = replace(verdict, detail=detail)
                    return verdict

            if location_contains is not None:
                if not response.location or location_contains not in response.location:
                    return Result.failure(
                        f"HTTP {status} redirects to {response.location or 'nowhere'}, "
                        f"expected {location_contains}",
                        detail, advice
                    )
                return Result.success(f"HTTP {status} -> {response.location}", detail)

            return Result.success(f"HTTP {status}", detail)

        status_recommendations = status_advice.get(status, advice)
        if status in inconclusive_statuses:
            return Result.inconclusive(f"HTTP {status}", detail, status_recommendations)

        return Result.failure(f"HTTP {status}", detail, status_recommendations)

    return Check(name=name, probe=probe, description=f"{method.upper()} {url}")


def fresh_timestamp(
    max_age_seconds: float = 300.0,
    key: str = "timestamp",
    now: Optional[Callable[[], datetime]] = None
) -> Callable[[Any], Optional[Result]]:
    """
    Build a ``json_check`` requiring ``body[key]`` to be a recent ISO timestamp.

    A stale or missing timestamp is inconclusive: the response may come from
    a cache or an old application version.
    """
    now = now or (lambda: datetime.now(timezone.utc))

    def check(body: Any) -> Optional[Result]:
        raw = body.get(key) if isinstance(body, dict) else None
        if not isinstance(raw, str):
            return Result.inconclusive(f"Response has no {key}")

        try:
            # fromisoformat does not take the "Z" suffix before Python 3.11
            text = raw[:-1] + '+00:00' if raw.endswith('Z') else raw
            stamp = datetime.fromisoformat(text)
        except ValueError:
            return Result.inconclusive(f"Unreadable {key}: {raw}")
        if stamp.tzinfo is None:
            stamp = stamp.replace(tzinfo=timezone.utc)

        age = abs((now() - stamp).total_seconds())
        if age > max_age_seconds:
            return Result.inconclusive(
                f"Server {key} {raw} is {age / 60:.0f} minutes old",
                recommendations=[
                    "The response might be cached or an old application version is still running",
                    "Deploy a new application version and restart the app servers",
                ]
            )
        return None

    return check


def cors_preflight_check(
    name: str,
    url: str,
    origin: str,
    tester: Optional[HTTPTester] = None,
    request_method: str = "POST",
    request_headers: str = "Content-Type"
) -> Check:
    """Send a CORS preflight and require the origin to be allowed."""
    tester = tester or HTTPTester()

    def probe() -> Result:
        response = tester.request(
            url,
            method="OPTIONS",
            headers={
                'Origin': origin,
                'Access-Control-Request-Method': request_method,
                'Access-Control-Request-Headers': request_headers,
            },
            allow_redirects=False
        )

        if not response.is_accessible:
            return Result.failure(
                f"Preflight failed: {response.error}",
                _http_detail(response),
                recommendations=["Preflight OPTIONS requests not handled"]
            )

        lowered = {k.lower(): v for k, v in response.headers.items()}
        detail = {
            'url': url,
            'status_code': response.status_code,
            'Access-Control-Allow-Origin': lowered.get('access-control-allow-origin'),
            'Access-Control-Allow-Methods': lowered.get('access-control-allow-methods'),
            'Access-Control-Allow-Headers': lowered.get('access-control-allow-headers'),
        }

        allowed = detail['Access-Control-Allow-Origin']
        if allowed in (origin, '*'):
            return Result.success(f"Origin {origin} allowed (HTTP {response.status_code})", detail)

        return Result.inconclusive(
            f"HTTP {response.status_code} without Access-Control-Allow-Origin for {origin}",
            detail,
            recommendations=[
                "CORS headers missing for POST requests",
                f"Add {origin} to the allowed origins of the API",
            ]
        )

    return Check(name=name, probe=probe, description=f"OPTIONS {url} from {origin}")


def tls_check(
    hostname: str,
    path: str = "/api/health",
    port: int = 443,
    tester: Optional[HTTPTester] = None
) -> Check:
    """Any HTTP status over a verified TLS connection counts as success."""
    tester = tester or HTTPTester()

    def probe() -> Result:
        tls = tester.check_tls(hostname, path=path, port=port)
        detail = asdict(tls)

        if tls.verified:
            return Result.success(f"TLS OK (HTTP {tls.status_code})", detail)

        if tls.reachable:
            return Result.inconclusive(
                f"Reachable only without certificate verification (HTTP {tls.status_code})",
                detail,
                recommendations=["Check the certificate chain and hostname of the TLS certificate"]
            )

        return Result.failure(
            f"TLS connection failed: {tls.error}", detail,
            recommendations=["Check that the load balancer listens on HTTPS"]
        )

    return Check(name=f"TLS {hostname}", probe=probe,
                 description=f"HTTPS {hostname}:{port}{path}")


def public_ip_check(
    name: str,
    url: str,
    json_key: Optional[str] = None,
    tester: Optional[HTTPTester] = None,
    timeout: Optional[float] = None
) -> Check:
    """The source must answer with a parseable IP address."""
    tester = tester or HTTPTester()

    def probe() -> Result:
        lookup = tester.fetch_public_ip(url, json_key=json_key, timeout=timeout)
        detail = asdict(lookup)

        if lookup.ip_address:
            detail['allowlist_entry'] = f"{lookup.ip_address}/32"
            return Result.success(f"Public IP {lookup.ip_address}", detail)

        return Result.failure(f"Could not get IP from {name}: {lookup.error}", detail)

    return Check(name=name, probe=probe, description=f"Public IP from {url}")


def vpc_cidr_check(
    name: str,
    metadata_url: str,
    tester: Optional[HTTPTester] = None,
    timeout: Optional[float] = None
) -> Check:
    """Instance metadata must report the VPC CIDR block of the first interface."""
    tester = tester or HTTPTester()

    def probe() -> Result:
        lookup = tester.fetch_vpc_cidr(metadata_url, timeout=timeout)
        detail = asdict(lookup)

        if lookup.cidr_block:
            detail['allowlist_entry'] = lookup.cidr_block
            return Result.success(f"VPC CIDR {lookup.cidr_block}", detail)

        return Result.failure(
            f"Could not get VPC CIDR: {lookup.error}", detail,
            recommendations=[
                "Read the CIDR block of the VPC (e.g. 172.31.0.0/16) in the AWS VPC console",
                "Add the CIDR block of each subnet to the database IP allow-list",
            ]
        )

    return Check(name=name, probe=probe, description=f"VPC CIDR from {metadata_url}")


# Configuration values

def env_present_check(
    name: str,
    tester: Optional[EnvironmentTester] = None,
    preview_chars: Optional[int] = 10
) -> Check:
    """The variable must be set and non-empty."""
    tester = tester or EnvironmentTester()

    def probe() -> Result:
        value = tester.read(name, preview_chars=preview_chars)
        detail = asdict(value)
        if value.is_set:
            return Result.success(value.preview, detail)
        return Result.failure("NOT SET", detail)

    return Check(name=name, probe=probe, description=f"{name} is set")


def env_format_check(
    name: str,
    tester: Optional[EnvironmentTester] = None,
    prefix: Optional[str] = None,
    pattern: Optional[Union[str, Pattern]] = None,
    min_length: Optional[int] = None,
    label: str = "format"
) -> Check:
    """The variable must be set and satisfy every given constraint."""
    tester = tester or EnvironmentTester()

    def probe() -> Result:
        validation = tester.validate(name, prefix=prefix, pattern=pattern, min_length=min_length)
        detail = asdict(validation)
        if validation.valid:
            return Result.success("Valid", detail)
        return Result.failure("Invalid: " + ", ".join(validation.problems), detail)

    return Check(name=f"{name} {label}", probe=probe,
                 description=f"{name} {label} validation")


def sendgrid_key_check(tester: Optional[EnvironmentTester] = None,
                       name: str = "SENDGRID_API_KEY") -> Check:
    return env_format_check(
        name, tester,
        prefix=SENDGRID_KEY_PREFIX,
        min_length=SENDGRID_KEY_MIN_LENGTH,
        label="key format"
    )


def email_address_check(tester: Optional[EnvironmentTester] = None,
                        name: str = "SENDGRID_FROM_EMAIL") -> Check:
    return env_format_check(name, tester, pattern=EMAIL_PATTERN, label="email format")


def email_service_check(tester: Optional[EnvironmentTester] = None) -> Check:
    """SendGrid is the expected transport; SMTP or SES alone is only a partial setup."""
    tester = tester or EnvironmentTester()

    def probe() -> Result:
        sendgrid = bool(tester.get('SENDGRID_API_KEY') and tester.get('SENDGRID_FROM_EMAIL'))
        alternative = bool(tester.get('EMAIL_HOST') or tester.get('AWS_SES_ACCESS_KEY_ID'))
        detail = {'sendgrid_configured': sendgrid, 'alternative_configured': alternative}

        if sendgrid:
            return Result.success("SendGrid is configured", detail)
        if alternative:
            return Result.inconclusive(
                "Other email service configured", detail,
                recommendations=["Consider switching to SendGrid"]
            )
        return Result.failure(
            "No email service configured", detail,
            recommendations=["Set SENDGRID_API_KEY and SENDGRID_FROM_EMAIL"]
        )

    return Check(name="Email service", probe=probe,
                 description="An outbound email transport is configured")


# Deployment package

def path_check(relative: str, tester: Optional[PackageTester] = None) -> Check:
    """The path must exist below the package root."""
    tester = tester or PackageTester()

    def probe() -> Result:
        found = tester.path_exists(relative)
        if found.exists:
            return Result.success("EXISTS", asdict(found))
        return Result.failure("MISSING", asdict(found),
                              recommendations=["The deployment will fail without this path"])

    return Check(name=relative, probe=probe, description=f"{relative} exists")


def non_empty_dir_check(relative: str, tester: Optional[PackageTester] = None) -> Check:
    """The build output directory must exist and hold files."""
    tester = tester or PackageTester()

    def probe() -> Result:
        found = tester.path_exists(relative)
        detail = asdict(found)

        if not found.is_dir:
            return Result.failure(f"{relative}/ folder missing", detail,
                                  recommendations=["Compilation may have failed"])
        if not found.entries:
            return Result.failure(f"{relative}/ folder is empty", detail,
                                  recommendations=["Compilation may have failed"])
        return Result.success(f"{relative}/ folder has {len(found.entries)} files", detail)

    return Check(name=f"{relative}/ contents", probe=probe,
                 description=f"{relative}/ holds compiled files")


def dependency_check(dependency: str, tester: Optional[PackageTester] = None) -> Check:
    """The dependency must be declared under ``dependencies`` in package.json."""
    tester = tester or PackageTester()

    def probe() -> Result:
        manifest = tester.read_manifest()
        detail = {'dependency': dependency, 'error': manifest.error}

        if manifest.error:
            return Result.failure(manifest.error, detail)

        version = manifest.dependencies.get(dependency)
        detail['version'] = version
        if version:
            return Result.success(version, detail)
        return Result.failure("MISSING", detail)

    return Check(name=f"dependency {dependency}", probe=probe,
                 description=f"package.json declares {dependency}")
