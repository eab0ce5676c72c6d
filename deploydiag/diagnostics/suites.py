"""Named diagnostic suites built from the application configuration."""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from ..local import EnvironmentTester, PackageTester
from ..network import DNSTester, HTTPTester
from ..utils import Config
from . import checks as factories
from .runner import Check, CheckStatus

SERVER_DOWN_ADVICE = [
    "Server is down (503): the application crashed or failed to start",
    "Check the Elastic Beanstalk environment health and recent application logs",
    "Check the database IP allow-list and the environment variables",
]

# Error messages of the send-otp endpoint, by email transport failure
EMAIL_ERROR_PATTERNS = (
    factories.BodyPattern(
        "Email service is not configured", CheckStatus.FAILURE,
        "Email service is not configured on the server",
        ("The current code is deployed but no email provider is working",),
    ),
    factories.BodyPattern(
        "Failed to send verification email", CheckStatus.FAILURE,
        "Email service failed to send",
        ("The email provider rejected the message or the old code is still running",),
    ),
    factories.BodyPattern(
        "535 Authentication Credentials Invalid", CheckStatus.FAILURE,
        "SMTP authentication failed",
        ("The server still uses invalid SMTP credentials; the email fix is not deployed",),
    ),
)


@dataclass
class Suite:
    """An ordered list of checks and whether the first success ends the run."""
    name: str
    description: str
    checks: List[Check]
    early_exit: bool = False


class SuiteBuilder:
    """
    Builds the predefined suites.

    Testers are created from the configuration unless supplied, so tests can
    inject fakes for every collaborator.
    """

    def __init__(
        self,
        config: Config,
        dns_tester: Optional[DNSTester] = None,
        http_tester: Optional[HTTPTester] = None,
        env_tester: Optional[EnvironmentTester] = None,
        package_tester: Optional[PackageTester] = None
    ):
        self.config = config
        self.dns = dns_tester or DNSTester(timeout=config.dns_timeout)
        self.http = http_tester or HTTPTester(timeout=config.http_timeout)
        self._env = env_tester
        self.package = package_tester or PackageTester(config.package_root)

    @property
    def env(self) -> EnvironmentTester:
        # Deferred so that suites without config checks never read the .env file
        if self._env is None:
            self._env = EnvironmentTester(env_file=self.config.env_file)
        return self._env

    @property
    def builders(self) -> Dict[str, Callable[[], Suite]]:
        return {
            'dns': self.dns_suite,
            'urls': self.urls_suite,
            'health': self.health_suite,
            'api': self.api_suite,
            'tls': self.tls_suite,
            'env': self.env_suite,
            'public-ip': self.public_ip_suite,
            'vpc': self.vpc_suite,
            'package': self.package_suite,
        }

    def build(self, name: str) -> Suite:
        """Build a suite by name. Raises KeyError for unknown names."""
        return self.builders[name]()

    def dns_suite(self) -> Suite:
        return Suite(
            name="dns",
            description="DNS resolution for the public domains",
            checks=[
                factories.dns_check(domain, self.dns, require_cname=self.config.require_cname)
                for domain in self.config.domains
            ]
        )

    def urls_suite(self) -> Suite:
        path = self.config.health_path
        return Suite(
            name="urls",
            description="Find the first base URL with a working health endpoint",
            checks=[
                factories.http_check(
                    base_url,
                    base_url.rstrip('/') + path,
                    self.http,
                    expect_json=True,
                    recommendations=[
                        "Check the Elastic Beanstalk environment status",
                        "Check application logs for startup errors",
                    ]
                )
                for base_url in self.config.base_urls
            ],
            early_exit=True
        )

    def health_suite(self) -> Suite:
        return Suite(
            name="health",
            description="Find the first responding health endpoint",
            checks=[
                factories.http_check(
                    url, url, self.http,
                    headers={'Content-Type': 'application/json'},
                    recommendations=["If all endpoints fail, the server is not responding"]
                )
                for url in self.config.health_urls
            ],
            early_exit=True
        )

    def api_suite(self) -> Suite:
        config = self.config
        return Suite(
            name="api",
            description="Smoke tests for the deployed API endpoints",
            checks=[
                factories.http_check(
                    "Health check", config.api_url("/api/health"), self.http,
                    expect_json=True,
                    status_advice={503: SERVER_DOWN_ADVICE},
                    recommendations=["Server might not be running properly"]
                ),
                factories.http_check(
                    "Health timestamp", config.api_url("/api/health"), self.http,
                    json_check=factories.fresh_timestamp(config.health_max_age_seconds),
                    recommendations=["Server might not be running properly"]
                ),
                factories.http_check(
                    "CORS test endpoint", config.api_url("/api/cors-test"), self.http,
                    expect_json=True,
                    recommendations=["CORS configuration might not be deployed"]
                ),
                factories.http_check(
                    "Send OTP", config.api_url("/api/auth/send-otp"), self.http,
                    method="POST",
                    headers={
                        'Content-Type': 'application/json',
                        'Origin': config.frontend_origin,
                    },
                    json_body={
                        'email': config.otp_test_email,
                        'name': 'Test User',
                        'password': 'testpassword123',
                        'invitationToken': None,
                    },
                    body_patterns=EMAIL_ERROR_PATTERNS,
                    body_preview=500,
                    recommendations=["CORS headers missing for POST requests"]
                ),
                factories.cors_preflight_check(
                    "CORS preflight", config.api_url("/api/auth/send-otp"),
                    config.frontend_origin, self.http
                ),
                factories.http_check(
                    "Google auth", config.api_url("/api/auth/google"), self.http,
                    expected_statuses=(302,),
                    allow_redirects=False,
                    recommendations=["Google Auth endpoint should redirect (302) to Google"]
                ),
                factories.http_check(
                    "Google auth callback",
                    config.api_url(
                        "/api/auth/google/callback"
                        "?code=test_code&scope=email+profile&authuser=1&prompt=none"
                    ),
                    self.http,
                    expected_statuses=(302,),
                    location_contains=config.frontend_domain,
                    allow_redirects=False,
                    recommendations=[
                        "A redirect to /login?error=auth_failed means the callback "
                        "changes are not deployed",
                    ]
                ),
                factories.http_check(
                    "Subscription status", config.api_url("/api/subscription/status"), self.http,
                    expected_statuses=(200, 401),
                    inconclusive_statuses=(404,),
                    recommendations=["Check the application logs for runtime errors"]
                ),
            ]
        )

    def tls_suite(self) -> Suite:
        return Suite(
            name="tls",
            description="TLS reachability of the API hosts",
            checks=[
                factories.tls_check(hostname, self.config.health_path, tester=self.http)
                for hostname in self.config.tls_hostnames
            ]
        )

    def env_suite(self) -> Suite:
        config = self.config
        preview = config.secret_preview_chars
        env = self.env

        checks = [
            factories.env_present_check(name, env, preview)
            for name in config.sendgrid_vars + config.email_vars
        ]
        # Plain application settings are shown in full
        checks.extend(factories.env_present_check(name, env, None) for name in config.app_vars)
        checks.extend(factories.env_present_check(name, env, preview)
                      for name in config.payment_vars)

        if env.get('SENDGRID_API_KEY'):
            checks.append(factories.sendgrid_key_check(env))
        if env.get('SENDGRID_FROM_EMAIL'):
            checks.append(factories.email_address_check(env))
        checks.append(factories.email_service_check(env))

        return Suite(
            name="env",
            description="Configuration variables and credential formats",
            checks=checks
        )

    def vpc_suite(self) -> Suite:
        return Suite(
            name="vpc",
            description="VPC CIDR block to allow-list in the database firewall",
            checks=[
                factories.vpc_cidr_check(
                    "VPC CIDR", self.config.vpc_metadata_url, self.http,
                    timeout=self.config.vpc_metadata_timeout
                )
            ]
        )

    def public_ip_suite(self) -> Suite:
        return Suite(
            name="public-ip",
            description="Public IP address to allow-list in the database firewall",
            checks=[
                factories.public_ip_check(
                    source['name'], source['url'], source.get('json_key'), self.http,
                    timeout=source.get('timeout')
                )
                for source in self.config.public_ip_sources
            ],
            early_exit=True
        )

    def package_suite(self) -> Suite:
        config = self.config
        checks = [factories.path_check(path, self.package) for path in config.essential_files]
        checks.append(factories.non_empty_dir_check(config.build_dir, self.package))
        checks.extend(factories.dependency_check(dep, self.package)
                      for dep in config.critical_dependencies)
        return Suite(
            name="package",
            description="Deployment package layout and dependencies",
            checks=checks
        )
