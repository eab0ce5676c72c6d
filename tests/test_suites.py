"""Tests for deploydiag.diagnostics.suites: suite composition from Config."""
import pytest

from conftest import StubHTTPTester, http_response
from deploydiag.diagnostics import DiagnosticRunner, SuiteBuilder
from deploydiag.diagnostics.runner import CheckStatus
from deploydiag.local import EnvironmentTester, PackageTester
from deploydiag.utils import Config


@pytest.fixture
def config():
    return Config(
        domains=["api.example.org", "example.org"],
        base_urls=["http://api.example.org", "https://api.example.org", "https://www.example.org"],
        health_urls=["https://api.example.org/health", "https://api.example.org/api/health"],
        api_base_url="https://api.example.org/",
        frontend_origin="https://www.example.org",
        frontend_domain="example.org",
        tls_hostnames=["api.example.org"],
        env_file=None,
    )


def _builder(config, http=None, env=None, package=None):
    return SuiteBuilder(
        config,
        http_tester=http or StubHTTPTester(),
        env_tester=env or EnvironmentTester(environ={}),
        package_tester=package,
    )


class TestSuiteComposition:
    def test_every_named_suite_builds(self, config):
        builder = _builder(config)
        for name in builder.builders:
            suite = builder.build(name)
            assert suite.name == name
            assert suite.checks, name

    def test_unknown_suite(self, config):
        with pytest.raises(KeyError):
            _builder(config).build("nope")

    def test_early_exit_suites(self, config):
        builder = _builder(config)
        early = {name for name in builder.builders if builder.build(name).early_exit}
        assert early == {"urls", "health", "public-ip"}

    def test_dns_suite_follows_config_order(self, config):
        suite = _builder(config).dns_suite()
        assert [c.name for c in suite.checks] == ["DNS api.example.org", "DNS example.org"]

    def test_api_suite_targets(self, config):
        suite = _builder(config).api_suite()
        names = [c.name for c in suite.checks]
        assert names == [
            "Health check",
            "Health timestamp",
            "CORS test endpoint",
            "Send OTP",
            "CORS preflight",
            "Google auth",
            "Google auth callback",
            "Subscription status",
        ]
        assert suite.checks[0].description == "GET https://api.example.org/api/health"
        assert suite.checks[3].description == "POST https://api.example.org/api/auth/send-otp"

    def test_env_suite_adds_format_checks_only_for_set_values(self, config):
        bare = _builder(config).env_suite()
        bare_names = [c.name for c in bare.checks]
        assert "SENDGRID_API_KEY key format" not in bare_names
        assert bare_names[-1] == "Email service"

        env = EnvironmentTester(environ={
            'SENDGRID_API_KEY': 'SG.aaaaaaaaaaaaaaaaaaaaaaaa',
            'SENDGRID_FROM_EMAIL': 'noreply@example.org',
        })
        names = [c.name for c in _builder(config, env=env).env_suite().checks]
        assert "SENDGRID_API_KEY key format" in names
        assert "SENDGRID_FROM_EMAIL email format" in names

    def test_package_suite(self, config, package_dir):
        suite = _builder(config, package=PackageTester(package_dir)).package_suite()
        names = [c.name for c in suite.checks]
        assert names[0] == "package.json"
        assert "dist/ contents" in names
        assert "dependency passport-google-oauth20" in names


class TestSuitesRun:
    def test_urls_suite_stops_at_first_working_url(self, config):
        http = StubHTTPTester({
            "http://api.example.org/api/health": http_response(
                "http://api.example.org/api/health", 503, "Service Unavailable"),
            "https://api.example.org/api/health": http_response(
                "https://api.example.org/api/health", 200, '{"status":"ok"}'),
            "https://www.example.org/api/health": http_response(
                "https://www.example.org/api/health", 200, '{"status":"ok"}'),
        })
        suite = _builder(config, http=http).urls_suite()

        report = DiagnosticRunner().run_suite(suite.name, suite.checks, suite.early_exit)

        assert [c.name for c, _ in report.results] == [
            "http://api.example.org", "https://api.example.org"]
        assert report.summary.first_success == "https://api.example.org"
        assert len(http.requests) == 2

    def test_health_suite_without_any_working_endpoint(self, config):
        suite = _builder(config).health_suite()
        report = DiagnosticRunner().run_suite(suite.name, suite.checks, suite.early_exit)
        assert len(report.results) == 2
        assert report.summary.first_success is None
        assert all(r.status == CheckStatus.FAILURE for _, r in report.results)

    def test_api_suite_classification(self, config):
        base = "https://api.example.org"
        callback = (f"{base}/api/auth/google/callback"
                    "?code=test_code&scope=email+profile&authuser=1&prompt=none")
        http = StubHTTPTester({
            f"{base}/api/health": http_response(f"{base}/api/health", 200, '{"ok":true}'),
            f"{base}/api/cors-test": http_response(f"{base}/api/cors-test", 200, '{"cors":1}'),
            f"{base}/api/auth/send-otp": http_response(f"{base}/api/auth/send-otp", 200, '{}'),
            f"{base}/api/auth/google": http_response(
                f"{base}/api/auth/google", 302,
                headers={'Location': 'https://accounts.google.com/'}),
            callback: http_response(
                callback, 302,
                headers={'Location': 'https://www.example.org/login?error=auth_failed'}),
            f"{base}/api/subscription/status": http_response(
                f"{base}/api/subscription/status", 404),
        })
        suite = _builder(config, http=http).api_suite()

        report = DiagnosticRunner().run_suite(suite.name, suite.checks, suite.early_exit)
        statuses = {c.name: r.status for c, r in report.results}

        assert statuses["Health check"] == CheckStatus.SUCCESS
        assert statuses["Google auth"] == CheckStatus.SUCCESS
        # Redirects to the right domain, even if to an error page
        assert statuses["Google auth callback"] == CheckStatus.SUCCESS
        assert statuses["Subscription status"] == CheckStatus.INCONCLUSIVE
        # Same stubbed response has no CORS headers
        assert statuses["CORS preflight"] == CheckStatus.INCONCLUSIVE
        assert report.summary.total == 8
        # Health body carries no timestamp
        assert statuses["Health timestamp"] == CheckStatus.INCONCLUSIVE
        assert statuses["Send OTP"] == CheckStatus.SUCCESS

    def test_api_suite_reads_email_errors(self, config):
        url = "https://api.example.org/api/auth/send-otp"
        http = StubHTTPTester({url: http_response(
            url, 500, '{"message": "Email service is not configured"}', method="POST")})
        suite = _builder(config, http=http).api_suite()

        report = DiagnosticRunner().run_suite(suite.name, suite.checks)
        otp = next(r for c, r in report.results if c.name == "Send OTP")

        assert otp.status == CheckStatus.FAILURE
        assert otp.message == "Email service is not configured on the server"

    def test_api_suite_server_down_advice(self, config):
        url = "https://api.example.org/api/health"
        http = StubHTTPTester({url: http_response(url, 503, "Service Unavailable")})
        health = _builder(config, http=http).api_suite().checks[0]

        result = health.probe()

        assert result.status == CheckStatus.FAILURE
        assert result.recommendations[0].startswith("Server is down (503)")

    def test_vpc_suite(self, config):
        base = config.vpc_metadata_url
        http = StubHTTPTester({
            base: http_response(base, 200, "0e:1a:2b:3c:4d:5e/\n"),
            f"{base}0e:1a:2b:3c:4d:5e/vpc-ipv4-cidr-block": http_response(
                f"{base}0e:1a:2b:3c:4d:5e/vpc-ipv4-cidr-block", 200, "172.31.0.0/16"),
        })
        suite = _builder(config, http=http).vpc_suite()

        report = DiagnosticRunner().run_suite(suite.name, suite.checks, suite.early_exit)

        assert report.summary.overall_status == "healthy"
        assert report.results[0][1].detail['allowlist_entry'] == "172.31.0.0/16"
