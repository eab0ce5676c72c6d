"""Application configuration for the deployment diagnostics tool."""

import json
from dataclasses import dataclass, field, asdict, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

from .logging_config import get_logger

logger = get_logger(__name__)


def _valid_ip_sources(sources: List[Any]) -> List[Dict[str, Any]]:
    """Drop public IP sources that lack a name or URL."""
    valid = []
    for source in sources:
        if isinstance(source, dict) and source.get("name") and source.get("url"):
            valid.append(source)
        else:
            logger.warning(f"Ignoring public IP source without name and url: {source!r}")
    return valid


@dataclass
class Config:
    """Application configuration settings."""

    # Network settings
    dns_timeout: float = 5.0  # seconds
    http_timeout: float = 10.0

    # Domains checked by the DNS suite
    domains: List[str] = field(default_factory=lambda: [
        "tasksync.ap-south-1.elasticbeanstalk.com",
        "api.tasksync.org",
        "www.tasksync.org",
        "tasksync.org",
    ])
    require_cname: bool = False

    # Base URLs tried in order by the URL discovery suite
    base_urls: List[str] = field(default_factory=lambda: [
        "http://tasksync.ap-south-1.elasticbeanstalk.com",
        "https://tasksync.ap-south-1.elasticbeanstalk.com",
        "http://api.tasksync.org",
        "https://api.tasksync.org",
        "http://www.tasksync.org",
        "https://www.tasksync.org",
    ])
    health_path: str = "/api/health"

    # Full health endpoint candidates
    health_urls: List[str] = field(default_factory=lambda: [
        "https://api.tasksync.org/health",
        "https://api.tasksync.org/api/health",
        "https://api.tasksync.org/",
        "https://tasksync.ap-south-1.elasticbeanstalk.com/health",
        "https://tasksync.ap-south-1.elasticbeanstalk.com/api/health",
    ])

    # Endpoint smoke tests
    api_base_url: str = "https://api.tasksync.org"
    frontend_origin: str = "https://www.tasksync.org"
    frontend_domain: str = "tasksync.org"
    otp_test_email: str = "test@example.com"
    health_max_age_seconds: float = 300.0  # older health timestamps suggest a cached response

    # TLS reachability
    tls_hostnames: List[str] = field(default_factory=lambda: [
        "tasksync.ap-south-1.elasticbeanstalk.com",
        "api.tasksync.org",
    ])

    # Public IP discovery, tried in order
    public_ip_sources: List[Dict[str, Any]] = field(default_factory=lambda: [
        {"name": "AWS instance metadata",
         "url": "http://169.254.169.254/latest/meta-data/public-ipv4",
         "json_key": None,
         "timeout": 2.0},
        {"name": "ipify",
         "url": "https://api.ipify.org?format=json",
         "json_key": "ip"},
    ])

    # VPC CIDR discovery from instance metadata
    vpc_metadata_url: str = "http://169.254.169.254/latest/meta-data/network/interfaces/macs/"
    vpc_metadata_timeout: float = 2.0

    # Configuration variables
    env_file: Optional[str] = ".env"
    secret_preview_chars: int = 10
    sendgrid_vars: List[str] = field(default_factory=lambda: [
        "SENDGRID_API_KEY",
        "SENDGRID_FROM_EMAIL",
        "SENDGRID_FROM_NAME",
    ])
    email_vars: List[str] = field(default_factory=lambda: [
        "EMAIL_HOST",
        "EMAIL_USER",
        "EMAIL_PASS",
        "AWS_SES_ACCESS_KEY_ID",
        "AWS_SES_SECRET_ACCESS_KEY",
    ])
    app_vars: List[str] = field(default_factory=lambda: [
        "PORT",
        "MONGO_URI",
        "JWT_SECRET",
        "FRONTEND_URL",
    ])
    payment_vars: List[str] = field(default_factory=lambda: [
        "RAZORPAY_KEY_ID",
        "RAZORPAY_KEY_SECRET",
    ])

    # Deployment package layout
    package_root: str = "."
    essential_files: List[str] = field(default_factory=lambda: [
        "package.json",
        "package-lock.json",
        "src/services/auth-service.ts",
        "src/controllers/auth-controller.ts",
        "src/configs/passport.ts",
        "dist/",
    ])
    build_dir: str = "dist"
    critical_dependencies: List[str] = field(default_factory=lambda: [
        "express",
        "mongoose",
        "passport",
        "passport-google-oauth20",
    ])

    # Logging
    log_level: str = "INFO"

    @classmethod
    def load(cls, filepath: Optional[Path] = None) -> "Config":
        """Load configuration from file, falling back to defaults."""
        if filepath is None:
            filepath = cls._default_config_path()
        filepath = Path(filepath)

        if filepath.exists():
            try:
                with open(filepath, 'r', encoding='utf-8') as f:
                    data = json.load(f)
                known = {fld.name for fld in fields(cls)}
                unknown = set(data) - known
                if unknown:
                    logger.warning(f"Ignoring unknown config keys: {sorted(unknown)}")
                config = cls(**{k: v for k, v in data.items() if k in known})
                config.public_ip_sources = _valid_ip_sources(config.public_ip_sources)
                return config
            except (OSError, ValueError, TypeError, AttributeError) as e:
                # ValueError covers JSON and UTF-8 decoding errors
                logger.warning(f"Invalid config file {filepath}, using defaults: {e}")

        return cls()

    def save(self, filepath: Optional[Path] = None) -> None:
        """Save configuration to file."""
        if filepath is None:
            filepath = self._default_config_path()
        filepath = Path(filepath)

        filepath.parent.mkdir(parents=True, exist_ok=True)

        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(asdict(self), f, indent=2)

    @staticmethod
    def _default_config_path() -> Path:
        """Get the default configuration file path."""
        return Path.home() / ".deploydiag" / "config.json"

    def api_url(self, path: str) -> str:
        """Join a path onto the API base URL."""
        return self.api_base_url.rstrip('/') + '/' + path.lstrip('/')
