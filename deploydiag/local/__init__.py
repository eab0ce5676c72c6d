"""Local configuration and deployment package inspection."""

from .env import EnvironmentTester, ConfigValueResult, FormatCheckResult, mask_value
from .files import PackageTester, PathCheckResult, PackageManifest

__all__ = [
    "EnvironmentTester",
    "ConfigValueResult",
    "FormatCheckResult",
    "mask_value",
    "PackageTester",
    "PathCheckResult",
    "PackageManifest",
]
