"""Configuration value inspection (environment variables and .env files)."""

import os
import re
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Pattern, Union
from dataclasses import dataclass, field
from dotenv import dotenv_values

from ..utils import get_logger

logger = get_logger(__name__)

SENDGRID_KEY_PREFIX = "SG."
SENDGRID_KEY_MIN_LENGTH = 21
EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')


def mask_value(value: str, preview_chars: Optional[int] = 10) -> str:
    """Return a preview of a value that does not reveal the whole secret."""
    if preview_chars is None:
        return value
    return f"{value[:preview_chars]}..."


@dataclass
class ConfigValueResult:
    """Result of reading one configuration value."""
    name: str
    is_set: bool
    preview: str = "NOT SET"
    length: int = 0


@dataclass
class FormatCheckResult:
    """Result of validating the format of one configuration value."""
    name: str
    is_set: bool
    valid: bool = False
    problems: List[str] = field(default_factory=list)


class EnvironmentTester:
    """
    Reads named configuration values and validates their format.

    Values come from an explicit mapping when one is given. Otherwise the
    process environment is used, with a ``.env`` file filling in variables
    the environment does not define.
    """

    def __init__(
        self,
        environ: Optional[Mapping[str, str]] = None,
        env_file: Optional[Union[str, Path]] = None
    ):
        if environ is not None:
            self._values: Dict[str, Optional[str]] = dict(environ)
        else:
            self._values = {}
            if env_file and Path(env_file).is_file():
                self._values.update(dotenv_values(env_file))
                logger.info(f"Loaded configuration values from {env_file}")
            self._values.update(os.environ)

    def get(self, name: str) -> Optional[str]:
        """Return the raw value, or None when unset or empty."""
        value = self._values.get(name)
        return value if value else None

    def read(self, name: str, preview_chars: Optional[int] = 10) -> ConfigValueResult:
        """Read a value and build a masked preview of it."""
        value = self.get(name)
        if value is None:
            logger.debug(f"Config value missing: {name}")
            return ConfigValueResult(name=name, is_set=False)

        return ConfigValueResult(
            name=name,
            is_set=True,
            preview=mask_value(value, preview_chars),
            length=len(value)
        )

    def validate(
        self,
        name: str,
        prefix: Optional[str] = None,
        pattern: Optional[Union[str, Pattern]] = None,
        min_length: Optional[int] = None
    ) -> FormatCheckResult:
        """
        Validate a value against a prefix, a regular expression and a length.

        Args:
            name: Variable name
            prefix: Required leading text
            pattern: Regular expression the whole value must match
            min_length: Minimum number of characters

        Returns:
            FormatCheckResult
        """
        value = self.get(name)
        result = FormatCheckResult(name=name, is_set=value is not None)

        if value is None:
            result.problems.append("not set")
            return result

        if prefix is not None and not value.startswith(prefix):
            result.problems.append(f"does not start with {prefix!r}")

        if min_length is not None and len(value) < min_length:
            result.problems.append(f"shorter than {min_length} characters")

        if pattern is not None:
            regex = re.compile(pattern) if isinstance(pattern, str) else pattern
            if not regex.fullmatch(value):
                result.problems.append("does not match the expected format")

        result.valid = not result.problems
        if not result.valid:
            logger.warning(f"Config value {name} invalid: {', '.join(result.problems)}")

        return result
