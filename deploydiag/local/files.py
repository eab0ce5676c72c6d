"""Deployment package inspection."""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from dataclasses import dataclass, field

from ..utils import get_logger

logger = get_logger(__name__)


@dataclass
class PathCheckResult:
    """Result of looking for a path inside the package."""
    path: str
    exists: bool
    is_dir: bool = False
    entries: List[str] = field(default_factory=list)


@dataclass
class PackageManifest:
    """Dependencies declared in package.json."""
    found: bool
    dependencies: Dict[str, str] = field(default_factory=dict)
    dev_dependencies: Dict[str, str] = field(default_factory=dict)
    error: Optional[str] = None


class PackageTester:
    """
    Inspects a deployment package on disk.
    """

    def __init__(self, root: Union[str, Path] = "."):
        self.root = Path(root)

    def path_exists(self, relative: str) -> PathCheckResult:
        """Check whether a file or directory exists below the package root."""
        path = self.root / relative
        exists = path.exists()
        is_dir = path.is_dir()

        result = PathCheckResult(path=relative, exists=exists, is_dir=is_dir)
        if is_dir:
            result.entries = sorted(p.name for p in path.iterdir())

        logger.debug(f"Package path {relative}: {'exists' if exists else 'missing'}")
        return result

    def read_manifest(self, filename: str = "package.json") -> PackageManifest:
        """Read dependency tables from package.json."""
        path = self.root / filename
        if not path.is_file():
            return PackageManifest(found=False, error=f"{filename} missing")

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data: Dict[str, Any] = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error reading {filename}: {e}")
            return PackageManifest(found=True, error=f"Error reading {filename}: {e}")

        if not isinstance(data, dict):
            return PackageManifest(found=True, error=f"{filename} is not a JSON object")

        return PackageManifest(
            found=True,
            dependencies=dict(data.get('dependencies') or {}),
            dev_dependencies=dict(data.get('devDependencies') or {})
        )
