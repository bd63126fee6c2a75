"""
Host distribution detection.

Only the distribution family matters to the installer; it decides whether
the run may proceed at all.
"""

import sys
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Union

from .config import get_settings
from .exceptions import DistributionNotSupportedError
from .utils.logging import get_logger

logger = get_logger(__name__)


class DistributionType(str, Enum):
    """Supported host distributions."""
    UBUNTU = "ubuntu"
    DEBIAN = "debian"
    ARCH = "arch"
    AMAZON = "amazon"
    MACOS = "macos"


# os-release IDs mapped to the family that handles them
_OS_RELEASE_IDS = {
    "ubuntu": DistributionType.UBUNTU,
    "pop": DistributionType.UBUNTU,
    "linuxmint": DistributionType.UBUNTU,
    "debian": DistributionType.DEBIAN,
    "raspbian": DistributionType.DEBIAN,
    "arch": DistributionType.ARCH,
    "manjaro": DistributionType.ARCH,
    "endeavouros": DistributionType.ARCH,
    "amzn": DistributionType.AMAZON,
}


def parse_os_release(text: str) -> Dict[str, str]:
    """Parse the KEY=value lines of an os-release file."""
    values = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        values[key.strip()] = value.strip().strip('"').strip("'")
    return values


def detect_distribution(
    os_release: Optional[Union[str, Path]] = None,
    platform: Optional[str] = None
) -> DistributionType:
    """
    Detect the host distribution family.

    Args:
        os_release: os-release file to read (defaults to the configured path)
        platform: Platform string (defaults to sys.platform)

    Returns:
        The detected DistributionType

    Raises:
        DistributionNotSupportedError: If the host is not a supported system
    """
    platform = platform or sys.platform
    if platform == "darwin":
        return DistributionType.MACOS
    if not platform.startswith("linux"):
        raise DistributionNotSupportedError(platform)

    path = Path(os_release or get_settings().paths.os_release)
    try:
        info = parse_os_release(path.read_text(encoding="utf-8"))
    except OSError as e:
        logger.debug(f"Could not read {path}: {e}")
        raise DistributionNotSupportedError("unknown")

    candidates = [info.get("ID", "").lower()] + info.get("ID_LIKE", "").lower().split()
    for candidate in candidates:
        distribution = _OS_RELEASE_IDS.get(candidate)
        if distribution is not None:
            logger.debug(f"Detected distribution {distribution.value} from ID '{candidate}'")
            return distribution

    raise DistributionNotSupportedError(info.get("PRETTY_NAME") or info.get("ID") or "unknown")


def resolve_distribution(override: Optional[str] = None, **kwargs) -> DistributionType:
    """Use an explicit distribution name if given, otherwise detect it."""
    if override:
        try:
            return DistributionType(override.lower())
        except ValueError:
            raise DistributionNotSupportedError(override)
    return detect_distribution(**kwargs)
