"""
Version ordering for cvm.

Versions are dotted numbers ("1.7.39"); they are compared numerically per
segment so that "1.10.0" sorts after "1.9.0".
"""

import functools
import re
from typing import Iterable, List, Tuple

VERSION_PATTERN = r"\d+(?:\.\d+)*"

# Type alias for the sort key of a single dotted version
VersionKey = Tuple[Tuple[int, str], ...]

_SEGMENT_RE = re.compile(r"^(\d*)(.*)$")


@functools.lru_cache(maxsize=512)
def version_key(version: str) -> VersionKey:
    """Build a sort key comparing each dotted segment numerically."""
    key: List[Tuple[int, str]] = []
    for segment in version.strip().split("."):
        match = _SEGMENT_RE.match(segment)
        digits, rest = match.groups() if match else ("", segment)
        # Segments without a leading number sort before numbered ones
        number = int(digits) if digits else -1
        key.append((number, rest))
    return tuple(key)


def sort_versions(versions: Iterable[str], reverse: bool = False) -> List[str]:
    """Sort versions in ascending numeric order, removing duplicates."""
    return sorted(set(versions), key=version_key, reverse=reverse)


def latest_of(versions: Iterable[str]) -> str | None:
    """Get the highest version, or None for an empty input."""
    ordered = sort_versions(versions)
    return ordered[-1] if ordered else None


def is_valid_version(version: str) -> bool:
    """Check that a string is a plain dotted numeric version."""
    return re.fullmatch(VERSION_PATTERN, version) is not None
