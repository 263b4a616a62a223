"""Semantic version handling.

Versions follow MAJOR.MINOR.PATCH with an optional pre-release suffix
(``1.0.0-beta.3``, ``2.0.0-canary.1``, ``1.0.0-rc1``). Ordering is semver
precedence: numeric core first, a pre-release sorts before its release, and
pre-release identifiers compare numerically when both are numbers and by
ASCII order otherwise.
"""

from __future__ import annotations

import json
import logging
import re
import tomllib
from pathlib import Path
from typing import Iterable, NamedTuple

from schemalift.exceptions import UnknownVersionError

_logger = logging.getLogger(__name__)

_NUMERIC = r"0|[1-9]\d*"
_IDENTIFIER = r"0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*"
PRERELEASE_PATTERN = rf"(?:{_IDENTIFIER})(?:\.(?:{_IDENTIFIER}))*"
_VERSION_RE = re.compile(
    rf"^(?P<major>{_NUMERIC})\.(?P<minor>{_NUMERIC})\.(?P<patch>{_NUMERIC})"
    rf"(?:-(?P<prerelease>{PRERELEASE_PATTERN}))?$"
)


class SemVer(NamedTuple):
    major: int
    minor: int
    patch: int
    prerelease: tuple[str, ...] = ()

    def precedence(self) -> tuple:
        """Sort key implementing semver 2.0.0 precedence."""
        if not self.prerelease:
            # A release outranks every pre-release of the same core
            pre: tuple = (1,)
        else:
            pre = (0, tuple(
                (0, int(part), "") if part.isdigit() else (1, 0, part)
                for part in self.prerelease
            ))
        return (self.major, self.minor, self.patch, pre)


def is_valid(version: str | None) -> bool:
    """True if ``version`` is a semantic version (no build metadata)."""
    return bool(version) and _VERSION_RE.match(version) is not None


def parse(version: str) -> SemVer:
    match = _VERSION_RE.match(version or "")
    if match is None:
        raise ValueError(f"Invalid version format: {version}")
    prerelease = match.group("prerelease")
    return SemVer(
        int(match.group("major")),
        int(match.group("minor")),
        int(match.group("patch")),
        tuple(prerelease.split(".")) if prerelease else (),
    )


def precedence_key(version: str) -> tuple:
    return parse(version).precedence()


def compare(a: str, b: str) -> int:
    """Return -1, 0 or 1 as ``a`` is older than, equal to, or newer than ``b``."""
    ka, kb = precedence_key(a), precedence_key(b)
    if ka < kb:
        return -1
    if ka > kb:
        return 1
    return 0


def gt(a: str, b: str) -> bool:
    return compare(a, b) > 0


def lte(a: str, b: str) -> bool:
    return compare(a, b) <= 0


def sort_versions(versions: Iterable[str], reverse: bool = False) -> list[str]:
    """Sort valid versions ascending (invalid entries are dropped)."""
    valid = [v for v in set(versions) if is_valid(v)]
    return sorted(valid, key=precedence_key, reverse=reverse)


def latest(versions: Iterable[str]) -> str | None:
    ordered = sort_versions(versions, reverse=True)
    return ordered[0] if ordered else None


def read_declared_version(manifest_path: Path) -> str:
    """Read the build's version from ``pyproject.toml`` or a JSON manifest.

    Raises UnknownVersionError if the file is missing, unreadable, has no
    version field, or declares something that is not a semantic version.
    """
    try:
        if manifest_path.suffix == ".toml":
            data = tomllib.loads(manifest_path.read_text(encoding="utf-8"))
            version = data.get("project", {}).get("version") or data.get("version")
        else:
            data = json.loads(manifest_path.read_text(encoding="utf-8"))
            version = data.get("version") if isinstance(data, dict) else None
    except (OSError, ValueError) as e:
        raise UnknownVersionError(
            f"Could not read version from {manifest_path}: {e}"
        ) from e

    if not isinstance(version, str) or not is_valid(version):
        raise UnknownVersionError(
            f"Invalid or missing version in {manifest_path}: {version!r}"
        )
    _logger.debug("Declared version %s read from %s", version, manifest_path)
    return version
