"""
Path resolution for new virtualenvs

Environments live under ``<root>/versions/<version>/envs/<name>``. For older
tooling, ``<root>/versions/<name>`` is kept as a symlink to that directory.
"""

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from .errors import TargetExistsError, ValidationError

ENVS = "envs"
SYSTEM = "system"

_NESTED_NAME = re.compile(r"^[^/]+/envs/[^/]+$")
_WHITESPACE = re.compile(r"\s")


@dataclass(frozen=True)
class EnvironmentPaths:
    """Canonical and compatibility locations of one virtualenv"""

    name: str
    canonical: Path
    legacy: Optional[Path] = None

    @property
    def bin_dir(self) -> Path:
        return self.canonical / "bin"


def base_version(version: str) -> str:
    """``3.9.0/envs/foo`` -> ``3.9.0``"""
    return version.split(f"/{ENVS}/", 1)[0]


def final_segment(name: str) -> str:
    return name.rstrip("/").rsplit("/", 1)[-1]


def validate_name(name: str):
    """Reject names pyenv could not address as a version"""
    if not name:
        raise ValidationError("no virtualenv name given.")
    if _WHITESPACE.search(name):
        raise ValidationError("no whitespace allowed in virtualenv name.")
    if "/" in name and not _NESTED_NAME.match(name):
        raise ValidationError(
            f"`{name}' is not a valid virtualenv name; "
            "use `<name>' or `<version>/envs/<name>'."
        )
    if final_segment(name) == SYSTEM:
        raise ValidationError("`system' is not allowed as virtualenv name.")


def validate_version(version: str):
    if not version or _WHITESPACE.search(version):
        raise ValidationError(f"`{version}' is not a valid version name.")


def versions_root_of(versions_dir: Path, prefix: Optional[Path]) -> Optional[str]:
    """Version root of ``prefix`` when it is (a link to) ``<v>/envs/<name>``"""
    if prefix is None:
        return None
    resolved = Path(os.path.realpath(prefix))
    versions_dir = Path(os.path.realpath(versions_dir))
    try:
        relative = resolved.relative_to(versions_dir)
    except ValueError:
        return None
    parts = relative.parts
    if len(parts) == 3 and parts[1] == ENVS:
        return parts[0]
    return None


def resolve_paths(
    versions_dir: Path,
    version: str,
    name: str,
    existing_root: Callable[[str], Optional[str]],
) -> EnvironmentPaths:
    """Compute the canonical and legacy paths for ``name`` built from ``version``

    ``existing_root(version)`` returns the version root when ``version`` is
    itself an environment nested under ``<v>/envs/``, else ``None``.
    """
    leaf = final_segment(name)

    if version == SYSTEM:
        resolved = leaf
    else:
        root = existing_root(version)
        if root is None:
            root = base_version(version)
        resolved = f"{root}/{ENVS}/{leaf}"

    canonical = versions_dir / resolved

    legacy = None
    if canonical.parent.name == ENVS and canonical.parent.parent.parent == versions_dir:
        candidate = versions_dir / leaf
        if candidate != canonical:
            legacy = candidate

    return EnvironmentPaths(name=resolved, canonical=canonical, legacy=legacy)


def check_legacy(paths: EnvironmentPaths):
    """Refuse to touch a compatibility path that belongs to something else"""
    legacy = paths.legacy
    if legacy is None:
        return
    if legacy.is_symlink():
        target = Path(os.path.realpath(legacy))
        if target != Path(os.path.realpath(paths.canonical)):
            raise TargetExistsError(f"`{legacy}' exists and is not the same virtualenv.")
    elif legacy.exists():
        raise TargetExistsError(f"`{legacy}' exists but is not a symlink.")


def link_legacy(paths: EnvironmentPaths) -> bool:
    """Point the compatibility path at the canonical one

    Returns True when a new link was created.
    """
    legacy = paths.legacy
    if legacy is None:
        return False
    if legacy.is_symlink():
        if Path(os.path.realpath(legacy)) == Path(os.path.realpath(paths.canonical)):
            return False
        legacy.unlink()
    legacy.parent.mkdir(parents=True, exist_ok=True)
    legacy.symlink_to(paths.canonical)
    return True
