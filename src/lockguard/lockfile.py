"""yarn.lock parsing into an ordered dependency set.

Both lockfile generations are supported:

* yarn berry (v2+): a YAML document with a ``__metadata`` block and entries
  keyed by descriptor lists such as ``"left-pad@npm:^1.0.0"``, each carrying a
  ``resolution`` and ``version``.
* yarn classic (v1): the ``# yarn lockfile v1`` text format with unindented
  descriptor headers and indented ``version "x.y.z"`` fields.

Only registry packages are reported. Workspace, link, portal, file, patch, git
and tarball-URL entries have no registry identity of their own. Aliases
(``alias@npm:real@range``) are reported under the real package name.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

NPM_REGISTRY = "npm"
CLASSIC_HEADER = "# yarn lockfile v1"
SUPPORTED_FORMATS: tuple[str, ...] = ("yarn",)
NPM_PROTOCOL = "npm:"

_CLASSIC_VERSION_RE = re.compile(r'^\s+version:?\s+"?(?P<version>[^"\s]+)"?\s*$')


class LockfileError(RuntimeError):
    """Raised when a dependency file cannot be read or parsed."""


@dataclass(frozen=True)
class Dependency:
    """One resolved package from the lockfile."""

    name: str
    version: str
    registry: str = NPM_REGISTRY

    def to_payload(self) -> dict[str, str]:
        return {"name": self.name, "version": self.version, "type": self.registry}


DependencySet = tuple[Dependency, ...]


def parse_lockfile(path: Path, fmt: str = "yarn") -> DependencySet:
    """Parse ``path`` and return its packages in file order, without duplicates."""
    if fmt not in SUPPORTED_FORMATS:
        raise LockfileError(f"Unsupported lockfile format `{fmt}`")

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise LockfileError(f"Failed to read lockfile {path}: {exc}") from exc

    if CLASSIC_HEADER in text.splitlines()[:5]:
        dependencies = _parse_classic(text)
    else:
        dependencies = _parse_berry(text, path)

    seen: set[Dependency] = set()
    ordered: list[Dependency] = []
    for dependency in dependencies:
        if dependency not in seen:
            seen.add(dependency)
            ordered.append(dependency)
    logger.debug("parsed %d packages from %s", len(ordered), path)
    return tuple(ordered)


def split_descriptor(descriptor: str) -> tuple[str, str]:
    """Split ``name@range`` into name and range, keeping the scope ``@``."""
    descriptor = descriptor.strip().strip('"')
    at = descriptor.find("@", 1)
    if at == -1:
        raise LockfileError(f"Malformed package descriptor `{descriptor}`")
    return descriptor[:at], descriptor[at + 1 :]


def _parse_berry(text: str, path: Path) -> list[Dependency]:
    try:
        # Scalars stay strings, so an unquoted `version: 1.10` is not read as 1.1.
        document = yaml.load(text, Loader=yaml.BaseLoader)
    except yaml.YAMLError as exc:
        raise LockfileError(f"Malformed yarn lockfile {path}: {exc}") from exc

    if document is None:
        return []
    if not isinstance(document, dict):
        raise LockfileError(f"Malformed yarn lockfile {path}: expected a mapping")

    dependencies: list[Dependency] = []
    for key, entry in document.items():
        if key == "__metadata":
            continue
        if not isinstance(entry, dict):
            raise LockfileError(f"Malformed yarn lockfile {path}: entry `{key}` is not a mapping")

        resolution = entry.get("resolution")
        version = entry.get("version")
        if not isinstance(resolution, str) or not isinstance(version, str) or not version:
            raise LockfileError(f"Malformed yarn lockfile {path}: entry `{key}` lacks resolution/version")

        name, reference = split_descriptor(resolution)
        if not reference.startswith(NPM_PROTOCOL):
            logger.debug("skipping non-registry package %s", resolution)
            continue
        dependencies.append(Dependency(name=name, version=version))
    return dependencies


def classic_registry_name(descriptor: str) -> str | None:
    """Return the registry package a classic descriptor resolves to, or None.

    ``left-pad@^1.3.0`` is ``left-pad``; the alias
    ``string-width-cjs@npm:string-width@^4.2.0`` is ``string-width``. Git,
    GitHub shorthand, tarball URL and local path references contain a ``:``
    or ``/`` in their range, which semver ranges and dist-tags never do.
    """
    name, reference = split_descriptor(descriptor)
    if reference.startswith(NPM_PROTOCOL):
        target = reference[len(NPM_PROTOCOL) :]
        if target.find("@", 1) == -1:
            return target or None
        name, reference = split_descriptor(target)
    if ":" in reference or "/" in reference:
        return None
    return name


def _parse_classic(text: str) -> list[Dependency]:
    dependencies: list[Dependency] = []
    name: str | None = None

    for line in text.splitlines():
        if not line.strip() or line.lstrip().startswith("#"):
            continue

        if not line[0].isspace():
            if not line.endswith(":"):
                raise LockfileError(f"Malformed yarn lockfile header `{line}`")
            header = line[:-1].split(",")[0].strip().strip('"')
            name = classic_registry_name(header)
            if name is None:
                logger.debug("skipping non-registry package %s", header)
            continue

        match = _CLASSIC_VERSION_RE.match(line)
        # Only the two-space entry field; nested dependency maps are deeper.
        if match and name is not None and line.startswith("  ") and not line.startswith("   "):
            dependencies.append(Dependency(name=name, version=match.group("version")))
            name = None

    return dependencies
