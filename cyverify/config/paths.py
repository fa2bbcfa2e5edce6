"""Install location resolution for the Cypress binary.

This module is the single source of truth for where the binary, its bundled
``package.json`` and the verification record live on each platform.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from cyverify.platform_info import PlatformInfo

STATE_FILE_NAME = "binary_state.json"

_EXECUTABLE_BY_SYSTEM = {
    "darwin": Path("Cypress.app", "Contents", "MacOS", "Cypress"),
    "linux": Path("Cypress"),
    "win32": Path("Cypress.exe"),
}

_PACKAGE_JSON_BY_SYSTEM = {
    "darwin": Path("Cypress.app", "Contents", "Resources", "app", "package.json"),
}
_DEFAULT_PACKAGE_JSON = Path("resources", "app", "package.json")


@dataclass(frozen=True)
class ExecutableLocation:
    """Resolved binary directory and the executable inside it."""

    binary_dir: Path
    executable: Path

    @property
    def state_path(self) -> Path:
        return self.binary_dir / STATE_FILE_NAME


class BinaryPaths:
    """Resolve well-known binary locations for a given platform."""

    def __init__(
        self,
        platform: PlatformInfo,
        version: str,
        cache_dir: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.platform = platform
        self.version = version
        self._cache_dir = cache_dir
        self._environ = os.environ if environ is None else environ

    @property
    def cache_dir(self) -> Path:
        """Root of the binary cache, honouring an explicit setting first."""
        if self._cache_dir is not None:
            return Path(self._cache_dir).expanduser()

        home = Path(self._environ.get("HOME") or Path.home())
        if self.platform.system == "darwin":
            return home / "Library" / "Caches" / "Cypress"
        if self.platform.system == "win32":
            local = self._environ.get("LOCALAPPDATA")
            base = Path(local) if local else home / "AppData" / "Local"
            return base / "Cypress" / "Cache"

        xdg = self._environ.get("XDG_CACHE_HOME")
        return (Path(xdg) if xdg else home / ".cache") / "Cypress"

    def default_binary_dir(self) -> Path:
        return self.cache_dir / self.version / "Cypress"

    def executable_path(self, binary_dir: Path) -> Path:
        relative = _EXECUTABLE_BY_SYSTEM.get(self.platform.system, _EXECUTABLE_BY_SYSTEM["linux"])
        return binary_dir / relative

    def package_json_path(self, binary_dir: Path) -> Path:
        return binary_dir / _PACKAGE_JSON_BY_SYSTEM.get(self.platform.system, _DEFAULT_PACKAGE_JSON)

    def resolve(self, override_dir: Optional[str | Path] = None) -> ExecutableLocation:
        """Locate the binary, using *override_dir* instead of the cache when given.

        Relative overrides are interpreted against the current directory.
        """
        if override_dir:
            candidate = Path(override_dir).expanduser()
            binary_dir = candidate if candidate.is_absolute() else Path.cwd() / candidate
        else:
            binary_dir = self.default_binary_dir()
        return ExecutableLocation(binary_dir=binary_dir, executable=self.executable_path(binary_dir))
