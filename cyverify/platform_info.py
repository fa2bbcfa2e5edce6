"""Host platform probe injected into the verification components."""

from __future__ import annotations

import os
import platform
import sys
from dataclasses import dataclass
from typing import Mapping, Optional

# Environment variables set by common CI providers.
CI_ENV_VARS = (
    "CI",
    "CONTINUOUS_INTEGRATION",
    "BUILD_NUMBER",
    "GITHUB_ACTIONS",
    "GITLAB_CI",
    "CIRCLECI",
    "TRAVIS",
    "JENKINS_URL",
    "BUILDKITE",
    "TEAMCITY_VERSION",
    "TF_BUILD",
)

_FALSY = {"", "0", "false", "no", "off"}


def _normalize_system(name: str) -> str:
    if name.startswith("linux"):
        return "linux"
    if name.startswith(("win32", "cygwin", "msys")):
        return "win32"
    return name


@dataclass(frozen=True)
class PlatformInfo:
    """Snapshot of the OS facts the verifier depends on."""

    system: str
    release: str
    display: Optional[str] = None
    is_ci: bool = False

    @property
    def is_linux(self) -> bool:
        return self.system == "linux"

    def describe(self) -> str:
        return f"Platform: {self.system} ({self.release})"

    @classmethod
    def detect(cls, environ: Optional[Mapping[str, str]] = None) -> "PlatformInfo":
        """Build a snapshot from the running interpreter and environment."""
        env = os.environ if environ is None else environ
        is_ci = any(env.get(name, "").strip().lower() not in _FALSY for name in CI_ENV_VARS)
        return cls(
            system=_normalize_system(sys.platform),
            release=platform.release(),
            display=env.get("DISPLAY") or None,
            is_ci=is_ci,
        )
