"""Error types raised while verifying the installed binary."""

from __future__ import annotations

from typing import Optional


class VerificationError(RuntimeError):
    """Base class for every failure surfaced by ``verify.start``.

    ``str(error)`` renders the human readable message followed by the captured
    diagnostics and the platform line, which is what the CLI logs.
    """

    def __init__(
        self,
        message: str,
        *,
        diagnostics: Optional[str] = None,
        platform: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.diagnostics = diagnostics
        self.platform = platform

    def __str__(self) -> str:
        parts = [self.message]
        if self.diagnostics and self.diagnostics.strip():
            parts.append("----------")
            parts.append(self.diagnostics.strip())
            parts.append("----------")
        if self.platform:
            parts.append(self.platform)
        return "\n\n".join(parts)


class NotInstalledError(VerificationError):
    """No executable exists at the resolved path."""

    def __init__(self, executable: str, *, platform: Optional[str] = None) -> None:
        super().__init__(
            f"No version of Cypress is installed in: {executable}\n\n"
            "Please reinstall Cypress by running: cypress install",
            platform=platform,
        )
        self.executable = executable


class StateReadError(VerificationError):
    """The persisted verification record could not be read."""


class StateWriteError(VerificationError):
    """The persisted verification record could not be written or cleared."""


class DisplayServerError(VerificationError):
    """The virtual display server could not be started."""


class SmokeTestFailed(VerificationError):
    """The executable did not answer the smoke test ping."""

    def __init__(
        self,
        exit_code: Optional[int],
        stderr: str = "",
        *,
        message: Optional[str] = None,
        platform: Optional[str] = None,
    ) -> None:
        if message is None:
            message = (
                "Cypress failed to start.\n\n"
                "This is usually caused by a missing library or dependency.\n\n"
                "The error below should indicate which dependency is missing."
            )
            if exit_code is not None:
                message += f"\n\nExit code: {exit_code}"
        super().__init__(message, diagnostics=stderr, platform=platform)
        self.exit_code = exit_code
        self.stderr = stderr


class SmokeTestTimeout(SmokeTestFailed):
    """Neither the ping token nor a process exit arrived within the budget."""

    def __init__(self, timeout: float, stderr: str = "", *, platform: Optional[str] = None) -> None:
        super().__init__(
            None,
            stderr,
            message=f"Cypress verification timed out after {timeout:g} seconds.",
            platform=platform,
        )
        self.timeout = timeout
