"""Verification gate for the installed Cypress binary.

``start`` is the public entry point. It resolves the executable, trusts a
cached "verified" record only when it matches the expected version, and
otherwise smoke tests the binary inside an Xvfb session when the host needs
one. The record is written after a passing smoke test and cleared after a
failing one.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Optional, Protocol, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from cyverify.config.paths import BinaryPaths, ExecutableLocation
from cyverify.config.settings import VerifySettings, get_settings
from cyverify.errors import (
    DisplayServerError,
    NotInstalledError,
    SmokeTestFailed,
    StateReadError,
    StateWriteError,
    VerificationError,
)
from cyverify.logging_config import VerifyLogger
from cyverify.platform_info import PlatformInfo
from cyverify.smoke_test import SmokeTestRunner
from cyverify.state import BinaryStateStore
from cyverify.xvfb import XvfbManager

logger = logging.getLogger(__name__)


class VerifyOptions(BaseModel):
    """Options accepted by :func:`start`."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    force: bool = False
    cypress_path: Optional[Path] = Field(default=None, alias="cypressPath")
    welcome_message: bool = Field(default=True, alias="welcomeMessage")

    @field_validator("cypress_path", mode="before")
    @classmethod
    def _blank_path_means_default(cls, value: Any) -> Any:
        # An empty path falls back to the cache location.
        if isinstance(value, str) and not value.strip():
            return None
        return value


class OutcomeStatus(str, Enum):
    ALREADY_VERIFIED = "already_verified"
    VERIFIED = "verified"
    FAILED = "failed"


@dataclass(frozen=True)
class VerificationOutcome:
    """Result of one verification attempt."""

    status: OutcomeStatus
    executable: Optional[Path] = None
    version: Optional[str] = None
    reason: Optional[str] = None
    diagnostics: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is not OutcomeStatus.FAILED

    @classmethod
    def failed(cls, error: VerificationError, executable: Optional[Path] = None) -> "VerificationOutcome":
        return cls(
            status=OutcomeStatus.FAILED,
            executable=executable,
            reason=error.message,
            diagnostics=error.diagnostics,
        )


class StateStore(Protocol):
    async def get_installed_version(self) -> Optional[str]: ...

    async def is_verified(self) -> bool: ...

    async def write_verified(self, version: str) -> None: ...

    async def clear_verified(self) -> None: ...


class DisplayServer(Protocol):
    def is_needed(self) -> bool: ...

    async def start(self) -> None: ...

    async def stop(self) -> None: ...

    def child_env(self, base: Optional[Mapping[str, str]] = None) -> dict: ...


class VerificationGate:
    """Decides whether the binary can be trusted and runs the smoke test if not."""

    def __init__(
        self,
        *,
        settings: VerifySettings,
        platform: PlatformInfo,
        locator: BinaryPaths,
        display: DisplayServer,
        runner: SmokeTestRunner,
        state_factory=None,
    ) -> None:
        self._settings = settings
        self._platform = platform
        self._locator = locator
        self._display = display
        self._runner = runner
        self._state_factory = state_factory or self._default_state_store
        self._log = VerifyLogger(__name__, plain=platform.is_ci)

    @classmethod
    def from_settings(
        cls,
        settings: VerifySettings,
        platform: Optional[PlatformInfo] = None,
    ) -> "VerificationGate":
        platform = platform or PlatformInfo.detect()
        return cls(
            settings=settings,
            platform=platform,
            locator=BinaryPaths(platform, settings.expected_version, cache_dir=settings.cache_dir),
            display=XvfbManager(
                platform,
                binary=settings.xvfb_binary,
                display=settings.xvfb_display,
                screen=settings.xvfb_screen,
                startup_grace=settings.xvfb_startup_grace,
            ),
            runner=SmokeTestRunner(default_timeout=settings.smoke_test_timeout),
        )

    def _default_state_store(self, location: ExecutableLocation) -> StateStore:
        return BinaryStateStore(
            location.binary_dir,
            package_json=self._locator.package_json_path(location.binary_dir),
        )

    async def run(self, options: Optional[VerifyOptions] = None) -> VerificationOutcome:
        options = options or VerifyOptions()
        expected = self._settings.expected_version

        location = self._locator.resolve(options.cypress_path)
        executable = location.executable

        exists = await asyncio.to_thread(executable.exists)
        if not exists:
            raise NotInstalledError(str(executable), platform=self._platform.describe())

        state = self._state_factory(location)
        try:
            installed = await state.get_installed_version()
            version_matches = installed == expected
            if not version_matches:
                logger.warning("Found binary version %s installed in: %s", installed, executable)
                logger.warning(
                    "Warning: Binary version %s does not match the expected package version %s",
                    installed,
                    expected,
                )
            verified = await state.is_verified()
        except StateReadError as err:
            err.platform = self._platform.describe()
            raise
        except OSError as exc:
            raise StateReadError(
                f"Could not read verification state for {executable}",
                platform=self._platform.describe(),
            ) from exc

        if not options.force and version_matches and verified:
            return VerificationOutcome(OutcomeStatus.ALREADY_VERIFIED, executable, expected)

        if not (version_matches and verified):
            logger.info("It looks like this is your first time using Cypress: %s", expected)

        await self._smoke_test(executable, state)

        try:
            await state.write_verified(expected)
        except StateWriteError as err:
            err.platform = self._platform.describe()
            raise

        if options.welcome_message:
            logger.info("Opening Cypress...")

        return VerificationOutcome(OutcomeStatus.VERIFIED, executable, expected)

    async def _smoke_test(self, executable: Path, state: StateStore) -> None:
        step = f"Verifying Cypress can run {executable}"
        self._log.step_start(step)
        started = time.monotonic()
        try:
            await self._run_with_display(executable)
        except SmokeTestFailed as err:
            err.platform = self._platform.describe()
            self._log.step_end(step, status="FAILED")
            try:
                await state.clear_verified()
            except StateWriteError:
                logger.exception("Could not clear verification state after a failed smoke test")
            raise
        except DisplayServerError as err:
            err.platform = self._platform.describe()
            self._log.step_end(step, status="FAILED")
            raise
        self._log.step_end(step, duration=time.monotonic() - started)

    async def _run_with_display(self, executable: Path) -> None:
        needs_display = self._display.is_needed()
        env = None
        try:
            if needs_display:
                try:
                    await self._display.start()
                except DisplayServerError:
                    raise
                except Exception as exc:
                    raise DisplayServerError(f"Could not start Xvfb: {exc}") from exc
                env = self._display.child_env()
            await self._runner.run(executable, self._settings.smoke_test_timeout, env=env)
        finally:
            if needs_display:
                await self._display.stop()


OptionsLike = Union[VerifyOptions, Mapping[str, Any], None]


async def start(
    options: OptionsLike = None,
    *,
    settings: Optional[VerifySettings] = None,
    gate: Optional[VerificationGate] = None,
) -> VerificationOutcome:
    """Verify the installed binary.

    Raises a :class:`~cyverify.errors.VerificationError` subclass when the
    binary is missing or does not pass the smoke test.
    """
    if options is None:
        options = VerifyOptions()
    elif not isinstance(options, VerifyOptions):
        options = VerifyOptions.model_validate(dict(options))

    if gate is None:
        gate = VerificationGate.from_settings(settings or get_settings())
    return await gate.run(options)
