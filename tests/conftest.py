"""Shared pytest configuration and fixtures.

The verifier never touches a real binary in unit tests: processes are faked
with ``asyncio.StreamReader`` pairs and the state store and display server
are replaced with recording doubles.
"""

import asyncio
import sys
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import pytest

from cyverify.config.paths import BinaryPaths
from cyverify.config.settings import VerifySettings
from cyverify.platform_info import PlatformInfo
from cyverify.smoke_test import SmokeTestRunner
from cyverify.verify import VerificationGate

# ===== Project settings =====

PROJECT_ROOT = Path(__file__).parent.parent

PACKAGE_VERSION = "1.2.3"


# ===== Test doubles =====


class FakeProcess:
    """Stand-in for ``asyncio.subprocess.Process``."""

    def __init__(
        self,
        *,
        stdout: Iterable[str] = (),
        stderr: Iterable[str] = (),
        returncode: int = 0,
        close: bool = True,
    ) -> None:
        self.pid = 4242
        self.stdout = asyncio.StreamReader()
        self.stderr = asyncio.StreamReader()
        for chunk in stdout:
            self.stdout.feed_data(chunk.encode())
        for chunk in stderr:
            self.stderr.feed_data(chunk.encode())
        self.returncode: Optional[int] = None
        self.killed = False
        self.terminated = False
        self._exited = asyncio.Event()
        if close:
            self._close(returncode)

    def _close(self, code: int) -> None:
        self.stdout.feed_eof()
        self.stderr.feed_eof()
        self.returncode = code
        self._exited.set()

    async def wait(self) -> int:
        await self._exited.wait()
        return self.returncode

    def kill(self) -> None:
        self.killed = True
        self._close(-9)

    def terminate(self) -> None:
        self.terminated = True
        self._close(-15)


class FakeSpawner:
    """Records spawn calls and hands out a prepared process."""

    def __init__(self, process: Any = None, events: Optional[List[str]] = None, error: Optional[BaseException] = None):
        self.process = process
        self.events = events if events is not None else []
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def __call__(self, program: str, *args: str, **kwargs: Any) -> Any:
        self.events.append("spawn")
        self.calls.append({"program": program, "args": list(args), "kwargs": kwargs})
        if self.error is not None:
            raise self.error
        return self.process


class FakeStateStore:
    """In-memory state store that counts writes and clears."""

    def __init__(
        self,
        version: Optional[str] = PACKAGE_VERSION,
        verified: bool = False,
        read_error: Optional[BaseException] = None,
        version_error: Optional[BaseException] = None,
    ) -> None:
        self.version = version
        self.verified = verified
        self.read_error = read_error
        self.version_error = version_error
        self.writes: List[str] = []
        self.clears = 0

    async def get_installed_version(self) -> Optional[str]:
        if self.version_error is not None:
            raise self.version_error
        return self.version

    async def is_verified(self) -> bool:
        if self.read_error is not None:
            raise self.read_error
        return self.verified

    async def write_verified(self, version: str) -> None:
        self.writes.append(version)

    async def clear_verified(self) -> None:
        self.clears += 1


class FakeDisplay:
    """Display server double that records lifecycle calls."""

    def __init__(self, needed: bool = False, start_error: Optional[BaseException] = None, events=None):
        self.needed = needed
        self.start_error = start_error
        self.events = events if events is not None else []

    def is_needed(self) -> bool:
        return self.needed

    async def start(self) -> None:
        self.events.append("start")
        if self.start_error is not None:
            raise self.start_error

    async def stop(self) -> None:
        self.events.append("stop")

    def child_env(self, base=None) -> Dict[str, str]:
        return {"DISPLAY": ":99"}


# ===== Fixtures =====


@pytest.fixture
def darwin_platform() -> PlatformInfo:
    return PlatformInfo(system="darwin", release="test release")


@pytest.fixture
def linux_platform() -> PlatformInfo:
    return PlatformInfo(system="linux", release="test release")


@pytest.fixture
def settings(tmp_path) -> VerifySettings:
    return VerifySettings(
        expected_version=PACKAGE_VERSION,
        cache_dir=tmp_path / "cache",
        smoke_test_timeout=1.0,
    )


@pytest.fixture
def make_process():
    """Factory for fake processes; call it inside the running event loop."""
    return FakeProcess


@pytest.fixture
def events() -> List[str]:
    return []


@pytest.fixture
def install_binary(settings, darwin_platform):
    """Create an executable file where the locator expects it."""

    def _install(binary_dir: Optional[Path] = None) -> Path:
        paths = BinaryPaths(darwin_platform, settings.expected_version, cache_dir=settings.cache_dir)
        location = paths.resolve(binary_dir)
        location.executable.parent.mkdir(parents=True, exist_ok=True)
        location.executable.write_text("#!/bin/sh\n")
        return location.executable

    return _install


@pytest.fixture
def build_gate(settings, darwin_platform, events):
    """Assemble a gate wired to fakes; returns ``(gate, spawner, state, display)``."""

    def _build(
        *,
        process: Any = None,
        state: Optional[FakeStateStore] = None,
        display: Optional[FakeDisplay] = None,
        platform: Optional[PlatformInfo] = None,
        spawn_error: Optional[BaseException] = None,
    ):
        platform = platform or darwin_platform
        state = state or FakeStateStore()
        display = display or FakeDisplay(events=events)
        spawner = FakeSpawner(process, events=events, error=spawn_error)
        gate = VerificationGate(
            settings=settings,
            platform=platform,
            locator=BinaryPaths(platform, settings.expected_version, cache_dir=settings.cache_dir),
            display=display,
            runner=SmokeTestRunner(spawn=spawner, token_factory=lambda: "222"),
            state_factory=lambda location: state,
        )
        return gate, spawner, state, display

    return _build


@pytest.fixture
def fake_state():
    return FakeStateStore


@pytest.fixture
def fake_display(events):
    def _make(needed: bool = False, start_error: Optional[BaseException] = None) -> FakeDisplay:
        return FakeDisplay(needed=needed, start_error=start_error, events=events)

    return _make


@pytest.fixture
def fake_spawner(events):
    def _make(process: Any = None, error: Optional[BaseException] = None) -> FakeSpawner:
        return FakeSpawner(process, events=events, error=error)

    return _make


# ===== Pytest Hooks =====


def pytest_report_header(config):
    return [
        f"Project root: {PROJECT_ROOT}",
        f"Python: {sys.executable}",
    ]
