"""Virtual display (Xvfb) lifecycle around the smoke test."""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

from cyverify.errors import DisplayServerError
from cyverify.platform_info import PlatformInfo

logger = logging.getLogger(__name__)

SpawnFn = Callable[..., Awaitable[Any]]


class XvfbManager:
    """Starts and stops an Xvfb server for hosts without a display."""

    def __init__(
        self,
        platform: PlatformInfo,
        *,
        binary: str = "Xvfb",
        display: str = ":99",
        screen: str = "1280x1024x24",
        startup_grace: float = 0.5,
        stop_timeout: float = 5.0,
        spawn: Optional[SpawnFn] = None,
        which: Callable[[str], Optional[str]] = shutil.which,
    ) -> None:
        self._platform = platform
        self._binary = binary
        self._display = display
        self._screen = screen
        self._startup_grace = startup_grace
        self._stop_timeout = stop_timeout
        self._spawn = spawn or asyncio.create_subprocess_exec
        self._which = which
        self._process: Any = None
        self._stderr_task: Optional[asyncio.Task] = None

    @property
    def display(self) -> str:
        return self._display

    @property
    def running(self) -> bool:
        return self._process is not None and self._process.returncode is None

    def is_needed(self) -> bool:
        """True on Linux hosts that have no ``DISPLAY``."""
        return self._platform.is_linux and not self._platform.display

    def child_env(self, base: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        env = dict(os.environ if base is None else base)
        env["DISPLAY"] = self._display
        return env

    async def start(self) -> None:
        if self.running:
            logger.debug("Xvfb already running on %s", self._display)
            return

        resolved = self._which(self._binary)
        if resolved is None:
            raise DisplayServerError(
                "Your system is missing the dependency: Xvfb\n\n"
                "Install Xvfb and run Cypress again.",
                diagnostics=f"'{self._binary}' was not found on PATH",
            )

        cmd = [resolved, self._display, "-screen", "0", self._screen, "-nolisten", "tcp"]
        logger.debug("Starting Xvfb: %s", " ".join(cmd))
        try:
            self._process = await self._spawn(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise DisplayServerError(f"Could not start Xvfb: {exc}") from exc

        await asyncio.sleep(self._startup_grace)

        if self._process.returncode is not None:
            stderr = ""
            if self._process.stderr is not None:
                stderr = (await self._process.stderr.read()).decode(errors="replace")
            code = self._process.returncode
            self._process = None
            raise DisplayServerError(
                f"Xvfb exited during startup with code {code}",
                diagnostics=stderr,
            )

        if self._process.stderr is not None:
            # Keep the pipe empty so a noisy server never blocks on write.
            self._stderr_task = asyncio.create_task(self._drain_stderr(self._process.stderr))

        logger.debug("Xvfb started on display %s", self._display)

    async def _drain_stderr(self, stream: asyncio.StreamReader) -> None:
        while True:
            line = await stream.readline()
            if not line:
                return
            logger.debug("Xvfb: %s", line.decode(errors="replace").rstrip())

    async def stop(self) -> None:
        process, self._process = self._process, None
        drain, self._stderr_task = self._stderr_task, None
        try:
            await self._stop_process(process)
        finally:
            if drain is not None:
                drain.cancel()
                await asyncio.gather(drain, return_exceptions=True)

    async def _stop_process(self, process: Any) -> None:
        if process is None or process.returncode is not None:
            return

        try:
            process.terminate()
        except ProcessLookupError:
            return

        try:
            await asyncio.wait_for(process.wait(), timeout=self._stop_timeout)
        except asyncio.TimeoutError:
            logger.warning("Xvfb did not exit within %.1fs; killing it", self._stop_timeout)
            try:
                process.kill()
            except ProcessLookupError:
                return
            await process.wait()

        logger.debug("Xvfb stopped")
