"""Persisted verification record for the installed binary."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ValidationError

from cyverify.config.paths import STATE_FILE_NAME
from cyverify.errors import StateReadError, StateWriteError

logger = logging.getLogger(__name__)


class BinaryRecord(BaseModel):
    """Known verification status of the binary on disk."""

    version: Optional[str] = None
    verified: bool = False


class BinaryStateStore:
    """Reads and writes ``binary_state.json`` next to the binary.

    When no record exists yet the installed version is taken from the
    ``package.json`` shipped inside the binary.
    """

    def __init__(self, binary_dir: Path, package_json: Optional[Path] = None) -> None:
        self._binary_dir = binary_dir
        self._state_path = binary_dir / STATE_FILE_NAME
        self._package_json = package_json

    @property
    def state_path(self) -> Path:
        return self._state_path

    def _read_record(self) -> Optional[BinaryRecord]:
        if not self._state_path.exists():
            return None
        try:
            raw = self._state_path.read_text(encoding="utf-8")
            return BinaryRecord.model_validate_json(raw)
        except (OSError, ValidationError) as exc:
            raise StateReadError(f"Could not read verification state from {self._state_path}") from exc

    def _read_bundled_version(self) -> Optional[str]:
        if self._package_json is None or not self._package_json.exists():
            return None
        try:
            data = json.loads(self._package_json.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise StateReadError(f"Could not read binary package file {self._package_json}") from exc
        version = data.get("version") if isinstance(data, dict) else None
        return str(version) if version is not None else None

    def _installed_version(self) -> Optional[str]:
        record = self._read_record()
        if record is not None and record.version is not None:
            return record.version
        return self._read_bundled_version()

    def _is_verified(self) -> bool:
        record = self._read_record()
        return bool(record and record.verified)

    def _write(self, record: BinaryRecord) -> None:
        try:
            self._binary_dir.mkdir(parents=True, exist_ok=True)
            self._state_path.write_text(record.model_dump_json(indent=2), encoding="utf-8")
        except OSError as exc:
            raise StateWriteError(f"Could not write verification state to {self._state_path}") from exc

    def _clear(self) -> None:
        try:
            self._state_path.unlink(missing_ok=True)
        except OSError as exc:
            raise StateWriteError(f"Could not clear verification state at {self._state_path}") from exc

    async def get_installed_version(self) -> Optional[str]:
        return await asyncio.to_thread(self._installed_version)

    async def is_verified(self) -> bool:
        return await asyncio.to_thread(self._is_verified)

    async def write_verified(self, version: str) -> None:
        await asyncio.to_thread(self._write, BinaryRecord(version=version, verified=True))
        logger.debug("Marked binary %s as verified in %s", version, self._state_path)

    async def clear_verified(self) -> None:
        await asyncio.to_thread(self._clear)
        logger.debug("Cleared verification state at %s", self._state_path)
