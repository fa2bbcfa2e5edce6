import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, PositiveFloat, field_validator

from cyverify import __version__

DEFAULT_CONFIG_FILE = "cyverify.yaml"


class VerifySettings(BaseModel):
    """Verifier settings"""

    # Binary version this package expects to find installed
    expected_version: str = __version__

    # Install location
    cache_dir: Optional[Path] = None

    # Smoke test
    smoke_test_timeout: PositiveFloat = Field(
        default=30.0,
        description="Seconds to wait for the ping token or a process exit.",
    )

    # Virtual display
    xvfb_binary: str = "Xvfb"
    xvfb_display: str = ":99"
    xvfb_screen: str = "1280x1024x24"
    xvfb_startup_grace: float = Field(default=0.5, ge=0)

    # Logging
    log_level: str = "INFO"
    log_dir: Optional[Path] = None

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        return value.strip().upper()

    @field_validator("xvfb_display")
    @classmethod
    def _check_display(cls, value: str) -> str:
        if not value.startswith(":"):
            raise ValueError("xvfb_display must look like ':99'")
        return value

    @classmethod
    def load(
        cls,
        config_path: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "VerifySettings":
        """Load defaults, then the YAML file, then environment overrides."""
        if environ is None:
            load_dotenv()
            environ = os.environ

        if config_path is None:
            config_path = Path(environ.get("CYVERIFY_CONFIG") or DEFAULT_CONFIG_FILE)

        config: Dict[str, Any] = {}
        if config_path.exists():
            with open(config_path, "r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
            if not isinstance(raw, dict):
                raise ValueError(f"Config file must contain a top-level mapping: {config_path}")
            config.update(raw)

            # Nested sections map onto the flat fields
            xvfb = config.pop("xvfb", None) or {}
            for key in ("binary", "display", "screen", "startup_grace"):
                if key in xvfb:
                    config[f"xvfb_{key}"] = xvfb[key]

        if environ.get("CYPRESS_CACHE_FOLDER"):
            config["cache_dir"] = environ["CYPRESS_CACHE_FOLDER"]
        if environ.get("CYPRESS_EXPECTED_VERSION"):
            config["expected_version"] = environ["CYPRESS_EXPECTED_VERSION"]
        raw_timeout = environ.get("CYPRESS_VERIFY_TIMEOUT")
        if raw_timeout:
            # milliseconds, matching the npm package
            try:
                config["smoke_test_timeout"] = float(raw_timeout) / 1000
            except ValueError as exc:
                raise ValueError(
                    f"CYPRESS_VERIFY_TIMEOUT must be a number of milliseconds, got {raw_timeout!r}"
                ) from exc
        if environ.get("CYVERIFY_LOG_LEVEL"):
            config["log_level"] = environ["CYVERIFY_LOG_LEVEL"]

        return cls(**config)


@lru_cache(maxsize=None)
def get_settings() -> VerifySettings:
    """Settings loaded once from the process environment."""
    return VerifySettings.load()
