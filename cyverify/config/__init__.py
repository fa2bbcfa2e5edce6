"""Configuration for the verifier.

Settings come from defaults, an optional YAML file and environment variables;
install locations are resolved by :class:`BinaryPaths`.
"""

from .paths import BinaryPaths, ExecutableLocation
from .settings import VerifySettings, get_settings

__all__ = [
    "BinaryPaths",
    "ExecutableLocation",
    "VerifySettings",
    "get_settings",
]
