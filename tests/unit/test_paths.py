"""Tests for binary location resolution."""

from pathlib import Path

import pytest

from cyverify.config.paths import BinaryPaths
from cyverify.platform_info import PlatformInfo

pytestmark = pytest.mark.unit


def _paths(system, environ=None, cache_dir=None):
    platform = PlatformInfo(system=system, release="test")
    return BinaryPaths(platform, "1.2.3", cache_dir=cache_dir, environ=environ or {"HOME": "/home/u"})


@pytest.mark.parametrize(
    "system, environ, expected",
    [
        ("darwin", {"HOME": "/Users/u"}, Path("/Users/u/Library/Caches/Cypress")),
        ("linux", {"HOME": "/home/u"}, Path("/home/u/.cache/Cypress")),
        ("linux", {"HOME": "/home/u", "XDG_CACHE_HOME": "/xdg"}, Path("/xdg/Cypress")),
        ("win32", {"HOME": "C:/u", "LOCALAPPDATA": "C:/local"}, Path("C:/local/Cypress/Cache")),
    ],
)
def test_default_cache_dir(system, environ, expected):
    assert _paths(system, environ).cache_dir == expected


def test_explicit_cache_dir_wins(tmp_path):
    assert _paths("linux", cache_dir=tmp_path).cache_dir == tmp_path


@pytest.mark.parametrize(
    "system, relative",
    [
        ("darwin", Path("Cypress.app/Contents/MacOS/Cypress")),
        ("linux", Path("Cypress")),
        ("win32", Path("Cypress.exe")),
    ],
)
def test_executable_inside_default_binary_dir(system, relative, tmp_path):
    location = _paths(system, cache_dir=tmp_path).resolve()
    assert location.binary_dir == tmp_path / "1.2.3" / "Cypress"
    assert location.executable == location.binary_dir / relative


def test_override_dir_replaces_default(tmp_path):
    location = _paths("linux", cache_dir=tmp_path / "cache").resolve(tmp_path / "custom")
    assert location.binary_dir == tmp_path / "custom"
    assert location.executable == tmp_path / "custom" / "Cypress"
    assert location.state_path == tmp_path / "custom" / "binary_state.json"


def test_relative_override_uses_cwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    location = _paths("linux").resolve("custom/path/to/binary")
    assert location.binary_dir == tmp_path / "custom" / "path" / "to" / "binary"


def test_package_json_location():
    darwin = _paths("darwin")
    linux = _paths("linux")
    assert darwin.package_json_path(Path("/b")) == Path("/b/Cypress.app/Contents/Resources/app/package.json")
    assert linux.package_json_path(Path("/b")) == Path("/b/resources/app/package.json")
