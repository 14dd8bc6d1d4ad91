"""
Shared pytest fixtures for DylibCurator tests.

Provides:
- Settings pointing at a temporary scratch root
- Bundle directory and .ipa archive builders
"""

import zipfile
from pathlib import Path
from typing import Callable, Dict

import pytest

from dylib_curator.config.settings import CuratorSettings, get_settings
from dylib_curator.utils.logger import configure_logging

SCENARIO_FILES = {
    "Frameworks/libA.dylib": b"A" * 2048,
    "Frameworks/libB.dylib": b"B" * 4096,
    "Info.plist": b"<plist/>",
    "readme.txt": b"hello",
    "Resources/data.bin": b"\x00\x01\x02",
}


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    """Keep the console handler from writing into captured CLI output."""
    monkeypatch.setenv("DYLIB_CURATOR_LOG_TO_CONSOLE", "false")
    get_settings.cache_clear()
    configure_logging(get_settings())
    yield
    get_settings.cache_clear()


@pytest.fixture
def scratch_root(tmp_path: Path) -> Path:
    return tmp_path / "scratch"


@pytest.fixture
def settings(scratch_root: Path) -> CuratorSettings:
    """Settings with a temporary scratch root."""
    return CuratorSettings(scratch_root=scratch_root, max_workers=2, log_to_console=False)


@pytest.fixture
def make_bundle(tmp_path: Path) -> Callable[..., Path]:
    """Build a bundle directory from a {relative path: bytes} mapping."""

    def _make(files: Dict[str, bytes], name: str = "Sample.app") -> Path:
        root = tmp_path / "bundles" / name
        root.mkdir(parents=True)
        for relative, content in files.items():
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
        return root

    return _make


@pytest.fixture
def make_ipa(tmp_path: Path) -> Callable[..., Path]:
    """Build a zip container from a {member name: bytes} mapping."""

    def _make(files: Dict[str, bytes], name: str = "Sample.ipa") -> Path:
        archive_path = tmp_path / "archives" / name
        archive_path.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(archive_path, "w") as archive:
            for member, content in files.items():
                archive.writestr(member, content)
        return archive_path

    return _make


@pytest.fixture
def scenario_bundle(make_bundle) -> Path:
    """Two libraries and three incidental files."""
    return make_bundle(SCENARIO_FILES)
