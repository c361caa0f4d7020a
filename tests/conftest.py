"""Shared fixtures: real temporary installations, mod stores and config dirs"""

from pathlib import Path

import pytest

from ctp_mod_manager.config.schema import EngineConfig

BASE_TEXT = "a\nb\nc\nd\ne\n"


def write_tree(root: Path, files: dict[str, str | bytes]) -> Path:
    """Create files under root from a {relative/path: content} mapping."""
    for relative, content in files.items():
        path = root.joinpath(*relative.split("/"))
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_bytes(content.encode("utf-8"))
    return root


@pytest.fixture
def engine_config(tmp_path) -> EngineConfig:
    config = EngineConfig(
        mods_dir=tmp_path / "store" / "Mods",
        backups_dir=tmp_path / "store" / "Backups",
    )
    config.mods_dir.mkdir(parents=True)
    return config


@pytest.fixture
def install_dir(tmp_path) -> Path:
    return write_tree(tmp_path / "CTP2", {
        "ctp2_data/default/gamedata/units.txt": BASE_TEXT,
        "ctp2_data/default/gamedata/readme.txt": "hello\n",
        "ctp2_program/ctp/ctp2.exe": b"MZ\x00\x01",
    })


@pytest.fixture
def make_mod(engine_config):
    """Create a stored mod from a {relative/path: content} mapping."""
    def _make(name: str, files: dict[str, str | bytes]) -> Path:
        return write_tree(engine_config.mod_path(name), files)
    return _make
