"""Tests for the local mod store"""

import zipfile

import pytest

from ctp_mod_manager.core.errors import InstallValidationError, ModIOError
from ctp_mod_manager.core.mod_library import ModLibrary, find_game_roots, has_scenario_structure

from conftest import write_tree


@pytest.fixture
def library(engine_config):
    return ModLibrary(engine_config)


def test_import_directory_with_nested_game_roots(library, tmp_path):
    source = write_tree(tmp_path / "Pack", {
        "ModOne/ctp2_data/default/gamedata/units.txt": "one\n",
        "ModTwo/ctp2_data/default/gamedata/units.txt": "two\n",
        "readme.txt": "pack notes\n",
    })

    assert library.import_mod(source) == ["ModOne", "ModTwo"]
    assert library.list_mods() == ["ModOne", "ModTwo"]
    assert (library.mods_dir / "ModTwo" / "ctp2_data" / "default" / "gamedata" / "units.txt").exists()


def test_import_zip_uses_archive_name_for_top_level_root(library, tmp_path):
    archive = tmp_path / "Balance.zip"
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("ctp2_data/default/gamedata/units.txt", "balanced\n")

    assert library.import_mod(archive) == ["Balance"]
    assert library.list_mods() == ["Balance"]
    assert not (library.mods_dir / ".staging").exists()


def test_import_scenario_folder_whole(library, tmp_path):
    source = write_tree(tmp_path / "Rome", {"scen0000/scenario.txt": "Rome\n"})
    assert has_scenario_structure(source)
    assert find_game_roots(source) == [source]
    assert library.import_mod(source) == ["Rome"]


def test_import_rejects_missing_unsupported_and_corrupt(library, tmp_path):
    with pytest.raises(InstallValidationError):
        library.import_mod(tmp_path / "nothing")

    text_file = tmp_path / "mod.txt"
    text_file.write_text("x")
    with pytest.raises(InstallValidationError, match="Unsupported mod file"):
        library.import_mod(text_file)

    corrupt = tmp_path / "broken.zip"
    corrupt.write_bytes(b"not a zip")
    with pytest.raises(ModIOError, match="corrupted"):
        library.import_mod(corrupt)


def test_remove_mod(library, make_mod):
    make_mod("Old", {"ctp2_data/x.txt": "x"})
    assert library.remove_mod("Old") is True
    assert library.remove_mod("Old") is False
    assert library.list_mods() == []
