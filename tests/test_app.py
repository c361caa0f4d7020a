"""Tests for the command line interface"""

import json

import pytest
from typer.testing import CliRunner

from ctp_mod_manager.app import app

from conftest import write_tree

UNITS = "ctp2_data/default/gamedata/units.txt"


@pytest.fixture
def cli(tmp_path):
    runner = CliRunner()
    config_dir = tmp_path / "config"

    def invoke(*args):
        return runner.invoke(app, ["--config-dir", str(config_dir), *map(str, args)])
    return invoke


@pytest.fixture
def stored_mod(cli, tmp_path):
    source = write_tree(tmp_path / "Balance", {UNITS: "a\nB\nc\nd\ne\n"})
    result = cli("mods", "import", source)
    assert result.exit_code == 0, result.output
    return "Balance"


def test_import_and_list_mods(cli, stored_mod):
    result = cli("mods", "list")
    assert result.exit_code == 0
    assert "Balance" in result.output


def test_apply_and_show_applied(cli, stored_mod, install_dir):
    result = cli("apply", install_dir, stored_mod)
    assert result.exit_code == 0, result.output
    assert "Applied Balance" in result.output

    data = json.loads((install_dir / "mods.json").read_text())
    assert data["appliedMods"][0]["name"] == "Balance"

    result = cli("applied", install_dir)
    assert result.output.strip() == "Balance"


def test_diff_lists_changes_without_applying(cli, stored_mod, install_dir):
    result = cli("diff", install_dir, stored_mod)
    assert result.exit_code == 0, result.output
    assert UNITS in result.output
    assert "replace 2-2" in result.output
    assert not (install_dir / "mods.json").exists()


def test_apply_to_invalid_installation_exits_with_error(cli, stored_mod, tmp_path):
    (tmp_path / "notgame").mkdir()
    result = cli("apply", tmp_path / "notgame", stored_mod)
    assert result.exit_code == 1
    assert "Invalid installation directory" in result.output


def test_installs_add_list_remove(cli, install_dir):
    assert cli("installs", "add", install_dir).exit_code == 0
    result = cli("installs", "list")
    assert "CTP2 (CTP2)" in result.output
    assert cli("installs", "remove", install_dir).exit_code == 0
    assert "No installations registered." in cli("installs", "list").output


def test_backup_create_list_delete(cli, install_dir, tmp_path):
    result = cli("backup", "create", install_dir)
    assert result.exit_code == 0, result.output

    backups = list((tmp_path / "config" / "InstallationBackups").glob("*.zip"))
    assert len(backups) == 1
    assert backups[0].name in cli("backup", "list").output

    assert cli("backup", "delete", backups[0]).exit_code == 0
    assert "No backups found." in cli("backup", "list").output
