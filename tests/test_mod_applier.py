"""End-to-end tests for applying mods to an installation"""

import json

import pytest

from ctp_mod_manager.core import patch_applier
from ctp_mod_manager.core import mod_applier
from ctp_mod_manager.core.backup_service import BackupService
from ctp_mod_manager.core.errors import (
    AggregateModError,
    InstallValidationError,
    ModApplicationError,
    ModPermissionError,
)
from ctp_mod_manager.core.mod_applier import ModApplicationOrchestrator, apply_mods_to_install

UNITS = "ctp2_data/default/gamedata/units.txt"


def _units(install_dir):
    return install_dir.joinpath(*UNITS.split("/")).read_text(encoding="utf-8")


def _ledger_names(install_dir):
    data = json.loads((install_dir / "mods.json").read_text())
    return [entry["name"] for entry in data["appliedMods"]]


def test_invalid_installation_is_rejected(tmp_path, engine_config):
    (tmp_path / "empty").mkdir()
    with pytest.raises(InstallValidationError, match="Invalid installation directory: "):
        apply_mods_to_install(tmp_path / "empty", ["any"], engine_config)


def test_applies_text_binary_and_new_files(install_dir, engine_config, make_mod):
    make_mod("Balance", {
        UNITS: "a\nB\nc\nd\ne\n",
        "ctp2_data/default/gamedata/readme.txt": "hello\n",
        "ctp2_data/default/gamedata/extra.txt": "new file\n",
        "ctp2_data/default/graphics/pictures/upsp001.tga": b"\x00TGA",
    })

    report = apply_mods_to_install(install_dir, ["Balance"], engine_config)

    assert report.succeeded == ["Balance"]
    assert _units(install_dir) == "a\nB\nc\nd\ne\n"
    gamedata = install_dir / "ctp2_data" / "default" / "gamedata"
    assert (gamedata / "extra.txt").read_text(encoding="utf-8") == "new file\n"
    assert (install_dir / "ctp2_data/default/graphics/pictures/upsp001.tga").read_bytes() == b"\x00TGA"
    assert _ledger_names(install_dir) == ["Balance"]


def test_files_the_mod_does_not_mention_are_untouched(install_dir, engine_config, make_mod):
    make_mod("Sparse", {UNITS: "a\nB\nc\nd\ne\n"})
    apply_mods_to_install(install_dir, ["Sparse"], engine_config)
    assert (install_dir / "ctp2_data/default/gamedata/readme.txt").exists()
    assert (install_dir / "ctp2_program/ctp/ctp2.exe").exists()


def test_compatible_mods_apply_in_queue_order(install_dir, engine_config, make_mod):
    make_mod("First", {UNITS: "a\nB\nc\nd\ne\n"})
    make_mod("Second", {UNITS: "a\nb\nc\nD\ne\n"})

    report = apply_mods_to_install(install_dir, ["First", "Second"], engine_config)

    assert report.succeeded == ["First", "Second"]
    assert _units(install_dir) == "a\nB\nc\nD\ne\n"
    assert _ledger_names(install_dir) == ["First", "Second"]


def test_conflicting_mod_fails_and_is_not_recorded(install_dir, engine_config, make_mod):
    make_mod("First", {UNITS: "a\nB\nc\nd\ne\n"})
    make_mod("Rival", {UNITS: "a\nX\nc\nd\ne\n"})

    with pytest.raises(ModApplicationError) as excinfo:
        apply_mods_to_install(install_dir, ["First", "Rival"], engine_config)

    assert str(excinfo.value) == 'Failed to apply mod "Rival": The mods are incompatible with each other.'
    assert _units(install_dir) == "a\nB\nc\nd\ne\n"
    assert _ledger_names(install_dir) == ["First"]


def test_two_failures_raise_aggregate(install_dir, engine_config):
    with pytest.raises(AggregateModError) as excinfo:
        apply_mods_to_install(install_dir, ["Missing1", "Missing2"], engine_config)

    message = str(excinfo.value)
    assert message.startswith("Multiple errors occurred during mod application:\n")
    assert 'Failed to apply mod "Missing1": Mod directory not found' in message
    assert 'Failed to apply mod "Missing2": Mod directory not found' in message
    assert len(excinfo.value.errors) == 2


def test_run_collects_results_without_raising(install_dir, engine_config, make_mod):
    make_mod("Good", {UNITS: "a\nB\nc\nd\ne\n"})
    report = ModApplicationOrchestrator(engine_config).run(install_dir, ["Missing", "Good"])

    assert report.succeeded == ["Good"]
    assert [result.mod for result in report.failed] == ["Missing"]
    assert _ledger_names(install_dir) == ["Good"]


def test_mod_path_that_is_a_file_is_rejected(install_dir, engine_config):
    engine_config.mod_path("NotADir").write_text("oops")
    report = ModApplicationOrchestrator(engine_config).run(install_dir, ["NotADir"])
    assert isinstance(report.failed[0].error, InstallValidationError)
    assert "is not a directory" in str(report.failed[0].error)


def test_permission_denied_while_patching(install_dir, engine_config, make_mod, monkeypatch):
    make_mod("Locked", {UNITS: "a\nB\nc\nd\ne\n"})

    def deny(self):
        raise PermissionError(13, "Permission denied", str(self.file_path))

    monkeypatch.setattr(patch_applier.PatchSession, "write", deny)

    with pytest.raises(ModPermissionError) as excinfo:
        apply_mods_to_install(install_dir, ["Locked"], engine_config)

    assert str(excinfo.value).startswith(f'Permission denied: Cannot write to "{install_dir}"')


def test_ledger_write_failure_is_raised(install_dir, engine_config, make_mod, monkeypatch):
    make_mod("Good", {UNITS: "a\nB\nc\nd\ne\n"})

    def deny(ledger_path, applied, applied_date=None):
        raise ModPermissionError.for_ledger(ledger_path)

    monkeypatch.setattr(mod_applier, "update_ledger", deny)

    with pytest.raises(ModPermissionError, match="Permission denied: Cannot write mods tracking file"):
        apply_mods_to_install(install_dir, ["Good"], engine_config)


def test_ledger_failure_joins_mod_failures(install_dir, engine_config, monkeypatch):
    def deny(ledger_path, applied, applied_date=None):
        raise ModPermissionError.for_ledger(ledger_path)

    monkeypatch.setattr(mod_applier, "update_ledger", deny)

    with pytest.raises(AggregateModError) as excinfo:
        apply_mods_to_install(install_dir, ["Missing"], engine_config)
    assert str(excinfo.value).endswith("Permission denied: Cannot write mods tracking file")


def test_scenario_mod_lands_in_scenarios_folder(install_dir, engine_config, make_mod):
    make_mod("Rome", {
        "scen0000/scenario.txt": "Rome scenario\n",
        "scen0000/default/gamedata/units.txt": "legion\n",
    })

    apply_mods_to_install(install_dir, ["Rome"], engine_config)

    scenario = install_dir / "Scenarios" / "Rome" / "scen0000"
    assert (scenario / "scenario.txt").read_text(encoding="utf-8") == "Rome scenario\n"
    assert (scenario / "default" / "gamedata" / "units.txt").read_text(encoding="utf-8") == "legion\n"
    assert _units(install_dir) == "a\nb\nc\nd\ne\n"


def test_backup_before_apply(install_dir, engine_config, make_mod):
    make_mod("Balance", {UNITS: "a\nB\nc\nd\ne\n"})
    backups = BackupService(engine_config)
    orchestrator = ModApplicationOrchestrator(engine_config, backup_service=backups, backup_before_apply=True)

    orchestrator.apply(install_dir, ["Balance"])

    assert len(backups.list_backups()) == 1


@pytest.mark.parametrize("modded", [
    "a\nb\nX\nc\nd\ne\n",
    "a\nb\nd\ne\n",
    "X\nY\na\nb\nc\nd\ne\n",
    "a\ne\n",
    "a\nX\nb\nc\ne\nZ\n",
    "a\nB1\nB2\nB3\nc\nd\ne\n",
])
def test_patched_file_matches_the_mod_file(install_dir, engine_config, make_mod, modded):
    make_mod("Edit", {UNITS: modded})

    apply_mods_to_install(install_dir, ["Edit"], engine_config)

    assert install_dir.joinpath(*UNITS.split("/")).read_bytes() == modded.encode("utf-8")


def test_insert_and_delete_mods_combine(install_dir, engine_config, make_mod):
    make_mod("Insert", {UNITS: "a\nb\nX\nc\nd\ne\n"})
    make_mod("Delete", {UNITS: "a\nb\nc\nd\n"})

    report = apply_mods_to_install(install_dir, ["Insert", "Delete"], engine_config)

    assert report.succeeded == ["Insert", "Delete"]
    assert _units(install_dir) == "a\nb\nX\nc\nd\n"
