"""Tests for installation recognition"""

from ctp_mod_manager.config.schema import CtpVersion
from ctp_mod_manager.core.install_detector import describe_installation, detect_ctp_version, is_valid_install


def test_data_directory_marks_an_installation(install_dir):
    assert is_valid_install(install_dir)
    assert detect_ctp_version(install_dir) == CtpVersion.CTP2


def test_marker_match_ignores_case(tmp_path):
    (tmp_path / "CTP_DATA").mkdir()
    assert is_valid_install(tmp_path)
    assert detect_ctp_version(tmp_path) == CtpVersion.CTP1


def test_program_directory_alone_is_not_enough(tmp_path):
    (tmp_path / "ctp2_program").mkdir()
    assert not is_valid_install(tmp_path)


def test_missing_directory_is_not_an_installation(tmp_path):
    assert not is_valid_install(tmp_path / "missing")
    assert detect_ctp_version(tmp_path / "missing") == CtpVersion.UNKNOWN


def test_describe_installation(install_dir):
    installation = describe_installation(install_dir)
    assert installation.version == CtpVersion.CTP2
    assert installation.display_name == "CTP2 (CTP2)"
