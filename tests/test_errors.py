"""Tests for error classification and user-facing messages"""

import errno

from ctp_mod_manager.core.errors import (
    AggregateModError,
    InstallValidationError,
    ModApplicationError,
    ModIOError,
    ModPermissionError,
    classify_os_error,
    is_permission_error,
)


def test_invalid_install_message():
    assert str(InstallValidationError.invalid_install("/games/ctp2")) == "Invalid installation directory: /games/ctp2"


def test_protected_directory_gets_specific_guidance():
    error = ModPermissionError.for_directory("C:\\Program Files\\Activision\\CTP2")
    assert str(error).startswith('Permission denied: Cannot write to "C:\\Program Files\\Activision\\CTP2"')
    assert "protected system folder" in str(error)


def test_other_directory_gets_generic_guidance():
    error = ModPermissionError.for_directory("/home/player/games/ctp2")
    assert str(error).startswith('Permission denied: Cannot write to "/home/player/games/ctp2"')
    assert "protected" not in str(error)


def test_classify_os_error():
    denied = OSError(errno.EACCES, "Access denied")
    assert is_permission_error(denied)
    assert isinstance(classify_os_error(denied, "/games/ctp2"), ModPermissionError)

    busy = OSError(errno.EBUSY, "Device busy")
    classified = classify_os_error(busy, "/games/ctp2", "Error copying mod files")
    assert isinstance(classified, ModIOError)
    assert str(classified).startswith("Error copying mod files: ")


def test_aggregate_lists_each_failure():
    error = AggregateModError([
        ModApplicationError("one", ModIOError("disk full")),
        ModApplicationError("two", ModIOError("busy")),
    ])
    assert str(error) == (
        "Multiple errors occurred during mod application:\n"
        'Failed to apply mod "one": disk full\n'
        'Failed to apply mod "two": busy'
    )
