"""Per-installation record of applied mods (mods.json).

Two on-disk forms are read:

    legacy:   ["modA", "modB"]
    current:  {"appliedMods": [{"name": "modA", "appliedDate": "<ISO-8601>"}]}

Only the current form is ever written.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

from ..logging_config import get_logger
from .errors import ModIOError, ModPermissionError, is_permission_error

logger = get_logger("ledger")


def utc_timestamp() -> str:
    """Current time as an ISO-8601 UTC string with millisecond precision."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class AppliedModEntry:
    """One applied mod and when it was applied"""
    name: str
    applied_date: str

    def to_dict(self) -> dict:
        return {"name": self.name, "appliedDate": self.applied_date}


@dataclass
class ModsLedger:
    """The applied-mods ledger of one installation"""
    applied_mods: list[AppliedModEntry] = field(default_factory=list)
    # True when read from the legacy bare-array form
    legacy: bool = False

    @property
    def names(self) -> list[str]:
        return [entry.name for entry in self.applied_mods]

    @classmethod
    def from_json_data(cls, data, migration_date: Optional[str] = None) -> "ModsLedger":
        """Build a ledger from parsed JSON in either form.

        Legacy names have no date; they get migration_date (default now).
        Unrecognised shapes give an empty ledger.
        """
        if isinstance(data, list):
            stamp = migration_date or utc_timestamp()
            return cls(
                applied_mods=[AppliedModEntry(str(name), stamp) for name in data if isinstance(name, str)],
                legacy=True,
            )

        entries = []
        if isinstance(data, dict) and isinstance(data.get("appliedMods"), list):
            for item in data["appliedMods"]:
                if isinstance(item, dict) and isinstance(item.get("name"), str):
                    entries.append(AppliedModEntry(item["name"], str(item.get("appliedDate", ""))))
                else:
                    logger.warning(f"Skipping malformed ledger entry: {item!r}")
        elif data is not None:
            logger.warning("Unrecognised mods ledger content, starting from an empty ledger")
        return cls(applied_mods=entries)

    def to_json_data(self) -> dict:
        return {"appliedMods": [entry.to_dict() for entry in self.applied_mods]}

    def merge(self, mod_names: Iterable[str], applied_date: Optional[str] = None) -> "ModsLedger":
        """Return a new ledger with mod_names appended.

        Previously tracked names keep their order and dates. Names are
        de-duplicated with the first occurrence winning, so re-applying
        a tracked mod does not add a second entry.
        """
        stamp = applied_date or utc_timestamp()
        merged: list[AppliedModEntry] = []
        seen: set[str] = set()

        for entry in [*self.applied_mods, *(AppliedModEntry(name, stamp) for name in mod_names)]:
            if entry.name in seen:
                continue
            seen.add(entry.name)
            merged.append(entry)

        return ModsLedger(applied_mods=merged)


def read_ledger(ledger_path: Path, migration_date: Optional[str] = None) -> ModsLedger:
    """Read a ledger file, tolerating absence and corruption.

    A missing, unreadable or unparsable file gives an empty ledger and
    never raises.
    """
    if not ledger_path.exists():
        return ModsLedger()

    try:
        data = json.loads(ledger_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning(f"Could not read {ledger_path}, treating it as empty: {e}")
        return ModsLedger()

    return ModsLedger.from_json_data(data, migration_date)


def write_ledger(ledger_path: Path, ledger: ModsLedger) -> None:
    """Write a ledger in the current form.

    Raises:
        ModPermissionError: If the OS denies the write
        ModIOError: On any other write failure
    """
    payload = json.dumps(ledger.to_json_data(), indent=2)
    try:
        ledger_path.write_text(payload, encoding="utf-8")
    except OSError as e:
        logger.error(f"Failed to write mods tracking file {ledger_path}: {e}")
        if is_permission_error(e):
            raise ModPermissionError.for_ledger(ledger_path) from e
        raise ModIOError(f"Failed to write mods tracking file: {e}") from e


def update_ledger(ledger_path: Path, applied: list[str], applied_date: Optional[str] = None) -> ModsLedger:
    """Read, merge newly applied mod names, and write back.

    Args:
        ledger_path: Location of mods.json
        applied: Names of mods applied successfully in this run, in order
        applied_date: Timestamp for new (and migrated legacy) entries

    Returns:
        The ledger as written
    """
    stamp = applied_date or utc_timestamp()
    existing = read_ledger(ledger_path, migration_date=stamp)
    if existing.legacy:
        logger.info(f"Upgrading legacy mods tracking file at {ledger_path}")
    updated = existing.merge(applied, stamp)
    write_ledger(ledger_path, updated)
    logger.info(f"Mods tracking file updated with {len(updated.applied_mods)} mods")
    return updated


def get_applied_mods(install_dir: Path, ledger_filename: str = "mods.json") -> list[str]:
    """Get the names of mods applied to an installation.

    Args:
        install_dir: The installation directory to check
        ledger_filename: Ledger file name inside the installation

    Returns:
        Mod names in ledger order, empty if there is no readable ledger
    """
    return read_ledger(Path(install_dir) / ledger_filename).names
