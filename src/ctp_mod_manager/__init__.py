"""CTP Mod Manager - apply text and binary mods to Call to Power installations.

The engine diffs each stored mod against an installation, rejects mods
whose line edits overlap, patches the installation's files in place and
records what was applied in the installation's mods.json.

Package Structure:
    app: Command line interface (typer)
    config: Configuration management, paths, schemas, and path validation
    core: Directory diffing, conflict validation, patching, ledger, backups

Quick Start:
    Run from command line::

        python -m ctp_mod_manager apply "C:/Games/CTP2" MyMod

    Or programmatically::

        from ctp_mod_manager.core import apply_mods_to_install
        apply_mods_to_install(Path("C:/Games/CTP2"), ["MyMod"])

Configuration:
    - Config file: %APPDATA%/CTPModManager/configuration.xml
    - Log file: %APPDATA%/CTPModManager/CTPModManager.log (rotated)
    - Mod store: %APPDATA%/CTPModManager/Mods
"""

__version__ = "1.0.0"
__app_name__ = "CTP Mod Manager"
