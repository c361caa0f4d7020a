"""Command line entry point"""

from pathlib import Path
from typing import Optional

import typer

from . import __app_name__, __version__
from .config.manager import ConfigurationManager
from .core.backup_service import BackupService
from .core.directory_reader import read_directory
from .core.errors import InstallValidationError, ModManagerError
from .core.install_detector import describe_installation, is_valid_install
from .core.ledger import get_applied_mods
from .core.mod_applier import ModApplicationOrchestrator
from .core.mod_library import ModLibrary
from .logging_config import get_logger, setup_logging

app = typer.Typer(name="ctp-mod-manager", help="Call to Power mod manager", add_completion=False)
mods_app = typer.Typer(help="Manage the local mod store")
installs_app = typer.Typer(help="Manage registered installations")
backup_app = typer.Typer(help="Back up and restore installations")
app.add_typer(mods_app, name="mods")
app.add_typer(installs_app, name="installs")
app.add_typer(backup_app, name="backup")

logger = get_logger("app")


class CliState:
    """Configuration shared by every command of one invocation"""

    def __init__(self, config_dir: Optional[Path] = None):
        self.config_manager = ConfigurationManager(config_dir)
        self.config = self.config_manager.load_or_create()
        self.engine_config = self.config.engine_config()


def _state(ctx: typer.Context) -> CliState:
    return ctx.obj


def _fail(error: Exception) -> None:
    logger.error(str(error))
    typer.secho(f"Error: {error}", fg=typer.colors.RED, err=True)
    raise typer.Exit(1)


@app.callback()
def main_callback(
    ctx: typer.Context,
    debug: bool = typer.Option(False, "--debug", help="Log to the console at DEBUG level"),
    config_dir: Optional[Path] = typer.Option(None, "--config-dir", help="Configuration directory"),
):
    """Apply Call to Power mods to game installations."""
    setup_logging(debug=debug, log_dir=config_dir)
    logger.info(f"Starting {__app_name__} v{__version__}")
    ctx.obj = CliState(config_dir)


@app.command()
def apply(
    ctx: typer.Context,
    install_dir: Path = typer.Argument(..., help="Game installation directory"),
    mods: list[str] = typer.Argument(..., help="Mods to apply, in order"),
):
    """
    Apply mods from the store to an installation.

    Examples:
        ctp-mod-manager apply "C:/Games/CTP2" MedMod Apolyton
    """
    state = _state(ctx)
    orchestrator = ModApplicationOrchestrator(
        state.engine_config,
        backup_service=BackupService(state.engine_config),
        backup_before_apply=state.config.settings.create_backup_before_apply,
    )
    try:
        report = orchestrator.apply(install_dir, mods)
    except ModManagerError as e:
        _fail(e)

    for result in report.results:
        typer.echo(f"Applied {result.mod} ({result.change_count} files changed)")


@app.command()
def applied(
    ctx: typer.Context,
    install_dir: Path = typer.Argument(..., help="Game installation directory"),
):
    """List the mods recorded as applied to an installation."""
    names = get_applied_mods(install_dir, _state(ctx).engine_config.ledger_filename)
    if not names:
        typer.echo("No mods applied.")
        return
    for name in names:
        typer.echo(name)


@app.command()
def diff(
    ctx: typer.Context,
    install_dir: Path = typer.Argument(..., help="Game installation directory"),
    mod: str = typer.Argument(..., help="Mod to compare against the installation"),
):
    """Show the changes a mod would make without applying it."""
    state = _state(ctx)
    orchestrator = ModApplicationOrchestrator(state.engine_config)
    try:
        if not is_valid_install(install_dir):
            raise InstallValidationError.invalid_install(install_dir)
        mod_path = orchestrator.check_mod_directory(mod)
        target_dir = orchestrator.target_directory(install_dir, mod, mod_path)
        base = read_directory(target_dir) if target_dir.is_dir() else {}
        mod_changes = orchestrator.get_file_changes_to_apply_mod(mod, mod_path, base)
    except (ModManagerError, OSError) as e:
        _fail(e)

    if not mod_changes.file_changes:
        typer.echo("No changes.")
        return
    for file_change in mod_changes.file_changes:
        if file_change.is_binary:
            typer.echo(f"{file_change.file_name} (binary)")
            continue
        typer.echo(file_change.file_name)
        for group in file_change.line_change_groups:
            typer.echo(f"  {group.change_type.name.lower()} {group.start}-{group.end}")


@mods_app.command("list")
def mods_list(ctx: typer.Context):
    """List stored mods."""
    names = ModLibrary(_state(ctx).engine_config).list_mods()
    if not names:
        typer.echo("No mods stored.")
    for name in names:
        typer.echo(name)


@mods_app.command("import")
def mods_import(
    ctx: typer.Context,
    source: Path = typer.Argument(..., help="Mod directory or .zip archive"),
):
    """Import a mod into the store."""
    try:
        imported = ModLibrary(_state(ctx).engine_config).import_mod(source)
    except ModManagerError as e:
        _fail(e)
    for name in imported:
        typer.echo(f"Imported {name}")


@mods_app.command("remove")
def mods_remove(ctx: typer.Context, name: str = typer.Argument(..., help="Stored mod name")):
    """Delete a mod from the store."""
    try:
        removed = ModLibrary(_state(ctx).engine_config).remove_mod(name)
    except ModManagerError as e:
        _fail(e)
    if not removed:
        _fail(ModManagerError(f"Mod not found: {name}"))
    typer.echo(f"Removed {name}")


@installs_app.command("list")
def installs_list(ctx: typer.Context):
    """List registered installations."""
    installations = _state(ctx).config.installations
    if not installations:
        typer.echo("No installations registered.")
    for installation in installations:
        marker = "" if installation.exists() else " [missing]"
        typer.echo(f"{installation.display_name}: {installation.path}{marker}")


@installs_app.command("add")
def installs_add(ctx: typer.Context, install_dir: Path = typer.Argument(..., help="Game installation directory")):
    """Register an installation."""
    if not is_valid_install(install_dir):
        _fail(InstallValidationError.invalid_install(install_dir))
    installation = describe_installation(install_dir)
    if _state(ctx).config_manager.add_installation(installation):
        typer.echo(f"Added {installation.display_name}")
    else:
        typer.echo(f"Already registered: {install_dir}")


@installs_app.command("remove")
def installs_remove(ctx: typer.Context, install_dir: Path = typer.Argument(..., help="Game installation directory")):
    """Unregister an installation."""
    if not _state(ctx).config_manager.remove_installation(install_dir):
        _fail(ModManagerError(f"Installation not registered: {install_dir}"))
    typer.echo(f"Removed {install_dir}")


@backup_app.command("create")
def backup_create(ctx: typer.Context, install_dir: Path = typer.Argument(..., help="Game installation directory")):
    """Zip an installation into the backups directory."""
    try:
        record = BackupService(_state(ctx).engine_config).create_backup(install_dir)
    except ModManagerError as e:
        _fail(e)
    typer.echo(f"Created {record.filename} ({record.get_size_mb():.2f} MB)")


@backup_app.command("list")
def backup_list(ctx: typer.Context):
    """List backups, newest first."""
    records = BackupService(_state(ctx).engine_config).list_backups()
    if not records:
        typer.echo("No backups found.")
    for record in records:
        typer.echo(f"{record.filename}  {record.creation_date:%Y-%m-%d %H:%M:%S}  {record.get_size_mb():.2f} MB")


@backup_app.command("restore")
def backup_restore(
    ctx: typer.Context,
    backup_file: Path = typer.Argument(..., help="Backup archive"),
    install_dir: Path = typer.Argument(..., help="Installation to restore into"),
):
    """Replace an installation's contents with a backup."""
    try:
        BackupService(_state(ctx).engine_config).restore_backup(backup_file, install_dir)
    except ModManagerError as e:
        _fail(e)
    typer.echo(f"Restored {backup_file.name} to {install_dir}")


@backup_app.command("delete")
def backup_delete(ctx: typer.Context, backup_file: Path = typer.Argument(..., help="Backup archive")):
    """Delete a backup archive."""
    try:
        deleted = BackupService(_state(ctx).engine_config).delete_backup(backup_file)
    except ModManagerError as e:
        _fail(e)
    if not deleted:
        _fail(ModManagerError(f"Backup file not found: {backup_file}"))
    typer.echo(f"Deleted {backup_file.name}")


def main():
    """Application entry point."""
    app()


if __name__ == "__main__":
    main()
