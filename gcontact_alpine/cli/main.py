"""
Command-line interface for gcontact_alpine.

Provides CLI commands to export Google Contacts to the Alpine address book
and to keep the two in sync.

Usage:
    # Show help
    gcontact-alpine --help

    # Authenticate with Google
    gcontact-alpine auth

    # Create ~/.addressbook from Google Contacts
    gcontact-alpine init

    # Reconcile Google Contacts with ~/.addressbook
    gcontact-alpine sync
    gcontact-alpine sync --dry-run
    gcontact-alpine sync --prefer remote --push
"""

import sys
from pathlib import Path
from typing import NoReturn, Optional

import click

from gcontact_alpine import __version__
from gcontact_alpine.addressbook.codec import parse_report
from gcontact_alpine.addressbook.store import AddressBookFile
from gcontact_alpine.auth.google_auth import AuthenticationError, GoogleAuth
from gcontact_alpine.backup.manager import BackupManager
from gcontact_alpine.cli.formatters import show_summary
from gcontact_alpine.cli.prompts import ClickDecisionProvider
from gcontact_alpine.config.generator import save_config_file
from gcontact_alpine.config.loader import DEFAULT_CONFIG_FILE, ConfigError, ConfigLoader
from gcontact_alpine.config.settings import Settings
from gcontact_alpine.errors import (
    EXIT_CANCELLED,
    EXIT_NO_OPTION,
    AuthError,
    HomeNotFoundError,
    SyncError,
)
from gcontact_alpine.i18n.messages import MessageCatalog, MessageId
from gcontact_alpine.sync.conflict import Resolution
from gcontact_alpine.sync.engine import (
    CONFLICT_MODE_GLOBAL,
    SyncOrchestrator,
    SyncOutcome,
)
from gcontact_alpine.sync.source import GoogleContactSource
from gcontact_alpine.utils.logging import cleanup_old_logs, get_logger, setup_logging
from gcontact_alpine.utils.paths import home_dir, resolve_config_dir


def exit_with_error(catalog: MessageCatalog, error: SyncError) -> NoReturn:
    """Print the localized message for an error and exit with its code."""
    message = catalog.get(error.message_id)
    if error.detail:
        message = f"{message}: {error.detail}"
    click.echo(click.style(message, fg="red"), err=True)
    sys.exit(error.exit_code)


def make_auth(settings: Settings) -> GoogleAuth:
    """Create the authentication manager for the resolved settings."""
    return GoogleAuth(
        config_dir=settings.config_dir,
        client_secret_path=settings.client_secret_path,
        token_path=settings.token_path,
        auth_timeout=settings.auth_timeout,
    )


def build_orchestrator(
    settings: Settings,
    decisions: ClickDecisionProvider,
    conflict_mode: Optional[str] = None,
    default_resolution: Optional[Resolution] = None,
    push_local_changes: Optional[bool] = None,
) -> SyncOrchestrator:
    """Wire the orchestrator from settings, with command line overrides."""
    source = GoogleContactSource(
        make_auth(settings),
        page_size=settings.api_page_size,
        **settings.api_options(),
    )

    backup_manager = None
    if settings.backup_enabled and settings.backup_dir is not None:
        backup_manager = BackupManager(
            settings.backup_dir, retention_count=settings.backup_retention_count
        )

    return SyncOrchestrator(
        source=source,
        addressbook=AddressBookFile(settings.addressbook_path),
        decisions=decisions,
        conflict_mode=conflict_mode or settings.conflict_mode,
        default_resolution=default_resolution or settings.default_resolution,
        push_local_changes=(
            settings.push_local_changes
            if push_local_changes is None
            else push_local_changes
        ),
        backup_manager=backup_manager,
    )


def report_outcome(
    outcome: SyncOutcome, catalog: MessageCatalog, show_stats: bool = False
) -> None:
    """Print the outcome of a run and exit non-zero unless it succeeded."""
    for notice in outcome.notices:
        if notice == MessageId.FIELD_ERROR:
            skipped = outcome.stats.skipped_records
            click.echo(
                click.style(f"{catalog.get(notice)} ({skipped})", fg="yellow"),
                err=True,
            )
        else:
            click.echo(catalog.get(notice))

    if outcome.succeeded:
        if show_stats:
            show_summary(outcome)
        click.echo(click.style(catalog.get(outcome.message_id), fg="green"))
        return

    if outcome.cancelled:
        click.echo(catalog.get(MessageId.OP_CANCEL))
        sys.exit(EXIT_CANCELLED)

    message = catalog.get(outcome.message_id)
    if outcome.detail:
        message = f"{message}: {outcome.detail}"
    click.echo(click.style(message, fg="red"), err=True)
    sys.exit(outcome.exit_code)


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="gcontact-alpine")
@click.option(
    "--verbose", "-v", is_flag=True, help="Enable verbose output with detailed logging."
)
@click.option(
    "--config-dir",
    "-c",
    type=click.Path(exists=False, file_okay=False, dir_okay=True),
    envvar="GCONTACT_ALPINE_CONFIG_DIR",
    help="Configuration directory path (default: ~/.gcontact-alpine).",
)
@click.option(
    "--config-file",
    "-f",
    type=click.Path(exists=False, file_okay=True, dir_okay=False),
    envvar="GCONTACT_ALPINE_CONFIG_FILE",
    help="Configuration file path (default: ~/.gcontact-alpine/config.yaml).",
)
@click.option(
    "--addressbook",
    "-a",
    type=click.Path(exists=False, file_okay=True, dir_okay=False),
    help="Alpine address book path (default: ~/.addressbook).",
)
@click.option(
    "--locale",
    "-l",
    help="Message language such as en-US or ja-JP (default: from $LANG).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    config_dir: Optional[str],
    config_file: Optional[str],
    addressbook: Optional[str],
    locale: Optional[str],
) -> None:
    """
    Google Contacts to Alpine address book.

    Exports your Google Contacts to ~/.addressbook (init) and reconciles
    later changes between the two (sync).
    """
    ctx.ensure_object(dict)

    try:
        home = home_dir()
    except RuntimeError as e:
        exit_with_error(MessageCatalog.load(locale), HomeNotFoundError(str(e)))

    resolved_config_dir = resolve_config_dir(config_dir, home=home)
    resolved_config_file = (
        Path(config_file) if config_file else resolved_config_dir / DEFAULT_CONFIG_FILE
    )

    config = {}
    try:
        loader = ConfigLoader(config_dir=resolved_config_dir)
        config = loader.load_from_file(resolved_config_file)
        if config:
            loader.validate(config)
    except ConfigError as e:
        # Keep working with defaults
        click.echo(
            click.style(f"Warning: Configuration error: {e}", fg="yellow"), err=True
        )
        config = {}

    settings = Settings.from_config(
        config,
        home=home,
        config_dir=resolved_config_dir,
        verbose=verbose or None,
        addressbook_path=addressbook,
        locale=locale,
    )
    catalog = MessageCatalog.load(settings.locale)

    setup_logging(
        verbose=settings.verbose, log_dir=settings.log_dir, enable_file_logging=True
    )
    cleanup_old_logs(log_dir=settings.log_dir, keep_count=settings.log_retention_count)

    ctx.obj["settings"] = settings
    ctx.obj["catalog"] = catalog
    ctx.obj["config_file"] = resolved_config_file

    if ctx.invoked_subcommand is None:
        click.echo(click.style(catalog.get(MessageId.NO_OPTION), fg="red"), err=True)
        sys.exit(EXIT_NO_OPTION)


# =============================================================================
# Init Command
# =============================================================================


@cli.command("init")
@click.option(
    "--yes", "-y", is_flag=True, help="Overwrite an existing address book without asking."
)
@click.pass_context
def init_command(ctx: click.Context, yes: bool) -> None:
    """
    Create the address book from Google Contacts.

    Fetches every contact and writes a fresh address book. If the file
    already exists you are asked before it is replaced (a backup copy is
    kept).

    Examples:

        gcontact-alpine init

        gcontact-alpine --addressbook ~/mail/addressbook init --yes
    """
    logger = get_logger(__name__)
    settings: Settings = ctx.obj["settings"]
    catalog: MessageCatalog = ctx.obj["catalog"]

    logger.info(f"Exporting Google Contacts to {settings.addressbook_path}")

    orchestrator = build_orchestrator(
        settings, ClickDecisionProvider(catalog, assume_yes=yes)
    )
    outcome = orchestrator.run_init()
    report_outcome(outcome, catalog, show_stats=settings.verbose)


# =============================================================================
# Sync Command
# =============================================================================


@cli.command("sync")
@click.option(
    "--dry-run",
    "-n",
    is_flag=True,
    help="Show what would change without writing anything.",
)
@click.option(
    "--prefer",
    type=click.Choice([r.value for r in Resolution], case_sensitive=False),
    default=None,
    help="Resolve every conflict without asking (remote = Google, local = address book).",
)
@click.option(
    "--global-choice",
    "-g",
    is_flag=True,
    help="Ask once for all conflicts instead of once per contact.",
)
@click.option(
    "--push/--no-push",
    default=None,
    help="Push address book changes back to Google Contacts.",
)
@click.pass_context
def sync_command(
    ctx: click.Context,
    dry_run: bool,
    prefer: Optional[str],
    global_choice: bool,
    push: Optional[bool],
) -> None:
    """
    Reconcile Google Contacts with the address book.

    New Google contacts are added, entries that only exist in the address
    book are kept, and for every contact that differs you choose which
    version to keep.

    Examples:

        # Interactive
        gcontact-alpine sync

        # Preview
        gcontact-alpine sync --dry-run

        # Keep Google's version everywhere
        gcontact-alpine sync --prefer remote

        # Keep local edits and send them to Google
        gcontact-alpine sync --prefer local --push
    """
    logger = get_logger(__name__)
    settings: Settings = ctx.obj["settings"]
    catalog: MessageCatalog = ctx.obj["catalog"]

    logger.info(
        f"Syncing {settings.addressbook_path} (dry_run={dry_run}, prefer={prefer})"
    )

    orchestrator = build_orchestrator(
        settings,
        ClickDecisionProvider(catalog),
        conflict_mode=CONFLICT_MODE_GLOBAL if global_choice else None,
        default_resolution=Resolution(prefer.lower()) if prefer else None,
        push_local_changes=push,
    )
    outcome = orchestrator.run_sync(dry_run=dry_run)
    report_outcome(outcome, catalog, show_stats=dry_run or settings.verbose)


# =============================================================================
# Auth Command
# =============================================================================


@cli.command("auth")
@click.option(
    "--force",
    "-f",
    is_flag=True,
    help="Force re-authentication even if already authenticated.",
)
@click.pass_context
def auth_command(ctx: click.Context, force: bool) -> None:
    """
    Authenticate with Google.

    Opens a browser window to complete the OAuth flow and stores
    the token for future use.

    Examples:

        gcontact-alpine auth

        gcontact-alpine auth --force
    """
    logger = get_logger(__name__)
    settings: Settings = ctx.obj["settings"]
    catalog: MessageCatalog = ctx.obj["catalog"]
    auth = make_auth(settings)

    if not force and auth.is_authenticated():
        click.echo(click.style(catalog.get(MessageId.AUTH_ALREADY), fg="green"))
        return

    try:
        auth.authenticate(force_reauth=force)

    except FileNotFoundError:
        path = auth.client_secret_path
        click.echo(
            click.style(catalog.get(MessageId.AUTH_SECRET_MISSING, path=path), fg="red"),
            err=True,
        )
        click.echo("\n" + catalog.get(MessageId.AUTH_SETUP, path=path), err=True)
        sys.exit(AuthError.exit_code)

    except AuthenticationError as e:
        logger.error(f"Authentication failed: {e}")
        exit_with_error(catalog, AuthError(str(e)))

    email = auth.get_account_email()
    if email:
        message = catalog.get(MessageId.AUTH_SUCCESS_ACCOUNT, email=email)
    else:
        message = catalog.get(MessageId.AUTH_SUCCESS)
    click.echo(click.style(message, fg="green"))

    logger.info("Authentication completed")


# =============================================================================
# Clear-Auth Command
# =============================================================================


@cli.command("clear-auth")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt.")
@click.pass_context
def clear_auth_command(ctx: click.Context, yes: bool) -> None:
    """
    Remove the cached Google token.

    The next init or sync will open the browser to authenticate again.
    """
    settings: Settings = ctx.obj["settings"]
    catalog: MessageCatalog = ctx.obj["catalog"]
    auth = make_auth(settings)

    if not yes:
        prompt = catalog.get(MessageId.AUTH_CLEAR_CONFIRM, path=auth.token_path)
        click.confirm(prompt, abort=True)

    if auth.clear_credentials():
        click.echo(click.style(catalog.get(MessageId.AUTH_CLEARED), fg="green"))
    else:
        click.echo(catalog.get(MessageId.AUTH_NOT_STORED))


# =============================================================================
# Status Command
# =============================================================================


@cli.command("status")
@click.pass_context
def status_command(ctx: click.Context) -> None:
    """
    Show paths, authentication state and the address book size.

    Example:

        gcontact-alpine status
    """
    settings: Settings = ctx.obj["settings"]
    catalog: MessageCatalog = ctx.obj["catalog"]

    auth_status = make_auth(settings).get_auth_status()

    click.echo("=== gcontact-alpine Status ===\n")
    click.echo(f"Configuration directory: {auth_status['config_dir']}")

    secret_status = (
        "Found"
        if auth_status["client_secret_exists"]
        else click.style("Not found", fg="red")
    )
    click.echo(f"OAuth client secret: {secret_status}")

    if auth_status["authenticated"]:
        label = auth_status["email"] or "Authenticated"
        click.echo(f"Google account: {click.style(str(label), fg='green')}")
    elif auth_status["token_exists"]:
        click.echo(
            f"Google account: {click.style('Token expired or invalid', fg='yellow')}"
        )
    else:
        click.echo(f"Google account: {click.style('Not authenticated', fg='red')}")

    click.echo()

    book = AddressBookFile(settings.addressbook_path)
    click.echo(f"Address book: {book.path}")
    if book.exists():
        try:
            report = parse_report(book.read())
        except SyncError as e:
            exit_with_error(catalog, e)
        click.echo(f"  Entries: {len(report.contacts)}")
        if report.skipped:
            click.echo(
                click.style(f"  Malformed records: {len(report.skipped)}", fg="yellow")
            )
    else:
        click.echo("  Not created yet (run 'gcontact-alpine init')")

    if settings.backup_enabled and settings.backup_dir is not None:
        backups = BackupManager(settings.backup_dir).list_backups()
        latest = backups[0].name if backups else "None"
        click.echo(f"  Backups: {len(backups)} (latest: {latest})")

    click.echo()

    if not auth_status["client_secret_exists"]:
        click.echo(
            click.style("Setup required: OAuth client secret not found.", fg="yellow")
        )
        click.echo("Please download credentials from Google Cloud Console")
        click.echo(f"and save to: {auth_status['client_secret_path']}")
    elif not auth_status["authenticated"]:
        click.echo(click.style("Authentication required.", fg="yellow"))
        click.echo("  Run: gcontact-alpine auth")
    else:
        click.echo(click.style("Ready!", fg="green"))


# =============================================================================
# Restore Command
# =============================================================================


@cli.command("restore")
@click.argument(
    "backup",
    required=False,
    type=click.Path(exists=True, file_okay=True, dir_okay=False),
)
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt.")
@click.pass_context
def restore_command(ctx: click.Context, backup: Optional[str], yes: bool) -> None:
    """
    Restore the address book from a backup.

    Uses the newest backup unless BACKUP names one.
    """
    logger = get_logger(__name__)
    settings: Settings = ctx.obj["settings"]
    catalog: MessageCatalog = ctx.obj["catalog"]

    manager = BackupManager(
        settings.backup_dir or settings.config_dir / "backups",
        retention_count=settings.backup_retention_count,
    )

    if backup:
        backup_path = Path(backup)
    else:
        backups = manager.list_backups()
        if not backups:
            click.echo(
                click.style(catalog.get(MessageId.RESTORE_NO_BACKUPS), fg="yellow"), err=True
            )
            sys.exit(1)
        backup_path = backups[0]

    data = manager.load_backup(backup_path)
    if data is None:
        message = catalog.get(MessageId.RESTORE_UNREADABLE, path=backup_path)
        click.echo(click.style(message, fg="red"), err=True)
        sys.exit(1)

    if not yes:
        prompt = catalog.get(
            MessageId.RESTORE_CONFIRM, path=settings.addressbook_path, backup=backup_path.name
        )
        click.confirm(prompt, abort=True)

    book = AddressBookFile(settings.addressbook_path)
    try:
        if settings.backup_enabled and book.exists():
            # The replaced file becomes the newest backup, so a restore can be undone
            manager.create_backup(book.read())
        book.write(data)
    except SyncError as e:
        exit_with_error(catalog, e)

    logger.info(f"Restored {settings.addressbook_path} from {backup_path}")
    click.echo(
        click.style(catalog.get(MessageId.RESTORE_DONE, backup=backup_path.name), fg="green")
    )


# =============================================================================
# Init-Config Command
# =============================================================================


@cli.command("init-config")
@click.option(
    "--force",
    "-f",
    is_flag=True,
    help="Overwrite existing configuration file if it exists.",
)
@click.pass_context
def init_config_command(ctx: click.Context, force: bool) -> None:
    """
    Generate a default configuration file.

    Creates a configuration file with all available options documented
    and commented out.

    Examples:

        gcontact-alpine init-config

        gcontact-alpine init-config --force
    """
    logger = get_logger(__name__)
    config_file: Path = ctx.obj["config_file"]

    click.echo(f"Creating configuration file: {config_file}")

    success, error = save_config_file(config_file, overwrite=force)

    if success:
        click.echo(click.style("Configuration file created successfully!", fg="green"))
        click.echo(f"\nLocation: {config_file}")
        logger.info(f"Created configuration file: {config_file}")
    else:
        click.echo(click.style(f"Error: {error}", fg="red"), err=True)
        logger.error(f"Failed to create configuration file: {error}")
        sys.exit(1)


if __name__ == "__main__":
    cli()
