"""
cloudnuke CLI - Filter-Driven AWS Resource Destruction

Main entry point for the command-line interface.
"""

import signal
import sys
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Iterator, List, Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt

from . import __version__
from .core.config import NukeConfig, load_config, parse_duration
from .core.context import RunContext
from .core.engine import NukeRunner, ScopeInventory
from .core.exceptions import AWSClientError, ConfigError, InvalidDurationError
from .core.logging import LOG_LEVEL_ENV_VAR, setup_logging
from .core.region_manager import DEFAULT_REGION, RegionManager
from .core.registry import Registry
from .reporters.cli_reporter import CLIReporter
from .reporters.json_reporter import JSONReporter
from .resources import build_default_registry, build_defaults_registry


console = Console()

CONFIRMATION_WORD = "nuke"
CONFIRMATION_ATTEMPTS = 2

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def parse_duration_option(ctx, param, value: Optional[str]) -> Optional[timedelta]:
    """Parse a Go-style duration option; ``0s`` means "not set"."""
    if not value:
        return None
    try:
        duration = parse_duration(value)
    except InvalidDurationError as e:
        raise click.BadParameter(e.message)
    return duration or None


_SELECTION_OPTIONS = [
    click.option(
        "--region",
        "regions",
        multiple=True,
        help="Region to target (repeatable). Defaults to every enabled region.",
    ),
    click.option(
        "--exclude-region",
        "exclude_regions",
        multiple=True,
        help="Region to leave out (repeatable).",
    ),
    click.option(
        "--resource-type",
        "resource_types",
        multiple=True,
        help="Resource type to target (repeatable). Defaults to all.",
    ),
    click.option(
        "--exclude-resource-type",
        "exclude_resource_types",
        multiple=True,
        help="Resource type to leave out (repeatable).",
    ),
    click.option(
        "--list-resource-types",
        is_flag=True,
        help="List supported resource types and exit.",
    ),
    click.option(
        "--older-than",
        callback=parse_duration_option,
        help="Only target resources older than this (e.g. 24h, 7d, 1h30m).",
    ),
    click.option(
        "--newer-than",
        callback=parse_duration_option,
        help="Only target resources newer than this.",
    ),
    click.option(
        "--config",
        "config_path",
        type=click.Path(dir_okay=False),
        help="YAML file with per-resource-type include/exclude rules.",
    ),
    click.option(
        "--exclude-first-seen",
        is_flag=True,
        help="Do not read or write the cloud-nuke-first-seen tag.",
    ),
    click.option(
        "--profile",
        "-p",
        default=None,
        help="AWS profile name from ~/.aws/credentials",
    ),
    click.option(
        "--max-workers",
        default=10,
        type=int,
        show_default=True,
        help="Maximum regions inspected in parallel.",
    ),
    click.option(
        "--output-format",
        type=click.Choice(["table", "json"]),
        default="table",
        show_default=True,
        help="Result format on stdout.",
    ),
    click.option(
        "--output-file",
        default=None,
        help="Also write the JSON report to this file.",
    ),
    click.option(
        "--log-level",
        envvar=LOG_LEVEL_ENV_VAR,
        default="INFO",
        show_default=True,
        type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
        help="Log verbosity (also read from LOG_LEVEL).",
    ),
    click.option(
        "--log-file",
        default=None,
        help="Also write logs to this file.",
    ),
]


def selection_options(fn):
    """Attach the options shared by ``aws`` and ``inspect-aws``."""
    for option in reversed(_SELECTION_OPTIONS):
        fn = option(fn)
    return fn


@click.group()
@click.version_option(version=__version__, prog_name="cloudnuke")
def cli():
    """
    cloudnuke: Filter-Driven AWS Resource Destruction

    Discovers AWS resources matching your filters across regions and
    resource types, and deletes them in dependency order.
    """
    pass


@cli.command("aws")
@selection_options
@click.option(
    "--timeout",
    callback=parse_duration_option,
    help="Stop issuing deletes once this much time has passed (e.g. 2h).",
)
@click.option(
    "--dry-run",
    is_flag=True,
    default=False,
    help="List what would be deleted without deleting anything.",
)
@click.option(
    "--force",
    is_flag=True,
    default=False,
    help="Skip the confirmation prompt (dangerous!)",
)
@click.option(
    "--best-effort-describe",
    is_flag=True,
    help="During VPC teardown, treat failed describe calls as empty.",
)
def nuke_aws(**options):
    """
    Discover and delete AWS resources.

    Examples:

        # Preview everything in two regions
        cloudnuke aws --region us-east-1 --region eu-west-1 --dry-run

        # Delete unattached volumes older than a week, no prompt
        cloudnuke aws --resource-type ebs --older-than 7d --force

        # Everything except IAM roles, filtered by a config file
        cloudnuke aws --exclude-resource-type iam-role --config nuke.yaml
    """
    sys.exit(_run(options, nuke=True))


@cli.command("inspect-aws")
@selection_options
def inspect_aws(**options):
    """
    List the AWS resources a nuke would target, without deleting.

    Examples:

        cloudnuke inspect-aws --region us-east-1 --resource-type vpc
        cloudnuke inspect-aws --older-than 30d --output-format json
    """
    sys.exit(_run(options, nuke=False))


# Options defaults-aws does not expose
DEFAULTS_FIXED_OPTIONS = {
    "resource_types": (),
    "exclude_resource_types": (),
    "list_resource_types": False,
    "older_than": None,
    "newer_than": None,
    "config_path": None,
    "exclude_first_seen": True,
    "best_effort_describe": False,
    "output_format": "table",
    "output_file": None,
}


@cli.command("defaults-aws")
@click.option(
    "--region",
    "regions",
    multiple=True,
    help="Region to target (repeatable). Defaults to every enabled region.",
)
@click.option(
    "--exclude-region",
    "exclude_regions",
    multiple=True,
    help="Region to leave out (repeatable).",
)
@click.option(
    "--sg-only",
    is_flag=True,
    help="Only revoke the rules of default security groups; keep default VPCs.",
)
@click.option(
    "--profile",
    "-p",
    default=None,
    help="AWS profile name from ~/.aws/credentials",
)
@click.option(
    "--max-workers",
    default=10,
    type=int,
    show_default=True,
    help="Maximum regions inspected in parallel.",
)
@click.option(
    "--timeout",
    callback=parse_duration_option,
    help="Stop issuing deletes once this much time has passed (e.g. 2h).",
)
@click.option(
    "--dry-run",
    is_flag=True,
    default=False,
    help="List what would be deleted without deleting anything.",
)
@click.option(
    "--force",
    is_flag=True,
    default=False,
    help="Skip the confirmation prompt (dangerous!)",
)
@click.option(
    "--log-level",
    envvar=LOG_LEVEL_ENV_VAR,
    default="INFO",
    show_default=True,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Log verbosity (also read from LOG_LEVEL).",
)
@click.option(
    "--log-file",
    default=None,
    help="Also write logs to this file.",
)
def nuke_defaults(sg_only: bool, **options):
    """
    Delete default VPCs, or strip default security groups.

    Filter config files are not read; output is always a table.

    Examples:

        # Remove the default VPC from every enabled region
        cloudnuke defaults-aws --force

        # Keep default VPCs but revoke every default security group rule
        cloudnuke defaults-aws --sg-only --region eu-west-1
    """
    options.update(DEFAULTS_FIXED_OPTIONS)
    sys.exit(_run(options, nuke=True, registry=build_defaults_registry(sg_only)))


# =============================================================================
# Run
# =============================================================================


def _run(options: dict, nuke: bool, registry: Optional[Registry] = None) -> int:
    """Shared body of the run commands; returns the exit code."""
    setup_logging(level=options["log_level"], log_file=options["log_file"])
    # Keep stdout clean for JSON output
    out = console if options["output_format"] == "table" else Console(stderr=True)
    reporter = CLIReporter(out)
    if registry is None:
        registry = build_default_registry()

    if options["list_resource_types"]:
        reporter.print_resource_types(
            registry.names, [t.name for t in registry.global_types()]
        )
        return EXIT_OK

    dry_run = options.get("dry_run", False) or not nuke
    timeout = options.get("timeout")
    ctx = RunContext(timeout=timeout.total_seconds() if timeout else None)

    try:
        selected = registry.select(
            include=options["resource_types"], exclude=options["exclude_resource_types"]
        )
        config = _build_config(options)
        _warn_unknown_config_keys(reporter, config, registry)

        region_manager = RegionManager(
            profile=options["profile"], max_workers=options["max_workers"]
        )
        region_manager.base_client.validate_credentials()
        regions = _target_regions(region_manager, selected, options)

        runner = NukeRunner(selected, config, region_manager, ctx=ctx, dry_run=dry_run)
        title = "AWS Nuke" if nuke else "AWS Inspection"
        reporter.print_header(title, regions or ["global"], dry_run=nuke and dry_run)

        with _interrupts_cancel(ctx, out):
            inventories = _discover(runner, reporter, regions)
            total = reporter.report_inventory(runner.collector)

            if nuke and not dry_run and total:
                if not _confirm(out, options["force"], total):
                    out.print("\n[yellow]Nuke cancelled by user.[/yellow]")
                    return EXIT_OK
                runner.nuke(inventories)
            elif nuke:
                runner.nuke(inventories)
            else:
                runner.collector.complete()

        _output(reporter, runner, regions, options, dry_run, show_outcomes=nuke)

    except (AWSClientError, ConfigError) as e:
        reporter.print_error(str(e))
        return EXIT_FAILURE
    except KeyboardInterrupt:
        out.print("\n[yellow]Run interrupted by user.[/yellow]")
        return EXIT_INTERRUPTED

    if ctx.cancelled:
        reporter.print_warning("Run was interrupted; some resources were not attempted.")
        return EXIT_INTERRUPTED
    return EXIT_FAILURE if runner.collector.has_failures else EXIT_OK


def _build_config(options: dict) -> NukeConfig:
    config = load_config(options["config_path"]) if options["config_path"] else NukeConfig()
    now = datetime.now(timezone.utc)

    if options["older_than"]:
        config.add_exclude_after(now - options["older_than"])
    if options["newer_than"]:
        config.add_include_after(now - options["newer_than"])
    if options["exclude_first_seen"]:
        config.settings.exclude_first_seen = True
    if options.get("best_effort_describe"):
        config.settings.best_effort_describe = True
    return config


def _warn_unknown_config_keys(reporter: CLIReporter, config: NukeConfig, registry: Registry) -> None:
    unknown = config.unknown_resources(registry.names)
    if unknown:
        reporter.print_warning(
            f"Config has rules for unknown resource type(s): {', '.join(unknown)}"
        )


def _target_regions(
    region_manager: RegionManager,
    selected: Registry,
    options: dict,
) -> List[str]:
    """Resolve target regions; global-only selections still need one client region."""
    if not selected.regional() and not options["regions"]:
        return [DEFAULT_REGION]
    return region_manager.resolve_regions(
        include=options["regions"], exclude=options["exclude_regions"]
    )


def _discover(runner: NukeRunner, reporter: CLIReporter, regions: List[str]) -> List[ScopeInventory]:
    """Run discovery behind a spinner that tracks finished regions."""
    with reporter.create_progress() as progress:
        task = progress.add_task(
            f"Inspecting {len(regions)} region(s)...", total=len(regions) or None
        )

        def progress_callback(region: str, status: str) -> None:
            if status == "complete":
                progress.update(task, advance=1)
            elif status == "error":
                progress.update(task, advance=1)
                reporter.console.print(f"  [yellow]Error inspecting: {region}[/yellow]")

        runner.progress_callback = progress_callback
        return runner.discover(regions)


def _confirm(out: Console, force: bool, total: int) -> bool:
    """Ask the operator to type the confirmation word, unless forced."""
    if force:
        out.print(
            Panel(
                "[red bold]FORCE MODE[/red bold]\n"
                f"{total} resource(s) will be deleted WITHOUT confirmation!",
                border_style="red",
            )
        )
        return True

    out.print(
        Panel(
            f"[red bold]{total} resource(s) will be permanently deleted.[/red bold]\n"
            "This cannot be undone.",
            border_style="red",
        )
    )
    for attempt in range(1, CONFIRMATION_ATTEMPTS + 1):
        answer = Prompt.ask(
            f"[yellow]Type '{CONFIRMATION_WORD}' to confirm[/yellow]",
            console=out,
            default="",
            show_default=False,
        )
        if answer.strip().lower() == CONFIRMATION_WORD:
            return True
        if attempt < CONFIRMATION_ATTEMPTS:
            out.print("[yellow]Invalid input, try again.[/yellow]")
    return False


def _output(
    reporter: CLIReporter,
    runner: NukeRunner,
    regions: List[str],
    options: dict,
    dry_run: bool,
    show_outcomes: bool,
) -> None:
    collector = runner.collector
    output_file = None

    if options["output_format"] == "json":
        click.echo(JSONReporter().to_string(collector, regions, dry_run))
    elif show_outcomes:
        reporter.report_outcomes(collector)

    if options["output_file"]:
        output_file = JSONReporter(output_path=options["output_file"]).report(
            collector, regions, dry_run
        )

    reporter.print_completion_message(output_file)


@contextmanager
def _interrupts_cancel(ctx: RunContext, out: Console) -> Iterator[None]:
    """
    First Ctrl-C cancels the run context; a second one interrupts hard.

    In-flight calls finish and no new ones start after the first signal.
    """
    def handler(signum, frame):
        if ctx.cancelled:
            raise KeyboardInterrupt
        ctx.cancel()
        out.print(
            "\n[yellow]Interrupt received: finishing in-flight calls, "
            "no new deletes will start. Press Ctrl-C again to abort.[/yellow]"
        )

    previous = signal.signal(signal.SIGINT, handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


# =============================================================================
# Account Commands
# =============================================================================


@cli.command("regions")
@click.option(
    "--profile",
    "-p",
    default=None,
    help="AWS profile name from ~/.aws/credentials",
)
def list_regions(profile: Optional[str]):
    """List all enabled AWS regions."""
    try:
        region_manager = RegionManager(profile=profile)
        regions = region_manager.get_all_regions()
        CLIReporter(console).print_regions(regions)

    except AWSClientError as e:
        console.print(f"\n[red bold]Error:[/red bold] {str(e)}")
        sys.exit(1)


@cli.command("validate")
@click.option(
    "--profile",
    "-p",
    default=None,
    help="AWS profile name from ~/.aws/credentials",
)
@click.option(
    "--region",
    "-r",
    default=DEFAULT_REGION,
    help="AWS region to use for validation",
)
def validate_credentials(profile: Optional[str], region: str):
    """Validate AWS credentials and show account info."""
    try:
        manager = RegionManager(profile=profile, default_region=region)
        client = manager.base_client
        client.validate_credentials()
        account_id = client.get_account_id()

        console.print("\n[green bold]AWS credentials are valid![/green bold]")
        console.print(f"\n  Account ID: {account_id}")
        console.print(f"  Region: {region}")
        if profile:
            console.print(f"  Profile: {profile}")
        console.print()

    except AWSClientError as e:
        console.print(f"\n[red bold]Validation Failed:[/red bold] {str(e)}")
        sys.exit(1)


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
