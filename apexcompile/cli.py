"""
CLI interface for apexcompile.

Provides commands to compile every Apex class and trigger in an org and to
inspect what a compile would stage.

Org access goes through the sf CLI, which must already be authenticated
against the target org.
"""

import json
import time
from pathlib import Path

import click

from apexcompile import __version__
from apexcompile.errors import ApexCompileError, ConfigError
from apexcompile.schemas import UnitKind
from apexcompile.utils import (
    console,
    format_duration,
    print_error,
    print_info,
    print_success,
    setup_logging,
)


@click.group()
@click.version_option(version=__version__, prog_name="apexcompile")
@click.option("--config", "config_path", type=click.Path(path_type=Path), help="Path to config.yaml")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx, config_path: Path | None, verbose: bool):
    """
    apexcompile - Check-only compile of Apex classes and triggers.

    Stages every class and trigger into a Tooling API MetadataContainer
    and validates them with a check-only ContainerAsyncRequest.
    """
    from apexcompile.config import load_config

    ctx.ensure_object(dict)
    try:
        config = load_config(config_path)
    except ConfigError as e:
        click.echo(f"✗ Invalid configuration: {e}", err=True)
        raise SystemExit(1)

    if verbose:
        config.log_level = "DEBUG"

    setup_logging(config.log_level, config.log_format, config.log_file)
    ctx.obj["config"] = config


def _resolve_config(ctx, **overrides):
    try:
        return ctx.obj["config"].merged(**overrides)
    except ConfigError as e:
        raise click.UsageError(str(e))


def _client(config):
    from apexcompile.tooling import ToolingClient

    return ToolingClient(
        target_org=config.target_org,
        api_version=config.api_version,
        sf_bin=config.sf_bin,
    )


@main.command("compile")
@click.option("--target-org", "-o", help="sf alias or username of the org (default: sf default org)")
@click.option("--concurrency", type=int, help="Members staged concurrently per batch [default: 10]")
@click.option("--poll-interval", type=float, help="Seconds between status reads [default: 2.0]")
@click.option("--project-file", type=click.Path(path_type=Path), help="sfdx-project.json to read the namespace from")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
@click.pass_context
def compile_cmd(ctx, target_org, concurrency, poll_interval, project_file, as_json: bool):
    """
    Compile all Apex classes and triggers (check-only).

    Exits non-zero if the inventory query or any staging call fails, or if
    the compile request ends Failed, Error, Aborted or Invalidated.

    Examples:

        apexcompile compile

        apexcompile compile --target-org my-dev-org --concurrency 20
    """
    from apexcompile.compiler import compile_all, failure_messages
    from apexcompile.namespace import read_namespace
    from apexcompile.progress import ConsoleReporter, Reporter

    config = _resolve_config(
        ctx,
        target_org=target_org,
        concurrency=concurrency,
        poll_interval=poll_interval,
        project_file=project_file,
    )

    if not as_json:
        click.echo("Compile All Apex Classes & Triggers\n")

    started = time.monotonic()
    try:
        result = compile_all(
            _client(config),
            namespace=read_namespace(config.project_file),
            concurrency=config.concurrency,
            poll_interval=config.poll_interval,
            reporter=Reporter() if as_json else ConsoleReporter(console),
        )
    except ApexCompileError as e:
        print_error(f"Error: {e}")
        raise SystemExit(1)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        raise SystemExit(result.exit_code)

    elapsed = format_duration(time.monotonic() - started)
    if result.total == 0:
        print_info("Nothing to compile.")
    elif result.success:
        print_success(
            f"Compiled {result.class_count} classes and {result.trigger_count} triggers in {elapsed}."
        )
    else:
        print_error(f"Compilation {result.request_state}")
        for message in failure_messages(result):
            click.echo(f"\n{message}", err=True)

    raise SystemExit(result.exit_code)


@main.command("units")
@click.option("--target-org", "-o", help="sf alias or username of the org (default: sf default org)")
@click.option("--type", "unit_type", type=click.Choice(["class", "trigger"]), help="Only list one kind of unit")
@click.option("--project-file", type=click.Path(path_type=Path), help="sfdx-project.json to read the namespace from")
@click.pass_context
def list_units(ctx, target_org, unit_type, project_file):
    """List the classes and triggers a compile would stage."""
    from apexcompile.inventory import fetch_inventory
    from apexcompile.namespace import read_namespace

    config = _resolve_config(ctx, target_org=target_org, project_file=project_file)

    try:
        inventory = fetch_inventory(_client(config), read_namespace(config.project_file))
    except ApexCompileError as e:
        print_error(f"Error: {e}")
        raise SystemExit(1)

    kinds = [k for k in UnitKind if unit_type is None or k.label == unit_type]
    for kind in kinds:
        units = inventory.of_kind(kind)
        click.echo(f"{kind.value} ({len(units)}):")
        for unit in units:
            click.echo(f"  {unit.name}")


@main.command("init")
@click.option("--force", is_flag=True, help="Overwrite existing configuration")
def init(force: bool):
    """Initialize apexcompile configuration."""
    from apexcompile.config import CompileConfig, get_apexcompile_home
    import yaml

    home = get_apexcompile_home()
    if not home.exists():
        home.mkdir(parents=True)

    cfg_path = home / "config.yaml"
    if cfg_path.exists() and not force:
        click.echo(f"Config already exists at {cfg_path}. Use --force to overwrite.", err=True)
        raise SystemExit(1)

    default_cfg = CompileConfig().to_dict()
    default_cfg["env_file"] = str(home / ".env")
    cfg_path.write_text(yaml.safe_dump(default_cfg, sort_keys=False))

    env_path = home / ".env"
    if not env_path.exists():
        env_path.write_text("# SF_TARGET_ORG=...\n")

    click.echo(f"Initialized apexcompile config at {cfg_path}")


if __name__ == "__main__":
    main()
